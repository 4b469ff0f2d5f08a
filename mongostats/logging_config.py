"""Structured logging configuration for MongoStats."""

from __future__ import annotations

import logging
import sys

from mongostats.utils.time import utc_now

_CONTEXT_KEYS = ("target", "cycle_status", "duration_ms", "emitted")


class KeyValueFormatter(logging.Formatter):
    """Formats log records as one line with trailing key=value context."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            f"[{record.levelname:<7}]",
            utc_now().isoformat(),
            record.name,
            record.getMessage(),
        ]
        for key in _CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                parts.append(f"{key}={value}")

        if record.exc_info and record.exc_info[1]:
            parts.append(f"\n{self.formatException(record.exc_info)}")

        return " ".join(parts)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the collector service."""
    root_logger = logging.getLogger()

    # Avoid adding handlers multiple times
    if root_logger.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(KeyValueFormatter())
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Quiet noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
