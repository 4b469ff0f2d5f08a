"""Error taxonomy for the collector.

Every error carries a short ``subject`` and a human-readable ``body`` so the
cycle can turn it into a diagnostic without knowing where it came from.
"""

from __future__ import annotations


class CollectorError(Exception):
    """Base class for all collector errors."""

    kind = "error"

    def __init__(self, body: str, subject: str | None = None) -> None:
        super().__init__(body)
        self.body = body
        self.subject = subject or body


class ConfigurationError(CollectorError):
    """Invalid options or settings. Localized to one metric or to setup."""

    kind = "configuration"


class AuthenticationError(ConfigurationError):
    """The monitored server rejected the configured credentials."""

    kind = "authentication"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            "The username/password for your MongoDB database are incorrect",
            subject="Invalid MongoDB Authentication",
        )
        self.detail = detail


class StatsSourceError(CollectorError):
    """Any other failure while acquiring a snapshot."""

    kind = "source"

    def __init__(self, detail: str) -> None:
        super().__init__(
            f"A Mongo DB error has occurred: {detail}.",
            subject=f"A Mongo DB error has occurred: {detail}",
        )
        self.detail = detail


class DataShapeError(CollectorError):
    """A snapshot field is missing or not the expected type."""

    kind = "data_shape"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}", subject=f"Unreadable field {path}")
        self.path = path
        self.reason = reason
