"""Lightweight in-process metrics for MongoStats.

``ReadingSink`` is where a cycle reports its values; ``CollectorMetrics``
tracks the collector's own health. Neither needs a metrics client library.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict, deque
from datetime import datetime
from threading import Lock

from mongostats.utils.time import utc_now


class ReadingSink(ABC):
    @abstractmethod
    def report(self, name: str, value: float) -> None:
        ...


class InMemorySink(ReadingSink):
    """Keeps the latest reported value per name."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._values: dict[str, float] = {}
        self._reported_at: datetime | None = None

    def report(self, name: str, value: float) -> None:
        with self._lock:
            self._values[name] = float(value)
            self._reported_at = utc_now()

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "values": dict(sorted(self._values.items())),
                "reported_at": self._reported_at.isoformat() if self._reported_at else None,
            }


class CollectorMetrics:
    def __init__(self, latency_window: int = 500) -> None:
        self._lock = Lock()
        self._cycles_total = 0
        self._status_counts: dict[str, int] = defaultdict(int)
        self._emitted_total = 0
        self._latencies_ms = deque(maxlen=latency_window)
        self._last_status: str | None = None
        self._last_diagnostics: list[dict] = []

    def observe_cycle(
        self,
        status: str,
        duration_ms: float,
        emitted: int,
        diagnostics: list[dict] | None = None,
    ) -> None:
        with self._lock:
            self._cycles_total += 1
            self._status_counts[status] += 1
            self._emitted_total += emitted
            self._latencies_ms.append(float(duration_ms))
            self._last_status = status
            self._last_diagnostics = list(diagnostics or [])

    def snapshot(self) -> dict:
        with self._lock:
            sorted_latencies = sorted(self._latencies_ms)

            def percentile(p: float) -> float:
                if not sorted_latencies:
                    return 0.0
                idx = int((len(sorted_latencies) - 1) * p)
                return round(sorted_latencies[idx], 2)

            return {
                "cycles_total": self._cycles_total,
                "status_counts": dict(self._status_counts),
                "emitted_total": self._emitted_total,
                "last_status": self._last_status,
                "last_diagnostics": list(self._last_diagnostics),
                "cycle_latency_ms": {
                    "samples": len(sorted_latencies),
                    "p50": percentile(0.50),
                    "p95": percentile(0.95),
                    "p99": percentile(0.99),
                },
            }


metrics = CollectorMetrics()
readings = InMemorySink()
