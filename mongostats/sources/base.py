"""Base interfaces for server statistics sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from mongostats.utils.time import utc_now


@dataclass
class RawSnapshot:
    """One stats document as returned by the server, stamped on receipt."""

    document: dict
    observed_at: datetime = field(default_factory=utc_now)


class StatsSource(ABC):
    """Abstract base class for anything that can produce a stats snapshot.

    ``fetch_snapshot`` raises ``AuthenticationError`` when credentials are
    rejected and ``StatsSourceError`` for every other failure.
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Identifier for this source."""
        ...

    @abstractmethod
    async def fetch_snapshot(self) -> RawSnapshot:
        """Fetch the current stats snapshot."""
        ...

    async def health_check(self) -> bool:
        """Check if the source is reachable."""
        return True

    async def close(self) -> None:
        """Release any held connections."""
        return None
