"""Rate engine — turns monotonically increasing counters into per-second rates.

Each counter name has one remembered ``(value, timestamp)`` pair. The first
observation of a name only records that pair (warm-up). Later observations
produce ``delta / elapsed`` unless the counter went backwards (server restart)
or too little time has passed, in which case nothing is emitted. The pair is
overwritten on every call that gets past option validation, so a reset costs
exactly one cycle.
"""

from __future__ import annotations

import enum
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from mongostats.errors import ConfigurationError

# Seconds per reporting unit.
UNIT_DIVISORS = {"second": 1, "minute": 60}

# Readings closer together than this (in seconds) are not turned into a rate.
MIN_ELAPSED_SECONDS = 1.0

Combine = Callable[[float, float], float]


class MetricState(str, enum.Enum):
    UNSEEN = "unseen"
    WARMED = "warmed"


class Suppression(str, enum.Enum):
    WARMUP = "warmup"
    RESET = "reset"
    TOO_SOON = "too_soon"


@dataclass(frozen=True)
class RememberedState:
    """Last observation of one counter, kept between cycles."""

    last_value: float
    last_timestamp: datetime


@dataclass(frozen=True)
class RateOptions:
    """Per-counter rate settings.

    ``unit`` is required (``"second"`` or ``"minute"``); ``PER_SECOND`` covers
    every counter the reader produces.
    ``round`` accepts ``None`` (no rounding), an integer number of decimal
    digits, or the legacy ``True`` meaning one digit.
    """

    unit: str
    round: Optional[int | bool] = None
    combine: Optional[Combine] = None

    def divisor(self) -> int:
        try:
            return UNIT_DIVISORS[self.unit]
        except (KeyError, TypeError):
            raise ConfigurationError(
                f"Unknown rate unit {self.unit!r}; expected one of {sorted(UNIT_DIVISORS)}"
            ) from None

    def digits(self) -> int | None:
        if self.round is None or self.round is False:
            return None
        if self.round is True:
            return 1
        if not isinstance(self.round, int) or self.round < 0:
            raise ConfigurationError(
                f"Rounding must be a non-negative integer, got {self.round!r}"
            )
        return self.round


PER_SECOND = RateOptions(unit="second")


@dataclass(frozen=True)
class RateOutcome:
    name: str
    value: float | None
    suppressed: Suppression | None = None

    @property
    def emitted(self) -> bool:
        return self.value is not None


class StateStore(ABC):
    """Key-value store holding remembered counter state between cycles."""

    @abstractmethod
    def get(self, name: str) -> RememberedState | None:
        ...

    @abstractmethod
    def set(self, name: str, state: RememberedState) -> None:
        ...


class MemoryStateStore(StateStore):
    """Process-local store, used by tests and one-off runs."""

    def __init__(self, initial: dict[str, RememberedState] | None = None) -> None:
        self._entries: dict[str, RememberedState] = dict(initial or {})

    def get(self, name: str) -> RememberedState | None:
        return self._entries.get(name)

    def set(self, name: str, state: RememberedState) -> None:
        self._entries[name] = state

    def as_dict(self) -> dict[str, RememberedState]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def round_half_away(value: float, digits: int) -> float:
    """Round to ``digits`` decimals, halves away from zero."""
    scale = 10 ** digits
    scaled = abs(value) * scale
    return math.copysign(math.floor(scaled + 0.5), value) / scale


class RateEngine:
    """Computes counter rates against an injected ``StateStore``."""

    def __init__(self, store: StateStore) -> None:
        self.store = store

    def state_of(self, name: str) -> MetricState:
        return MetricState.WARMED if self.store.get(name) is not None else MetricState.UNSEEN

    def compute_rate(
        self,
        name: str,
        current_value: float,
        current_time: datetime,
        options: RateOptions = PER_SECOND,
    ) -> float | None:
        """Return the rate for ``name`` or ``None`` when nothing should be emitted."""
        return self.evaluate(name, current_value, current_time, options).value

    def evaluate(
        self,
        name: str,
        current_value: float,
        current_time: datetime,
        options: RateOptions = PER_SECOND,
    ) -> RateOutcome:
        if not name:
            raise ConfigurationError("Metric name must not be empty")
        # Validate before touching state so a bad option leaves the store alone.
        divisor = options.divisor()
        digits = options.digits()

        previous = self.store.get(name)
        outcome = self._derive(name, previous, current_value, current_time, options, divisor, digits)
        self.store.set(name, RememberedState(current_value, current_time))
        return outcome

    @staticmethod
    def _derive(
        name: str,
        previous: RememberedState | None,
        current_value: float,
        current_time: datetime,
        options: RateOptions,
        divisor: int,
        digits: int | None,
    ) -> RateOutcome:
        if previous is None:
            return RateOutcome(name, None, Suppression.WARMUP)

        elapsed = (current_time - previous.last_timestamp).total_seconds()
        if current_value <= previous.last_value:
            return RateOutcome(name, None, Suppression.RESET)
        if elapsed <= MIN_ELAPSED_SECONDS:
            return RateOutcome(name, None, Suppression.TOO_SOON)

        if options.combine is not None:
            delta = options.combine(previous.last_value, current_value)
        else:
            delta = current_value - previous.last_value

        result = delta / elapsed / divisor
        if digits is not None:
            result = round_half_away(result, digits)
        return RateOutcome(name, float(result))
