"""Collection cycle — snapshot → gauges + rates → sink, once."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional

from mongostats.collector.rates import PER_SECOND, RateEngine, RateOptions, Suppression
from mongostats.collector.reader import SnapshotReader
from mongostats.errors import (
    AuthenticationError,
    CollectorError,
    ConfigurationError,
    StatsSourceError,
)
from mongostats.observability.metrics import ReadingSink
from mongostats.sources.base import RawSnapshot, StatsSource
from mongostats.utils.time import utc_now

logger = logging.getLogger("mongostats.cycle")

STATUS_OK = "ok"
STATUS_AUTH_ERROR = "auth_error"
STATUS_SOURCE_ERROR = "source_error"


@dataclass
class Diagnostic:
    kind: str  # "authentication", "source", "configuration", "data_shape", "rate"
    subject: str
    body: str

    @classmethod
    def from_error(cls, error: CollectorError) -> "Diagnostic":
        return cls(kind=error.kind, subject=error.subject, body=error.body)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CycleResult:
    status: str
    emitted: dict[str, float] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    suppressed: dict[str, Suppression] = field(default_factory=dict)
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def duration_ms(self) -> float:
        if self.finished_at is None:
            return 0.0
        return round((self.finished_at - self.started_at).total_seconds() * 1000, 2)


class CollectionCycle:
    """Runs exactly one collection cycle.

    Snapshot failures end the cycle with no values reported and nothing
    written to the engine's store. Failures while deriving a single metric
    are recorded as diagnostics and the rest of the cycle carries on.
    """

    def __init__(
        self,
        source: StatsSource,
        engine: RateEngine,
        sink: ReadingSink,
        reader: SnapshotReader | None = None,
        counter_options: dict[str, RateOptions] | None = None,
        default_options: RateOptions = PER_SECOND,
    ) -> None:
        self.source = source
        self.engine = engine
        self.sink = sink
        self.reader = reader or SnapshotReader()
        self.counter_options = dict(counter_options or {})
        self.default_options = default_options

    async def run(self) -> CycleResult:
        started_at = utc_now()
        try:
            snapshot = await self.source.fetch_snapshot()
        except AuthenticationError as e:
            logger.error(f"{e.subject}: {e.body}")
            return self._aborted(STATUS_AUTH_ERROR, e, started_at)
        except StatsSourceError as e:
            logger.error(e.body)
            return self._aborted(STATUS_SOURCE_ERROR, e, started_at)

        result = self.process(snapshot)
        result.started_at = started_at
        return result

    def process(self, snapshot: RawSnapshot) -> CycleResult:
        """Derive and report every metric from an already fetched snapshot."""
        result = CycleResult(status=STATUS_OK)
        reading = self.reader.read(snapshot)

        for problem in reading.problems:
            logger.debug(f"Skipping {problem.path}: {problem.reason}")

        for name, value in reading.gauges.items():
            self._emit(result, name, value)

        for sample in reading.counters:
            options = self.counter_options.get(sample.name, self.default_options)
            try:
                outcome = self.engine.evaluate(sample.name, sample.value, sample.timestamp, options)
            except ConfigurationError as e:
                logger.warning(f"Rate for {sample.name} not computed: {e.body}")
                result.diagnostics.append(Diagnostic.from_error(e))
                continue
            except Exception as e:
                logger.exception(f"Rate for {sample.name} failed")
                result.diagnostics.append(
                    Diagnostic(
                        kind="rate",
                        subject=f"Rate for {sample.name} failed",
                        body=f"{type(e).__name__}: {e}",
                    )
                )
                continue

            if outcome.emitted:
                self._emit(result, sample.name, outcome.value)
            else:
                logger.debug(f"Rate for {sample.name} suppressed ({outcome.suppressed.value})")
                result.suppressed[sample.name] = outcome.suppressed

        result.finished_at = utc_now()
        return result

    def _emit(self, result: CycleResult, name: str, value: float) -> None:
        self.sink.report(name, value)
        result.emitted[name] = value

    @staticmethod
    def _aborted(status: str, error: CollectorError, started_at: datetime) -> CycleResult:
        return CycleResult(
            status=status,
            diagnostics=[Diagnostic.from_error(error)],
            started_at=started_at,
            finished_at=utc_now(),
        )
