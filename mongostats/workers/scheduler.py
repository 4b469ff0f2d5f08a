"""Background scheduler — runs one collection cycle per interval."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mongostats.collector.cycle import CollectionCycle, CycleResult
from mongostats.collector.rates import RateEngine
from mongostats.config import settings
from mongostats.database import async_session
from mongostats.models.state import DatabaseStateStore
from mongostats.observability.metrics import CollectorMetrics, ReadingSink
from mongostats.observability.metrics import metrics as collector_metrics
from mongostats.observability.metrics import readings
from mongostats.sources.base import StatsSource
from mongostats.sources.mongo import MongoStatsSource

logger = logging.getLogger("mongostats.scheduler")


class CollectionScheduler:
    """Asyncio-based scheduler for periodic collection.

    Runs as a background task inside the FastAPI event loop.
    On each tick:
      1. Load remembered state for the target
      2. Run one collection cycle
      3. Persist the updated state, only if the cycle succeeded
    Ticks never overlap: ``run_once`` holds a lock for the whole cycle.
    """

    def __init__(
        self,
        source: StatsSource | None = None,
        sink: ReadingSink | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        target: str | None = None,
        interval: int | None = None,
        metrics: CollectorMetrics | None = None,
    ) -> None:
        self.source = source or MongoStatsSource.from_settings(settings)
        self.sink = sink or readings
        self.session_factory = session_factory or async_session
        self.target = target or settings.target
        self.interval = interval if interval is not None else settings.collection_interval_seconds
        self.metrics = metrics or collector_metrics
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self.last_result: CycleResult | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background scheduler."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Scheduler started (interval={self.interval}s)", extra={"target": self.target})

    async def stop(self) -> None:
        """Stop the background scheduler gracefully."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self.source.close()
        logger.info("Scheduler stopped")

    async def _run_loop(self) -> None:
        """Main scheduler loop."""
        while self._running:
            try:
                await self.run_once()
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in tick: {e}")
                await asyncio.sleep(self.interval)

    async def run_once(self) -> CycleResult:
        """Single tick: load state → collect → persist."""
        async with self._lock:
            async with self.session_factory() as session:
                store = await DatabaseStateStore.load(session, self.target)
                cycle = CollectionCycle(self.source, RateEngine(store), self.sink)
                result = await cycle.run()

                if result.ok:
                    written = await store.save(session)
                    await session.commit()
                    logger.debug(f"Persisted {written} remembered state entries")
                else:
                    store.discard()

            self.metrics.observe_cycle(
                result.status,
                result.duration_ms,
                len(result.emitted),
                [d.to_dict() for d in result.diagnostics],
            )
            logger.info(
                "cycle completed",
                extra={
                    "target": self.target,
                    "cycle_status": result.status,
                    "duration_ms": result.duration_ms,
                    "emitted": len(result.emitted),
                },
            )
            self.last_result = result
            return result


# Global scheduler instance, created on first use so importing is side-effect free.
_scheduler: CollectionScheduler | None = None


def get_scheduler() -> CollectionScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = CollectionScheduler()
    return _scheduler
