"""MongoStats — FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.responses import JSONResponse
from sqlalchemy import text

from mongostats.api.readings import router as readings_router
from mongostats.config import settings
from mongostats.database import engine, init_db
from mongostats.logging_config import setup_logging
from mongostats.observability.metrics import metrics
from mongostats.workers.scheduler import get_scheduler

logger = logging.getLogger("mongostats")

VERSION = "0.1.0"


def _startup_checks() -> None:
    """Log warnings for misconfigured or missing settings."""
    if settings.mongo_password and not settings.mongo_username:
        logger.warning("⚠  MONGO_PASSWORD is set without MONGO_USERNAME; it will be ignored")
    if settings.is_production and "sqlite" in settings.database_url:
        logger.warning("⚠  APP_ENV=production with SQLite; use PostgreSQL for shared state")
    if settings.mongo_username:
        logger.info(f"✓ Authenticating as {settings.mongo_username} against {settings.mongo_database}")
    else:
        logger.info("○ No MONGO_USERNAME — connecting without authentication")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    setup_logging(settings.log_level)
    _startup_checks()

    await init_db()
    logger.info("✦ MongoStats collector started")
    logger.info(f"  Target: {settings.target}")
    logger.info(f"  State database: {settings.database_url}")
    logger.info(f"  Collection interval: {settings.collection_interval_seconds}s")

    scheduler = get_scheduler()
    await scheduler.start()

    yield

    await scheduler.stop()
    logger.info("✦ MongoStats collector shutting down")


app = FastAPI(
    title="MongoStats",
    description="Periodic MongoDB serverStatus collector",
    version=VERSION,
    lifespan=lifespan,
)

app.include_router(readings_router)


@app.get("/")
async def root():
    return JSONResponse(
        {
            "service": "mongostats",
            "status": "ok",
            "endpoints": {
                "health": "/api/health",
                "readings": "/api/readings",
                "state": "/api/state",
            },
        }
    )


async def _db_ready() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("database readiness check failed")
        return False


@app.get("/api/health/live")
async def liveness_check():
    return {"status": "alive", "service": "mongostats"}


@app.get("/api/health")
async def health_check(response: Response):
    scheduler = get_scheduler()
    database_ready = await _db_ready()
    source_ready = await scheduler.source.health_check()
    healthy = database_ready and source_ready

    if not healthy:
        response.status_code = 503

    return {
        "status": "healthy" if healthy else "degraded",
        "service": "mongostats",
        "version": VERSION,
        "target": settings.target,
        "checks": {
            "database": database_ready,
            "source": source_ready,
            "scheduler": scheduler.running,
        },
    }


@app.get("/api/metrics")
async def get_metrics():
    return {
        "service": "mongostats",
        "version": VERSION,
        "metrics": metrics.snapshot(),
    }
