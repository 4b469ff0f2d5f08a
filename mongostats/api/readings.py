"""Readings API — latest reported values and remembered counter state."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mongostats.config import settings
from mongostats.database import get_session
from mongostats.models.state import (
    RememberedStateListResponse,
    RememberedStateResponse,
    RememberedStateRow,
)
from mongostats.observability.metrics import readings

router = APIRouter(prefix="/api", tags=["readings"])


@router.get("/readings")
async def get_readings():
    """Latest value reported for every gauge and rate."""
    return readings.snapshot()


@router.get("/state", response_model=RememberedStateListResponse)
async def get_state(
    target: str | None = None,
    session: AsyncSession = Depends(get_session),
):
    """Remembered counter state for one target (default: the configured one)."""
    target = target or settings.target
    result = await session.execute(
        select(RememberedStateRow)
        .where(RememberedStateRow.target == target)
        .order_by(RememberedStateRow.name)
    )
    rows = result.scalars().all()
    return RememberedStateListResponse(
        target=target,
        entries=[RememberedStateResponse.model_validate(row) for row in rows],
        total=len(rows),
    )
