"""Remembered counter state, persisted between collection cycles."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import DateTime, Float, Integer, String, UniqueConstraint, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from mongostats.collector.rates import RememberedState, StateStore
from mongostats.database import Base
from mongostats.utils.time import ensure_utc


# ─── SQLAlchemy Model ────────────────────────────────────────────


class RememberedStateRow(Base):
    __tablename__ = "remembered_state"
    __table_args__ = (UniqueConstraint("target", "name", name="uq_remembered_state_target_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    target: Mapped[str] = mapped_column(String(255), index=True)
    name: Mapped[str] = mapped_column(String(255))
    last_value: Mapped[float] = mapped_column(Float)
    last_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )


class DatabaseStateStore(StateStore):
    """State for one target, read up front and written back in one go.

    ``get``/``set`` only touch the in-memory buffer; nothing reaches the
    database until ``save`` is called, so an abandoned cycle leaves the
    stored state exactly as it was.
    """

    def __init__(self, target: str, rows: list[RememberedStateRow] | None = None) -> None:
        self.target = target
        self._rows: dict[str, RememberedStateRow] = {row.name: row for row in rows or []}
        self._pending: dict[str, RememberedState] = {}

    @classmethod
    async def load(cls, session: AsyncSession, target: str) -> "DatabaseStateStore":
        result = await session.execute(
            select(RememberedStateRow).where(RememberedStateRow.target == target)
        )
        return cls(target, list(result.scalars().all()))

    def get(self, name: str) -> RememberedState | None:
        if name in self._pending:
            return self._pending[name]
        row = self._rows.get(name)
        if row is None:
            return None
        return RememberedState(row.last_value, ensure_utc(row.last_timestamp))

    def set(self, name: str, state: RememberedState) -> None:
        self._pending[name] = state

    @property
    def pending(self) -> dict[str, RememberedState]:
        return dict(self._pending)

    def discard(self) -> None:
        self._pending.clear()

    async def save(self, session: AsyncSession) -> int:
        """Stage every pending entry on ``session``; the caller commits."""
        written = 0
        for name, state in self._pending.items():
            row = self._rows.get(name)
            if row is None:
                row = RememberedStateRow(target=self.target, name=name)
                session.add(row)
                self._rows[name] = row
            row.last_value = float(state.last_value)
            row.last_timestamp = state.last_timestamp
            written += 1
        self._pending.clear()
        await session.flush()
        return written


# ─── Pydantic Schemas ────────────────────────────────────────────


class RememberedStateResponse(BaseModel):
    name: str
    last_value: float
    last_timestamp: datetime

    model_config = {"from_attributes": True}


class RememberedStateListResponse(BaseModel):
    target: str
    entries: list[RememberedStateResponse]
    total: int
