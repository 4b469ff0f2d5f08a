"""Tests for the database-backed remembered state store."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from mongostats.collector.rates import RememberedState
from mongostats.models.state import DatabaseStateStore, RememberedStateRow

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)
T1 = datetime(2026, 1, 1, 0, 1, tzinfo=timezone.utc)


async def row_count(session) -> int:
    return (await session.execute(select(func.count(RememberedStateRow.id)))).scalar()


@pytest.mark.asyncio
async def test_set_is_buffered_until_save(db_session):
    store = await DatabaseStateStore.load(db_session, "localhost:27017")
    store.set("opcount_query_per_sec", RememberedState(10, T0))

    assert store.get("opcount_query_per_sec") == RememberedState(10, T0)
    assert await row_count(db_session) == 0

    assert await store.save(db_session) == 1
    await db_session.commit()
    assert await row_count(db_session) == 1


@pytest.mark.asyncio
async def test_round_trip_updates_existing_row(session_factory):
    async with session_factory() as session:
        store = await DatabaseStateStore.load(session, "db1:27017")
        store.set("ops", RememberedState(10, T0))
        await store.save(session)
        await session.commit()

    async with session_factory() as session:
        store = await DatabaseStateStore.load(session, "db1:27017")
        assert store.get("ops") == RememberedState(10, T0)
        store.set("ops", RememberedState(25, T1))
        await store.save(session)
        await session.commit()

    async with session_factory() as session:
        store = await DatabaseStateStore.load(session, "db1:27017")
        loaded = store.get("ops")
        assert loaded.last_value == 25
        assert loaded.last_timestamp == T1
        assert loaded.last_timestamp.tzinfo is not None
        assert await row_count(session) == 1


@pytest.mark.asyncio
async def test_state_is_scoped_per_target(session_factory):
    async with session_factory() as session:
        store = await DatabaseStateStore.load(session, "db1:27017")
        store.set("ops", RememberedState(10, T0))
        await store.save(session)
        await session.commit()

    async with session_factory() as session:
        other = await DatabaseStateStore.load(session, "db2:27017")
        assert other.get("ops") is None


@pytest.mark.asyncio
async def test_discard_drops_pending_writes(db_session):
    store = await DatabaseStateStore.load(db_session, "db1:27017")
    store.set("ops", RememberedState(10, T0))
    store.discard()

    assert store.get("ops") is None
    assert await store.save(db_session) == 0
