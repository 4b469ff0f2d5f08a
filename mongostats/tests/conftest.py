"""Shared test fixtures for MongoStats tests."""

import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from mongostats.database import Base
from mongostats.models import state  # noqa: F401


@pytest_asyncio.fixture
async def session_factory():
    """Session factory bound to a fresh in-memory database per test."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session

