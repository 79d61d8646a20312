"""Integration-test fixtures.

These tests need a migrated PostgreSQL (`alembic upgrade head`) at
DATABASE_URL. They are skipped when it is unreachable or unmigrated.
Redis is not needed: the event publisher is replaced with a mock.
"""

import uuid
from collections.abc import AsyncIterator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from config.settings import settings
from src.pm_admin.application.service import AdminService
from src.pm_amm.engine.executor import TradeExecutor
from src.pm_amm.engine.locks import MarketLocks


@pytest_asyncio.fixture
async def pg_engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(settings.DATABASE_URL)
    try:
        async with engine.connect() as conn:
            migrated = (
                await conn.execute(text("SELECT to_regclass('public.markets') IS NOT NULL"))
            ).scalar()
    except Exception as e:  # noqa: BLE001 -- any connect failure means "no database"
        await engine.dispose()
        pytest.skip(f"PostgreSQL unavailable: {e.__class__.__name__}")
    if not migrated:
        await engine.dispose()
        pytest.skip("Database not migrated; run `alembic upgrade head`")
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(pg_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(pg_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def publisher() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def locks() -> MarketLocks:
    return MarketLocks()


@pytest.fixture
def executor(publisher: AsyncMock, locks: MarketLocks) -> TradeExecutor:
    return TradeExecutor(publisher=publisher, locks=locks)


@pytest.fixture
def admin(publisher: AsyncMock, locks: MarketLocks) -> AdminService:
    return AdminService(publisher=publisher, locks=locks)


@pytest.fixture
def uid() -> str:
    """Unique suffix so repeated runs never collide on user ids."""
    return uuid.uuid4().hex[:10]
