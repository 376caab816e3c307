"""Global pytest configuration and fixtures.

Provides:
- An in-memory SQLite database shared through StaticPool, recreated per test
- Cache store/facade fixtures
- A mocked backing repository for cache-layer tests
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from clickstats.cache import InMemoryClickStatsCache, MemoryStore
from clickstats.core.models import Banner, BannerClickCount, BannerWithStats, Click, ClickStats
from clickstats.persistence.protocol import ClickStatsBackend
from clickstats.persistence.tables import Base

# ---------------------------------------------------------------------------
# In-memory SQLite test engine (shared via StaticPool)
# ---------------------------------------------------------------------------

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)
TestSession = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@event.listens_for(test_engine.sync_engine, "connect")
def _enable_foreign_keys(dbapi_conn, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    """Fresh schema and session for one test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSession() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def cache(store: MemoryStore) -> InMemoryClickStatsCache:
    return InMemoryClickStatsCache(store)


@pytest.fixture
def backend() -> AsyncMock:
    """Mocked backing repository answering for banner 1 ("spring-sale")."""
    now = datetime(2025, 1, 27, 12, 0, tzinfo=UTC)
    banner = Banner(id=1, name="spring-sale", created_at=now, updated_at=now)

    mock = AsyncMock(spec=ClickStatsBackend)
    mock.get_banner.return_value = banner
    mock.get_all_banners.return_value = [banner]
    mock.get_click_stats.return_value = ClickStats(
        banner_id=1, total_clicks=3, first_click=now, last_click=now
    )
    mock.get_banner_with_stats.return_value = BannerWithStats(
        banner=banner, click_count=3, last_click=now
    )
    mock.get_top_banners.return_value = [
        BannerClickCount(banner_id=1, banner_name="spring-sale", click_count=3)
    ]
    mock.get_click.return_value = Click(id=10, banner_id=1, timestamp=now)
    return mock
