"""Database engine and sessions for clickstats.

One AsyncEngine per process, created on first use from settings.database_url.
PostgreSQL (asyncpg) is the production target; SQLite (aiosqlite) URLs are
accepted for local runs and get no connection pool options, since SQLite
engines do not use a queue pool.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from clickstats.config import settings

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def engine_options(database_url: str) -> dict[str, Any]:
    """Keyword arguments for create_async_engine for this URL."""
    options: dict[str, Any] = {
        # SQL echo is only useful while debugging locally
        "echo": settings.env == "dev" and settings.log_level.upper() == "DEBUG",
    }
    if make_url(database_url).get_backend_name() == "sqlite":
        return options

    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
    )
    return options


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.database_url, **engine_options(settings.database_url)
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory bound to the process-wide engine.

    Sessions keep loaded rows usable after commit; repositories convert
    rows to pydantic models that outlive the session.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding one session per request.

    ClickStatsRepository commits its own writes, so the session is only
    closed here.
    """
    async with get_session_factory()() as session:
        yield session


@asynccontextmanager
async def session_context() -> AsyncIterator[AsyncSession]:
    """Session scope for code outside request handling (warm-up, CLI).

    Commits on success and rolls back if the block raises.

    Usage:
        async with session_context() as session:
            repo = CachedRepository(ClickStatsRepository(session), cache)
            await repo.warm_cache()
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def close_db() -> None:
    """Dispose of the engine; the next get_engine() call creates a new one."""
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None


async def health_check() -> bool:
    """True if the database answers a trivial query."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        return False
    return True
