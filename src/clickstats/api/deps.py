"""Shared FastAPI dependencies for clickstats routers.

The repository handed to routers is assembled per request:
- get_backend opens the SQL repository on the request's session
- get_repository wraps it in CachedRepository when the app has a cache
- get_cached_repository is for endpoints that only make sense with a cache

Tests override get_backend to run the full cached stack against a fake.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Path, Request
from sqlalchemy.ext.asyncio import AsyncSession

from clickstats.api.errors import ApiError
from clickstats.cache import CachedRepository, ClickStatsCache
from clickstats.persistence.db import get_session
from clickstats.persistence.protocol import ClickStatsBackend
from clickstats.persistence.repositories import ClickStatsRepository

# Path parameters; non-positive ids are rejected with 400
BannerId = Annotated[int, Path(gt=0, description="Banner id")]
ClickId = Annotated[int, Path(gt=0, description="Click id")]


async def get_backend(
    session: AsyncSession = Depends(get_session),
) -> ClickStatsBackend:
    """Get the SQL repository for this request."""
    return ClickStatsRepository(session)


def get_cache(request: Request) -> ClickStatsCache | None:
    """Get the application cache, or None when caching is disabled."""
    return getattr(request.app.state, "cache", None)


def get_repository(
    backend: ClickStatsBackend = Depends(get_backend),
    cache: ClickStatsCache | None = Depends(get_cache),
) -> ClickStatsBackend:
    """Get the repository routers read and write through."""
    if cache is None:
        return backend
    return CachedRepository(backend, cache)


def get_cached_repository(
    repo: ClickStatsBackend = Depends(get_repository),
) -> CachedRepository:
    """Get the cached repository, failing with 503 when caching is disabled."""
    if not isinstance(repo, CachedRepository):
        raise ApiError(
            status_code=503,
            error="Cache disabled",
            message="The in-memory cache is disabled on this instance",
        )
    return repo
