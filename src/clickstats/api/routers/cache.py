"""Cache management endpoints.

Provides visibility into and control over the in-memory cache:
- Hit/miss counters and hit rate
- Full clear and warm-up from the database
- Per-banner invalidation
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from clickstats.api.deps import BannerId, get_cached_repository
from clickstats.api.errors import InternalServerError
from clickstats.cache import CachedRepository
from clickstats.core.errors import ClickStatsError

router = APIRouter(prefix="/api/v1/cache", tags=["cache"])


class CacheStatsBody(BaseModel):
    """Cache counters at one point in time."""

    hits: int
    misses: int
    sets: int
    deletes: int
    expirations: int
    size: int
    hit_rate: float


class CacheStatsResponse(BaseModel):
    timestamp: datetime
    stats: CacheStatsBody


class CacheActionResponse(BaseModel):
    """Result of a cache management action."""

    status: str = "success"
    message: str
    banner_id: int | None = None
    size: int | None = None


@router.get("/stats", response_model=CacheStatsResponse)
async def get_cache_stats(
    repo: CachedRepository = Depends(get_cached_repository),
) -> CacheStatsResponse:
    """Cumulative hit/miss/set/delete/expiration counters, size and hit rate."""
    stats = repo.get_cache_stats()
    return CacheStatsResponse(
        timestamp=datetime.now(UTC),
        stats=CacheStatsBody(**stats.to_dict()),
    )


@router.post("/clear", response_model=CacheActionResponse)
async def clear_cache(
    repo: CachedRepository = Depends(get_cached_repository),
) -> CacheActionResponse:
    """Remove every cached entry. Counters are kept."""
    await repo.clear_cache()
    return CacheActionResponse(message="Cache cleared successfully", size=0)


@router.post("/warm", response_model=CacheActionResponse)
async def warm_cache(
    top_limit: int = Query(10, ge=1, le=100),
    repo: CachedRepository = Depends(get_cached_repository),
) -> CacheActionResponse:
    """Preload banners, their click stats and the top banners ranking."""
    try:
        await repo.warm_cache(top_limit=top_limit)
    except ClickStatsError as e:
        raise InternalServerError("Failed to warm cache", str(e)) from e

    return CacheActionResponse(
        message="Cache warmed successfully",
        size=repo.get_cache_stats().size,
    )


@router.post("/banner/{banner_id}/invalidate", response_model=CacheActionResponse)
async def invalidate_banner_cache(
    banner_id: BannerId,
    repo: CachedRepository = Depends(get_cached_repository),
) -> CacheActionResponse:
    """Evict everything cached for a banner, plus all top banner rankings."""
    await repo.invalidate_banner_cache(banner_id)
    return CacheActionResponse(
        message="Banner cache invalidated successfully",
        banner_id=banner_id,
    )
