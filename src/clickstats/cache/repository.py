"""Caching decorator over the backing repository.

CachedRepository exposes the same operations as ClickStatsBackend:
- Read-through for banners, click stats, banner-with-stats and top banners
- Pass-through for list, search and histogram queries
- Write-then-invalidate for every mutation

The cache is only touched after the backing call returned successfully, so
a failed write never evicts anything and a failed read never populates
anything. Errors raised by the cache itself during reads are logged and the
call falls back to the backing store.

Example:
    store = MemoryStore()
    repo = CachedRepository(ClickStatsRepository(session), InMemoryClickStatsCache(store))

    banner = await repo.get_banner(1)  # backing store, then cached
    banner = await repo.get_banner(1)  # served from cache
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from typing import TypeVar

from clickstats.cache.base import ClickStatsCache
from clickstats.cache.store import CacheStats
from clickstats.core.errors import ClickStatsError, NotFoundError
from clickstats.core.models import (
    Banner,
    BannerClickCount,
    BannerWithStats,
    Click,
    ClickStats,
    DailyClicks,
    HourlyClicks,
)
from clickstats.persistence.protocol import ClickStatsBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Ranking size loaded by warm_cache when none is given
DEFAULT_WARM_TOP_LIMIT = 10


class CachedRepository:
    """Repository that serves hot reads from a ClickStatsCache."""

    def __init__(self, backend: ClickStatsBackend, cache: ClickStatsCache):
        self.backend = backend
        self._cache = cache

    @property
    def cache(self) -> ClickStatsCache:
        """The cache facade, for callers that need direct access."""
        return self._cache

    async def _read_through(
        self,
        label: str,
        lookup: Callable[[], Awaitable[T | None]],
        load: Callable[[], Awaitable[T]],
        populate: Callable[[T], Awaitable[None]],
    ) -> T:
        """Return a cached value, or load it from the backing store and cache it.

        Backing store errors propagate and leave the cache untouched.
        """
        try:
            cached = await lookup()
        except Exception as e:
            logger.warning(f"Cache lookup failed for {label}, using backing store: {e}")
            cached = None

        if cached is not None:
            logger.debug(f"Cache hit: {label}")
            return cached

        logger.debug(f"Cache miss: {label}")
        value = await load()

        try:
            await populate(value)
        except Exception as e:
            logger.warning(f"Cache population failed for {label}: {e}")

        return value

    # -------------------------------------------------------------------------
    # Banners
    # -------------------------------------------------------------------------

    async def create_banner(self, banner: Banner) -> Banner:
        created = await self.backend.create_banner(banner)
        await self._cache.set_banner(created)
        await self._cache.invalidate_top_banners()
        return created

    async def get_banner(self, banner_id: int) -> Banner:
        return await self._read_through(
            f"banner {banner_id}",
            lambda: self._cache.get_banner(banner_id),
            lambda: self.backend.get_banner(banner_id),
            self._cache.set_banner,
        )

    async def get_all_banners(self) -> list[Banner]:
        return await self.backend.get_all_banners()

    async def update_banner(self, banner: Banner) -> Banner:
        """Update a banner and refresh its cache entry.

        The banner entry is overwritten with the new value instead of being
        evicted; the views derived from it (click stats, banner-with-stats
        and every top banners ranking) are evicted together.
        """
        updated = await self.backend.update_banner(banner)
        if updated.id is None:
            raise NotFoundError("Banner", None)
        await self._cache.set_banner(updated)
        await self._cache.invalidate_click_activity(updated.id)
        return updated

    async def delete_banner(self, banner_id: int) -> None:
        await self.backend.delete_banner(banner_id)
        await self._cache.invalidate_banner(banner_id)

    async def get_banner_by_name(self, name: str) -> Banner:
        return await self.backend.get_banner_by_name(name)

    async def search_banners_by_name(self, name: str) -> list[Banner]:
        return await self.backend.search_banners_by_name(name)

    async def get_banners_with_click_count(self) -> list[BannerWithStats]:
        return await self.backend.get_banners_with_click_count()

    # -------------------------------------------------------------------------
    # Clicks
    # -------------------------------------------------------------------------

    async def create_click(self, click: Click) -> Click:
        """Record a click and evict the aggregates it changes.

        The banner entry is kept since the banner itself did not change.
        """
        created = await self.backend.create_click(click)
        await self._cache.invalidate_click_activity(created.banner_id)
        return created

    async def get_click(self, click_id: int) -> Click:
        return await self.backend.get_click(click_id)

    async def get_all_clicks(self) -> list[Click]:
        return await self.backend.get_all_clicks()

    async def get_clicks_by_banner(self, banner_id: int) -> list[Click]:
        return await self.backend.get_clicks_by_banner(banner_id)

    async def get_clicks_by_date_range(self, start: datetime, end: datetime) -> list[Click]:
        return await self.backend.get_clicks_by_date_range(start, end)

    async def get_clicks_by_banner_and_date_range(
        self, banner_id: int, start: datetime, end: datetime
    ) -> list[Click]:
        return await self.backend.get_clicks_by_banner_and_date_range(banner_id, start, end)

    async def delete_click(self, click_id: int) -> None:
        """Delete a click and evict its banner's aggregates.

        The owning banner is resolved from the backing store before the
        delete, since the click row is gone afterwards.
        """
        click = await self.backend.get_click(click_id)
        await self.backend.delete_click(click_id)
        await self._cache.invalidate_click_activity(click.banner_id)

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    async def get_click_stats(self, banner_id: int) -> ClickStats:
        return await self._read_through(
            f"click stats {banner_id}",
            lambda: self._cache.get_click_stats(banner_id),
            lambda: self.backend.get_click_stats(banner_id),
            lambda stats: self._cache.set_click_stats(banner_id, stats),
        )

    async def get_banner_with_stats(self, banner_id: int) -> BannerWithStats:
        return await self._read_through(
            f"banner stats {banner_id}",
            lambda: self._cache.get_banner_with_stats(banner_id),
            lambda: self.backend.get_banner_with_stats(banner_id),
            lambda stats: self._cache.set_banner_with_stats(banner_id, stats),
        )

    async def get_top_banners(self, limit: int) -> list[BannerClickCount]:
        return await self._read_through(
            f"top banners {limit}",
            lambda: self._cache.get_top_banners(limit),
            lambda: self.backend.get_top_banners(limit),
            lambda banners: self._cache.set_top_banners(limit, banners),
        )

    async def get_clicks_by_hour(self, banner_id: int, day: date) -> list[HourlyClicks]:
        return await self.backend.get_clicks_by_hour(banner_id, day)

    async def get_clicks_by_day(
        self, banner_id: int, start: date, end: date
    ) -> list[DailyClicks]:
        return await self.backend.get_clicks_by_day(banner_id, start, end)

    # -------------------------------------------------------------------------
    # Cache management
    # -------------------------------------------------------------------------

    def get_cache_stats(self) -> CacheStats:
        """Current cache counters, size and hit rate."""
        return self._cache.stats()

    async def clear_cache(self) -> None:
        await self._cache.clear()

    async def invalidate_banner_cache(self, banner_id: int) -> None:
        """Evict everything cached for a banner, plus all rankings."""
        await self._cache.invalidate_banner(banner_id)
        logger.info(f"Invalidated cache for banner {banner_id}")

    async def warm_cache(self, top_limit: int = DEFAULT_WARM_TOP_LIMIT) -> None:
        """Preload banners, their click stats and the top banners ranking.

        Raises:
            ClickStatsError: If the banner list cannot be loaded. Failures
                for individual banners' stats or for the ranking are logged
                and skipped.
        """
        banners = await self.backend.get_all_banners()

        warmed_stats = 0
        for banner in banners:
            if banner.id is None:
                continue
            await self._cache.set_banner(banner)

            try:
                stats = await self.backend.get_click_stats(banner.id)
            except ClickStatsError as e:
                logger.warning(f"Skipping click stats for banner {banner.id} during warm-up: {e}")
                continue

            await self._cache.set_click_stats(banner.id, stats)
            warmed_stats += 1

        try:
            top = await self.backend.get_top_banners(top_limit)
        except ClickStatsError as e:
            logger.warning(f"Skipping top banners during warm-up: {e}")
        else:
            await self._cache.set_top_banners(top_limit, top)

        logger.info(
            f"Cache warmed: {len(banners)} banners, {warmed_stats} click stats "
            f"(cache size {self._cache.size()})"
        )
