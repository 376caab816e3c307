"""In-memory cache facade for clickstats.

Translates banner/click read intents into MemoryStore keys and TTLs, and
owns the invalidation cascades:

- banner changed: banner, click stats, banner-with-stats, all top banners
- clicks changed: click stats, banner-with-stats, all top banners
- click stats changed: click stats, all top banners

Top banner rankings depend on every banner's click count, so any change
that can move a count evicts the whole top_banners family regardless of
which limits happen to be cached.

Entries are copied on the way in and on the way out, so callers can never
change a cached value through a model they passed in or got back.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from pydantic import BaseModel

from clickstats.cache.base import (
    DEFAULT_BANNER_STATS_TTL,
    DEFAULT_BANNER_TTL,
    DEFAULT_CLICK_STATS_TTL,
    DEFAULT_TOP_BANNERS_TTL,
    TTL,
)
from clickstats.cache.keys import CacheKeys, Namespace
from clickstats.cache.store import CacheStats, MemoryStore
from clickstats.core.models import Banner, BannerClickCount, BannerWithStats, ClickStats

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class InMemoryClickStatsCache:
    """Cache operations for banners and their click aggregates.

    Provides typed methods over a MemoryStore with per-kind default TTLs.
    """

    def __init__(
        self,
        store: MemoryStore,
        banner_ttl: TTL = DEFAULT_BANNER_TTL,
        click_stats_ttl: TTL = DEFAULT_CLICK_STATS_TTL,
        banner_stats_ttl: TTL = DEFAULT_BANNER_STATS_TTL,
        top_banners_ttl: TTL = DEFAULT_TOP_BANNERS_TTL,
    ):
        self.store = store
        self.banner_ttl = banner_ttl
        self.click_stats_ttl = click_stats_ttl
        self.banner_stats_ttl = banner_stats_ttl
        self.top_banners_ttl = top_banners_ttl

    # -------------------------------------------------------------------------
    # Typed access helpers
    # -------------------------------------------------------------------------

    def _get_typed(self, key: str, expected: type[M]) -> M | None:
        """Get a value and check its type.

        A value of the wrong type is reported and treated as a miss; the
        caller's read-through then overwrites it with a fresh value.
        """
        value, found = self.store.get(key)
        if not found:
            return None
        if not isinstance(value, expected):
            logger.warning(
                f"Cache entry {key} holds {type(value).__name__}, "
                f"expected {expected.__name__}; ignoring it"
            )
            return None
        return value.model_copy(deep=True)

    def _set(self, key: str, value: BaseModel, ttl: TTL | None, default: TTL) -> None:
        # 0 and timedelta(0) are explicit TTLs, only None means the default
        self.store.set(key, value.model_copy(deep=True), default if ttl is None else ttl)

    def _evict_with_rankings(self, keys: list[str]) -> int:
        """Remove keys and the whole top_banners family in one store call."""
        return self.store.delete_keys_and_prefix(
            keys, CacheKeys.namespace_prefix(Namespace.TOP_BANNERS)
        )

    @staticmethod
    def _is_ranking(value: Any) -> bool:
        return isinstance(value, list) and all(
            isinstance(item, BannerClickCount) for item in value
        )

    # -------------------------------------------------------------------------
    # Banner caching
    # -------------------------------------------------------------------------

    async def get_banner(self, banner_id: int) -> Banner | None:
        """Get a cached banner."""
        return self._get_typed(CacheKeys.banner(banner_id), Banner)

    async def set_banner(self, banner: Banner, ttl: TTL | None = None) -> None:
        """Cache a banner under its own id."""
        if banner.id is None:
            raise ValueError("Cannot cache a banner without an id")
        self._set(CacheKeys.banner(banner.id), banner, ttl, self.banner_ttl)

    async def delete_banner(self, banner_id: int) -> None:
        """Delete only the cached banner entry."""
        self.store.delete(CacheKeys.banner(banner_id))

    async def invalidate_banner(self, banner_id: int) -> None:
        """Delete a banner and every cached view derived from it."""
        removed = self._evict_with_rankings(
            [
                CacheKeys.banner(banner_id),
                CacheKeys.click_stats(banner_id),
                CacheKeys.banner_stats(banner_id),
            ]
        )
        logger.debug(f"Invalidated banner {banner_id} ({removed} entries)")

    # -------------------------------------------------------------------------
    # Click statistics caching
    # -------------------------------------------------------------------------

    async def get_click_stats(self, banner_id: int) -> ClickStats | None:
        """Get cached click statistics for a banner."""
        return self._get_typed(CacheKeys.click_stats(banner_id), ClickStats)

    async def set_click_stats(
        self, banner_id: int, stats: ClickStats, ttl: TTL | None = None
    ) -> None:
        """Cache click statistics for a banner."""
        self._set(CacheKeys.click_stats(banner_id), stats, ttl, self.click_stats_ttl)

    async def invalidate_click_stats(self, banner_id: int) -> None:
        """Delete a banner's click statistics and the rankings built on them."""
        self._evict_with_rankings([CacheKeys.click_stats(banner_id)])

    # -------------------------------------------------------------------------
    # Banner with stats caching
    # -------------------------------------------------------------------------

    async def get_banner_with_stats(self, banner_id: int) -> BannerWithStats | None:
        """Get a cached banner-with-stats view."""
        return self._get_typed(CacheKeys.banner_stats(banner_id), BannerWithStats)

    async def set_banner_with_stats(
        self, banner_id: int, stats: BannerWithStats, ttl: TTL | None = None
    ) -> None:
        """Cache a banner-with-stats view."""
        self._set(CacheKeys.banner_stats(banner_id), stats, ttl, self.banner_stats_ttl)

    async def invalidate_banner_with_stats(self, banner_id: int) -> None:
        """Delete a cached banner-with-stats view."""
        self.store.delete(CacheKeys.banner_stats(banner_id))

    # -------------------------------------------------------------------------
    # Top banners caching
    # -------------------------------------------------------------------------

    async def get_top_banners(self, limit: int) -> list[BannerClickCount] | None:
        """Get a cached top banners ranking."""
        key = CacheKeys.top_banners(limit)
        value, found = self.store.get(key)
        if not found:
            return None
        if not self._is_ranking(value):
            logger.warning(f"Cache entry {key} is not a banner ranking; ignoring it")
            return None
        return [item.model_copy() for item in value]

    async def set_top_banners(
        self, limit: int, banners: list[BannerClickCount], ttl: TTL | None = None
    ) -> None:
        """Cache a top banners ranking for one limit."""
        ranking = [item.model_copy() for item in banners]
        ttl = self.top_banners_ttl if ttl is None else ttl
        self.store.set(CacheKeys.top_banners(limit), ranking, ttl)

    async def invalidate_top_banners(self) -> None:
        """Delete every cached ranking, whatever its limit."""
        self._evict_with_rankings([])

    # -------------------------------------------------------------------------
    # Cascades and management
    # -------------------------------------------------------------------------

    async def invalidate_click_activity(self, banner_id: int) -> None:
        """Delete everything a new or removed click makes stale.

        The banner entry itself is kept: its own fields did not change.
        """
        self._evict_with_rankings(
            [CacheKeys.click_stats(banner_id), CacheKeys.banner_stats(banner_id)]
        )

    async def clear(self) -> None:
        """Delete all cached entries."""
        self.store.clear()

    def size(self) -> int:
        return self.store.size()

    def stats(self) -> CacheStats:
        return self.store.stats()
