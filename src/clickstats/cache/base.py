"""Cache facade protocol.

ClickStatsCache is the typed API the cached repository talks to. The only
implementation today is the in-memory one, but the methods are async so a
shared backend could be plugged in without touching CachedRepository.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol, runtime_checkable

from clickstats.cache.store import CacheStats
from clickstats.core.models import Banner, BannerClickCount, BannerWithStats, ClickStats

TTL = float | timedelta

# Default TTLs in seconds, longer for less volatile data
DEFAULT_BANNER_TTL = 300.0
DEFAULT_CLICK_STATS_TTL = 120.0
DEFAULT_BANNER_STATS_TTL = 180.0
DEFAULT_TOP_BANNERS_TTL = 60.0


@runtime_checkable
class ClickStatsCache(Protocol):
    """Typed get/set/invalidate operations per derived-data kind."""

    # Banners
    async def get_banner(self, banner_id: int) -> Banner | None: ...
    async def set_banner(self, banner: Banner, ttl: TTL | None = None) -> None: ...
    async def delete_banner(self, banner_id: int) -> None: ...
    async def invalidate_banner(self, banner_id: int) -> None: ...

    # Click statistics
    async def get_click_stats(self, banner_id: int) -> ClickStats | None: ...
    async def set_click_stats(
        self, banner_id: int, stats: ClickStats, ttl: TTL | None = None
    ) -> None: ...
    async def invalidate_click_stats(self, banner_id: int) -> None: ...

    # Banner with stats
    async def get_banner_with_stats(self, banner_id: int) -> BannerWithStats | None: ...
    async def set_banner_with_stats(
        self, banner_id: int, stats: BannerWithStats, ttl: TTL | None = None
    ) -> None: ...
    async def invalidate_banner_with_stats(self, banner_id: int) -> None: ...

    # Top banners
    async def get_top_banners(self, limit: int) -> list[BannerClickCount] | None: ...
    async def set_top_banners(
        self, limit: int, banners: list[BannerClickCount], ttl: TTL | None = None
    ) -> None: ...
    async def invalidate_top_banners(self) -> None: ...

    # Cascades and management
    async def invalidate_click_activity(self, banner_id: int) -> None: ...
    async def clear(self) -> None: ...
    def size(self) -> int: ...
    def stats(self) -> CacheStats: ...
