"""Backing repository contract.

Anything satisfying ClickStatsBackend can sit behind CachedRepository: the
SQLAlchemy repository in production, an in-memory fake in tests.

Every method may raise NotFoundError when the addressed banner or click
does not exist, and BackingStoreError when the store itself fails.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol, runtime_checkable

from clickstats.core.models import (
    Banner,
    BannerClickCount,
    BannerWithStats,
    Click,
    ClickStats,
    DailyClicks,
    HourlyClicks,
)


@runtime_checkable
class ClickStatsBackend(Protocol):
    """Async persistence operations for banners and clicks."""

    # Banners
    async def create_banner(self, banner: Banner) -> Banner: ...
    async def get_banner(self, banner_id: int) -> Banner: ...
    async def get_all_banners(self) -> list[Banner]: ...
    async def update_banner(self, banner: Banner) -> Banner: ...
    async def delete_banner(self, banner_id: int) -> None: ...
    async def get_banner_by_name(self, name: str) -> Banner: ...
    async def search_banners_by_name(self, name: str) -> list[Banner]: ...
    async def get_banners_with_click_count(self) -> list[BannerWithStats]: ...

    # Clicks
    async def create_click(self, click: Click) -> Click: ...
    async def get_click(self, click_id: int) -> Click: ...
    async def get_all_clicks(self) -> list[Click]: ...
    async def get_clicks_by_banner(self, banner_id: int) -> list[Click]: ...
    async def get_clicks_by_date_range(self, start: datetime, end: datetime) -> list[Click]: ...
    async def get_clicks_by_banner_and_date_range(
        self, banner_id: int, start: datetime, end: datetime
    ) -> list[Click]: ...
    async def delete_click(self, click_id: int) -> None: ...

    # Aggregates
    async def get_click_stats(self, banner_id: int) -> ClickStats: ...
    async def get_banner_with_stats(self, banner_id: int) -> BannerWithStats: ...
    async def get_top_banners(self, limit: int) -> list[BannerClickCount]: ...
    async def get_clicks_by_hour(self, banner_id: int, day: date) -> list[HourlyClicks]: ...
    async def get_clicks_by_day(
        self, banner_id: int, start: date, end: date
    ) -> list[DailyClicks]: ...
