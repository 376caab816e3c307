"""Domain models for banner click tracking.

Banners and clicks are the persisted entities; the remaining models are
read-only aggregates computed by the repository. All of them are pydantic
models so they serialize directly in API responses.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class Banner(BaseModel):
    """A banner whose impressions are counted."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    name: str = Field(min_length=1, max_length=255)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Click(BaseModel):
    """A single recorded impression of a banner."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    banner_id: int
    timestamp: datetime
    created_at: datetime | None = None


class ClickStats(BaseModel):
    """Lifetime click totals for one banner."""

    banner_id: int
    total_clicks: int = 0
    first_click: datetime | None = None
    last_click: datetime | None = None


class BannerWithStats(BaseModel):
    """Banner joined with its click count."""

    banner: Banner
    click_count: int = 0
    last_click: datetime | None = None


class BannerClickCount(BaseModel):
    """One row of the top banners ranking."""

    banner_id: int
    banner_name: str
    click_count: int


class HourlyClicks(BaseModel):
    hour: int
    click_count: int


class DailyClicks(BaseModel):
    day: date
    click_count: int
