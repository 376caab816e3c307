"""Domain models and errors for clickstats."""

from clickstats.core.errors import (
    BackingStoreError,
    ClickStatsError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from clickstats.core.models import (
    Banner,
    BannerClickCount,
    BannerWithStats,
    Click,
    ClickStats,
    DailyClicks,
    HourlyClicks,
)

__all__ = [
    # Models
    "Banner",
    "Click",
    "ClickStats",
    "BannerWithStats",
    "BannerClickCount",
    "HourlyClicks",
    "DailyClicks",
    # Errors
    "ClickStatsError",
    "NotFoundError",
    "BackingStoreError",
    "ValidationError",
    "ConflictError",
]
