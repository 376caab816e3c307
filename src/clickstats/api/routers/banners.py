"""Banner API router.

- GET    /api/v1/banners                             - List banners (optional ?name= search)
- POST   /api/v1/banners                             - Create banner
- GET    /api/v1/banners/top                         - Top banners by click count (cached)
- GET    /api/v1/banners/{id}                        - Get banner (cached)
- PUT    /api/v1/banners/{id}                        - Rename banner
- DELETE /api/v1/banners/{id}                        - Delete banner and its clicks
- GET    /api/v1/banners/{id}/stats                  - Banner with click count (cached)
- GET    /api/v1/banners/{id}/clicks                 - Clicks, optionally within ?start=&end=
- GET    /api/v1/banners/{id}/clicks/hourly?date=    - Clicks per hour for one day
- GET    /api/v1/banners/{id}/clicks/daily?start=&end= - Clicks per day in a range
"""

from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel

from clickstats.api.deps import BannerId, get_repository
from clickstats.core.errors import ConflictError, NotFoundError, ValidationError
from clickstats.core.models import (
    Banner,
    BannerClickCount,
    BannerWithStats,
    Click,
    DailyClicks,
    HourlyClicks,
)
from clickstats.persistence.protocol import ClickStatsBackend

router = APIRouter(prefix="/api/v1/banners", tags=["banners"])

MAX_NAME_LENGTH = 255
DEFAULT_TOP_LIMIT = 10
MAX_TOP_LIMIT = 100


class BannerWrite(BaseModel):
    """Request body for creating or renaming a banner."""

    name: str


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise ValidationError("Banner name cannot be empty")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError(f"Banner name cannot exceed {MAX_NAME_LENGTH} characters")
    return cleaned


async def _ensure_name_available(
    repo: ClickStatsBackend, name: str, banner_id: int | None = None
) -> None:
    """Raise ConflictError if another banner already uses name."""
    try:
        existing = await repo.get_banner_by_name(name)
    except NotFoundError:
        return
    if existing.id != banner_id:
        raise ConflictError("Banner", name)


def _check_range(start: date | datetime, end: date | datetime) -> None:
    if start > end:
        raise ValidationError("start cannot be after end")


@router.get("", response_model=list[Banner])
async def list_banners(
    name: str | None = Query(None, description="Case-insensitive name substring"),
    repo: ClickStatsBackend = Depends(get_repository),
) -> list[Banner]:
    """List banners, newest first, or search them by name."""
    if name:
        return await repo.search_banners_by_name(name)
    return await repo.get_all_banners()


@router.post("", response_model=Banner, status_code=201)
async def create_banner(
    body: BannerWrite,
    repo: ClickStatsBackend = Depends(get_repository),
) -> Banner:
    name = _clean_name(body.name)
    await _ensure_name_available(repo, name)
    return await repo.create_banner(Banner(name=name))


@router.get("/top", response_model=list[BannerClickCount])
async def top_banners(
    limit: int = Query(DEFAULT_TOP_LIMIT, ge=1, le=MAX_TOP_LIMIT),
    repo: ClickStatsBackend = Depends(get_repository),
) -> list[BannerClickCount]:
    """Banners ranked by click count, ties broken by name."""
    return await repo.get_top_banners(limit)


@router.get("/{banner_id}", response_model=Banner)
async def get_banner(
    banner_id: BannerId,
    repo: ClickStatsBackend = Depends(get_repository),
) -> Banner:
    return await repo.get_banner(banner_id)


@router.put("/{banner_id}", response_model=Banner)
async def update_banner(
    banner_id: BannerId,
    body: BannerWrite,
    repo: ClickStatsBackend = Depends(get_repository),
) -> Banner:
    """Rename a banner."""
    current = await repo.get_banner(banner_id)
    name = _clean_name(body.name)
    await _ensure_name_available(repo, name, banner_id)
    return await repo.update_banner(current.model_copy(update={"name": name}))


@router.delete("/{banner_id}", status_code=204)
async def delete_banner(
    banner_id: BannerId,
    repo: ClickStatsBackend = Depends(get_repository),
) -> Response:
    """Delete a banner together with its clicks."""
    await repo.delete_banner(banner_id)
    return Response(status_code=204)


@router.get("/{banner_id}/stats", response_model=BannerWithStats)
async def banner_stats(
    banner_id: BannerId,
    repo: ClickStatsBackend = Depends(get_repository),
) -> BannerWithStats:
    return await repo.get_banner_with_stats(banner_id)


@router.get("/{banner_id}/clicks", response_model=list[Click])
async def banner_clicks(
    banner_id: BannerId,
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    repo: ClickStatsBackend = Depends(get_repository),
) -> list[Click]:
    """Clicks for a banner, newest first.

    With both start and end, only clicks in [start, end] are returned.
    """
    await repo.get_banner(banner_id)
    if start is not None and end is not None:
        _check_range(start, end)
        return await repo.get_clicks_by_banner_and_date_range(banner_id, start, end)
    if start is not None or end is not None:
        raise ValidationError("start and end must be given together")
    return await repo.get_clicks_by_banner(banner_id)


@router.get("/{banner_id}/clicks/hourly", response_model=list[HourlyClicks])
async def clicks_by_hour(
    banner_id: BannerId,
    day: date = Query(..., alias="date"),
    repo: ClickStatsBackend = Depends(get_repository),
) -> list[HourlyClicks]:
    """Clicks per hour of day for one calendar day (UTC)."""
    return await repo.get_clicks_by_hour(banner_id, day)


@router.get("/{banner_id}/clicks/daily", response_model=list[DailyClicks])
async def clicks_by_day(
    banner_id: BannerId,
    start: date = Query(...),
    end: date = Query(...),
    repo: ClickStatsBackend = Depends(get_repository),
) -> list[DailyClicks]:
    """Clicks per calendar day, start and end inclusive."""
    _check_range(start, end)
    return await repo.get_clicks_by_day(banner_id, start, end)
