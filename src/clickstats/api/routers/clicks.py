"""Click tracking API router.

- GET    /api/v1/counter/{banner_id}  - Record a click and return the new total
- POST   /api/v1/stats/{banner_id}    - Totals plus clicks within a time period
- GET    /api/v1/clicks               - All clicks, optionally within ?start=&end=
- GET    /api/v1/clicks/{click_id}    - Get a click
- DELETE /api/v1/clicks/{click_id}    - Delete a click
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel

from clickstats.api.deps import BannerId, ClickId, get_repository
from clickstats.api.errors import BadRequestError
from clickstats.core.errors import ValidationError
from clickstats.core.models import Click
from clickstats.persistence.protocol import ClickStatsBackend

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["clicks"])


class CounterResponse(BaseModel):
    banner_id: int
    click_count: int
    timestamp: datetime
    message: str


class StatsRequest(BaseModel):
    ts_from: datetime
    ts_to: datetime


class StatsResponse(BaseModel):
    banner_id: int
    total_clicks: int
    first_click: datetime | None = None
    last_click: datetime | None = None
    period_start: datetime
    period_end: datetime
    clicks_in_period: int


@router.get("/counter/{banner_id}", response_model=CounterResponse)
async def count_click(
    banner_id: BannerId,
    repo: ClickStatsBackend = Depends(get_repository),
) -> CounterResponse:
    """Record one click for a banner at the current time."""
    click = await repo.create_click(Click(banner_id=banner_id, timestamp=datetime.now(UTC)))
    stats = await repo.get_click_stats(banner_id)
    logger.debug(f"Recorded click {click.id} for banner {banner_id}")

    return CounterResponse(
        banner_id=banner_id,
        click_count=stats.total_clicks,
        timestamp=click.timestamp,
        message="Click recorded successfully",
    )


@router.post("/stats/{banner_id}", response_model=StatsResponse)
async def period_stats(
    banner_id: BannerId,
    body: StatsRequest,
    repo: ClickStatsBackend = Depends(get_repository),
) -> StatsResponse:
    """Lifetime totals for a banner plus the number of clicks in [ts_from, ts_to]."""
    if body.ts_from > body.ts_to:
        raise BadRequestError("Invalid time range", "ts_from must be before ts_to")

    stats = await repo.get_click_stats(banner_id)
    in_period = await repo.get_clicks_by_banner_and_date_range(
        banner_id, body.ts_from, body.ts_to
    )

    return StatsResponse(
        banner_id=banner_id,
        total_clicks=stats.total_clicks,
        first_click=stats.first_click,
        last_click=stats.last_click,
        period_start=body.ts_from,
        period_end=body.ts_to,
        clicks_in_period=len(in_period),
    )


@router.get("/clicks", response_model=list[Click])
async def list_clicks(
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    repo: ClickStatsBackend = Depends(get_repository),
) -> list[Click]:
    """All clicks, newest first, or those within [start, end]."""
    if start is None and end is None:
        return await repo.get_all_clicks()
    if start is None or end is None:
        raise ValidationError("start and end must be given together")
    if start > end:
        raise ValidationError("start cannot be after end")
    return await repo.get_clicks_by_date_range(start, end)


@router.get("/clicks/{click_id}", response_model=Click)
async def get_click(
    click_id: ClickId,
    repo: ClickStatsBackend = Depends(get_repository),
) -> Click:
    return await repo.get_click(click_id)


@router.delete("/clicks/{click_id}", status_code=204)
async def delete_click(
    click_id: ClickId,
    repo: ClickStatsBackend = Depends(get_repository),
) -> Response:
    await repo.delete_click(click_id)
    return Response(status_code=204)
