"""SQLAlchemy repository for banners and clicks.

ClickStatsRepository implements ClickStatsBackend on top of an AsyncSession:
- Row lookups by id raise NotFoundError instead of returning None
- Aggregates (stats, rankings, histograms) are computed in SQL
- Every write commits before returning, so a returned value is durable

Any SQLAlchemyError is rolled back and re-raised as BackingStoreError so
callers above the persistence layer never depend on SQLAlchemy types.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, date, datetime, time, timedelta

from sqlalchemy import Select, delete, extract, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clickstats.core.errors import BackingStoreError, NotFoundError
from clickstats.core.models import (
    Banner,
    BannerClickCount,
    BannerWithStats,
    Click,
    ClickStats,
    DailyClicks,
    HourlyClicks,
)
from clickstats.persistence.tables import BannerTable, ClickTable


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    """Re-raise driver and ORM failures as BackingStoreError."""
    try:
        yield
    except SQLAlchemyError as e:
        raise BackingStoreError(f"Failed to {action}: {e}") from e


def _day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Half-open UTC interval covering whole calendar days start..end."""
    lower = datetime.combine(start, time.min, tzinfo=UTC)
    upper = datetime.combine(end, time.min, tzinfo=UTC) + timedelta(days=1)
    return lower, upper


class ClickStatsRepository:
    """Repository for banner and click operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _commit(self, action: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise BackingStoreError(f"Failed to {action}: {e}") from e

    async def _banner_row(self, banner_id: int) -> BannerTable:
        with _translate_errors("load banner"):
            row = await self.session.get(BannerTable, banner_id)
        if row is None:
            raise NotFoundError("Banner", banner_id)
        return row

    async def _clicks(self, stmt: Select[tuple[ClickTable]], action: str) -> list[Click]:
        with _translate_errors(action):
            result = await self.session.scalars(stmt)
            rows: Sequence[ClickTable] = result.all()
        return [Click.model_validate(row) for row in rows]

    # -------------------------------------------------------------------------
    # Banners
    # -------------------------------------------------------------------------

    async def create_banner(self, banner: Banner) -> Banner:
        """Insert a banner and fill in its generated id and timestamps."""
        row = BannerTable(name=banner.name)
        self.session.add(row)
        await self._commit("create banner")

        with _translate_errors("create banner"):
            await self.session.refresh(row)

        banner.id = row.id
        banner.created_at = row.created_at
        banner.updated_at = row.updated_at
        return banner

    async def get_banner(self, banner_id: int) -> Banner:
        row = await self._banner_row(banner_id)
        return Banner.model_validate(row)

    async def get_all_banners(self) -> list[Banner]:
        """All banners, newest first."""
        stmt = select(BannerTable).order_by(BannerTable.created_at.desc(), BannerTable.id.desc())
        with _translate_errors("get banners"):
            rows = (await self.session.scalars(stmt)).all()
        return [Banner.model_validate(row) for row in rows]

    async def update_banner(self, banner: Banner) -> Banner:
        """Rename a banner. Returns the stored row after the update."""
        if banner.id is None:
            raise NotFoundError("Banner", None)

        row = await self._banner_row(banner.id)
        row.name = banner.name
        await self._commit("update banner")

        with _translate_errors("update banner"):
            await self.session.refresh(row)
        return Banner.model_validate(row)

    async def delete_banner(self, banner_id: int) -> None:
        """Delete a banner; its clicks are removed by the foreign key cascade."""
        with _translate_errors("delete banner"):
            result = await self.session.execute(
                delete(BannerTable).where(BannerTable.id == banner_id)
            )
        if result.rowcount == 0:
            await self.session.rollback()
            raise NotFoundError("Banner", banner_id)
        await self._commit("delete banner")

    async def get_banner_by_name(self, name: str) -> Banner:
        stmt = select(BannerTable).where(BannerTable.name == name).limit(1)
        with _translate_errors("get banner by name"):
            row = (await self.session.scalars(stmt)).first()
        if row is None:
            raise NotFoundError("Banner", name)
        return Banner.model_validate(row)

    async def search_banners_by_name(self, name: str) -> list[Banner]:
        """Case-insensitive substring search, ordered by name."""
        stmt = (
            select(BannerTable)
            .where(BannerTable.name.ilike(f"%{name}%"))
            .order_by(BannerTable.name)
        )
        with _translate_errors("search banners"):
            rows = (await self.session.scalars(stmt)).all()
        return [Banner.model_validate(row) for row in rows]

    async def get_banners_with_click_count(self) -> list[BannerWithStats]:
        """Every banner with its click count, most clicked first."""
        stmt = (
            select(
                BannerTable,
                func.count(ClickTable.id).label("click_count"),
                func.max(ClickTable.timestamp).label("last_click"),
            )
            .outerjoin(ClickTable, ClickTable.banner_id == BannerTable.id)
            .group_by(BannerTable.id)
            .order_by(func.count(ClickTable.id).desc(), BannerTable.created_at.desc())
        )
        with _translate_errors("get banners with click count"):
            rows = (await self.session.execute(stmt)).all()

        return [
            BannerWithStats(
                banner=Banner.model_validate(row[0]),
                click_count=row.click_count,
                last_click=row.last_click,
            )
            for row in rows
        ]

    # -------------------------------------------------------------------------
    # Clicks
    # -------------------------------------------------------------------------

    async def create_click(self, click: Click) -> Click:
        """Record a click and fill in its generated id.

        Raises:
            NotFoundError: If the referenced banner does not exist.
        """
        await self._banner_row(click.banner_id)

        row = ClickTable(banner_id=click.banner_id, timestamp=click.timestamp)
        self.session.add(row)
        await self._commit("create click")

        with _translate_errors("create click"):
            await self.session.refresh(row)

        click.id = row.id
        click.created_at = row.created_at
        return click

    async def get_click(self, click_id: int) -> Click:
        with _translate_errors("get click"):
            row = await self.session.get(ClickTable, click_id)
        if row is None:
            raise NotFoundError("Click", click_id)
        return Click.model_validate(row)

    async def get_all_clicks(self) -> list[Click]:
        stmt = select(ClickTable).order_by(ClickTable.timestamp.desc())
        return await self._clicks(stmt, "get clicks")

    async def get_clicks_by_banner(self, banner_id: int) -> list[Click]:
        stmt = (
            select(ClickTable)
            .where(ClickTable.banner_id == banner_id)
            .order_by(ClickTable.timestamp.desc())
        )
        return await self._clicks(stmt, "get clicks by banner")

    async def get_clicks_by_date_range(self, start: datetime, end: datetime) -> list[Click]:
        """Clicks with start <= timestamp <= end, newest first."""
        stmt = (
            select(ClickTable)
            .where(ClickTable.timestamp.between(start, end))
            .order_by(ClickTable.timestamp.desc())
        )
        return await self._clicks(stmt, "get clicks by date range")

    async def get_clicks_by_banner_and_date_range(
        self, banner_id: int, start: datetime, end: datetime
    ) -> list[Click]:
        stmt = (
            select(ClickTable)
            .where(
                ClickTable.banner_id == banner_id,
                ClickTable.timestamp.between(start, end),
            )
            .order_by(ClickTable.timestamp.desc())
        )
        return await self._clicks(stmt, "get clicks by banner and date range")

    async def delete_click(self, click_id: int) -> None:
        with _translate_errors("delete click"):
            result = await self.session.execute(delete(ClickTable).where(ClickTable.id == click_id))
        if result.rowcount == 0:
            await self.session.rollback()
            raise NotFoundError("Click", click_id)
        await self._commit("delete click")

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    async def get_click_stats(self, banner_id: int) -> ClickStats:
        """Lifetime totals; a banner without clicks has zero and no dates."""
        await self._banner_row(banner_id)

        stmt = select(
            func.count(ClickTable.id),
            func.min(ClickTable.timestamp),
            func.max(ClickTable.timestamp),
        ).where(ClickTable.banner_id == banner_id)
        with _translate_errors("get click stats"):
            total, first_click, last_click = (await self.session.execute(stmt)).one()

        return ClickStats(
            banner_id=banner_id,
            total_clicks=total,
            first_click=first_click,
            last_click=last_click,
        )

    async def get_banner_with_stats(self, banner_id: int) -> BannerWithStats:
        row = await self._banner_row(banner_id)

        stmt = select(
            func.count(ClickTable.id),
            func.max(ClickTable.timestamp),
        ).where(ClickTable.banner_id == banner_id)
        with _translate_errors("get banner with stats"):
            count, last_click = (await self.session.execute(stmt)).one()

        return BannerWithStats(
            banner=Banner.model_validate(row),
            click_count=count,
            last_click=last_click,
        )

    async def get_top_banners(self, limit: int) -> list[BannerClickCount]:
        """Banners ranked by click count, ties broken by name."""
        click_count = func.count(ClickTable.id).label("click_count")
        stmt = (
            select(BannerTable.id, BannerTable.name, click_count)
            .outerjoin(ClickTable, ClickTable.banner_id == BannerTable.id)
            .group_by(BannerTable.id, BannerTable.name)
            .order_by(click_count.desc(), BannerTable.name)
            .limit(limit)
        )
        with _translate_errors("get top banners"):
            rows = (await self.session.execute(stmt)).all()

        return [
            BannerClickCount(banner_id=row.id, banner_name=row.name, click_count=row.click_count)
            for row in rows
        ]

    async def get_clicks_by_hour(self, banner_id: int, day: date) -> list[HourlyClicks]:
        """Clicks per hour of day for one calendar day (UTC). Empty hours are omitted."""
        await self._banner_row(banner_id)
        lower, upper = _day_bounds(day, day)

        hour = extract("hour", ClickTable.timestamp).label("hour")
        stmt = (
            select(hour, func.count(ClickTable.id).label("click_count"))
            .where(
                ClickTable.banner_id == banner_id,
                ClickTable.timestamp >= lower,
                ClickTable.timestamp < upper,
            )
            .group_by(hour)
            .order_by(hour)
        )
        with _translate_errors("get clicks by hour"):
            rows = (await self.session.execute(stmt)).all()

        return [HourlyClicks(hour=int(row.hour), click_count=row.click_count) for row in rows]

    async def get_clicks_by_day(self, banner_id: int, start: date, end: date) -> list[DailyClicks]:
        """Clicks per calendar day between start and end, both inclusive."""
        await self._banner_row(banner_id)
        lower, upper = _day_bounds(start, end)

        day = func.date(ClickTable.timestamp).label("day")
        stmt = (
            select(day, func.count(ClickTable.id).label("click_count"))
            .where(
                ClickTable.banner_id == banner_id,
                ClickTable.timestamp >= lower,
                ClickTable.timestamp < upper,
            )
            .group_by(day)
            .order_by(day)
        )
        with _translate_errors("get clicks by day"):
            rows = (await self.session.execute(stmt)).all()

        # SQLite returns DATE() as text; pydantic parses either form
        return [DailyClicks(day=row.day, click_count=row.click_count) for row in rows]
