"""SQLAlchemy ORM models for banner click persistence.

Clicks reference their banner with ON DELETE CASCADE, so deleting a banner
removes its click history in the same statement.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class BannerTable(Base):
    """Banners whose impressions are counted."""

    __tablename__ = "banners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    clicks: Mapped[list[ClickTable]] = relationship(
        back_populates="banner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("idx_banners_name", "name"),)


class ClickTable(Base):
    """One row per recorded banner impression."""

    __tablename__ = "clicks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    banner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("banners.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    banner: Mapped[BannerTable] = relationship(back_populates="clicks")

    __table_args__ = (
        Index("idx_clicks_banner_id", "banner_id"),
        Index("idx_clicks_timestamp", "timestamp"),
        Index("idx_clicks_created_at", "created_at"),
        Index("idx_clicks_banner_id_timestamp", "banner_id", "timestamp"),
    )
