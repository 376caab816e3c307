"""Persistence layer for clickstats.

This module provides:
- Async PostgreSQL engine and session factory
- SQLAlchemy ORM models for banners and clicks
- The SQL repository implementing ClickStatsBackend
- Alembic migrations
"""

from clickstats.persistence.db import close_db, get_engine, get_session, session_context
from clickstats.persistence.protocol import ClickStatsBackend
from clickstats.persistence.repositories import ClickStatsRepository
from clickstats.persistence.tables import BannerTable, Base, ClickTable

__all__ = [
    # DB
    "get_engine",
    "get_session",
    "session_context",
    "close_db",
    # Tables
    "Base",
    "BannerTable",
    "ClickTable",
    # Repositories
    "ClickStatsBackend",
    "ClickStatsRepository",
]
