"""FastAPI application factory for clickstats.

Creates the application with:
- Click counter, stats, banner and click routers under /api/v1
- Cache management endpoints
- Lifecycle management for the in-memory cache and database pool
- Correlation ids in logs and response headers
- Uniform {"error", "message"} error bodies
- ORJSON for fast JSON serialization
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from clickstats import __version__
from clickstats.api.errors import (
    ApiError,
    api_error_handler,
    backing_store_handler,
    conflict_handler,
    generic_exception_handler,
    not_found_handler,
    request_validation_handler,
    validation_handler,
)
from clickstats.api.middleware import CorrelationMiddleware
from clickstats.api.routers import banners, cache, clicks, health
from clickstats.cache import CachedRepository, InMemoryClickStatsCache, MemoryStore
from clickstats.config import settings
from clickstats.core.errors import (
    BackingStoreError,
    ClickStatsError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from clickstats.observability import configure_logging
from clickstats.persistence.db import close_db, session_context
from clickstats.persistence.repositories import ClickStatsRepository

logger = logging.getLogger(__name__)


def create_cache(store: MemoryStore) -> InMemoryClickStatsCache:
    """Build the cache facade with TTLs from configuration."""
    return InMemoryClickStatsCache(
        store,
        banner_ttl=settings.cache_banner_ttl,
        click_stats_ttl=settings.cache_click_stats_ttl,
        banner_stats_ttl=settings.cache_banner_stats_ttl,
        top_banners_ttl=settings.cache_top_banners_ttl,
    )


async def warm_on_startup(cache_facade: InMemoryClickStatsCache) -> None:
    """Warm the cache from the database, logging instead of failing startup."""
    try:
        async with session_context() as session:
            repo = CachedRepository(ClickStatsRepository(session), cache_facade)
            await repo.warm_cache(top_limit=settings.cache_warm_top_limit)
    except ClickStatsError as e:
        logger.warning(f"Cache warm-up on startup failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    On startup:
    - Configure structured logging
    - Create the cache store and start its reaper
    - Optionally warm the cache

    On shutdown:
    - Stop the reaper
    - Close database connections
    """
    configure_logging(json_format=settings.use_json_logs, level=settings.log_level)

    logger.info(f"Starting clickstats ({settings.env})")

    store: MemoryStore | None = None
    app.state.cache = None
    if settings.cache_enabled:
        store = MemoryStore(cleanup_interval=settings.cache_cleanup_interval)
        app.state.cache = create_cache(store)
        await store.start()
        if settings.cache_warm_on_startup:
            await warm_on_startup(app.state.cache)
    else:
        logger.info("In-memory cache disabled")

    logger.info("clickstats startup complete")

    yield

    logger.info("Shutting down clickstats")
    if store is not None:
        await store.stop()
    await close_db()
    logger.info("clickstats shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="clickstats",
        description="Banner click tracking with an in-memory cached repository",
        version=__version__,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(CorrelationMiddleware)

    # Register exception handlers
    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_error_handler))
    app.add_exception_handler(NotFoundError, cast(ExceptionHandler, not_found_handler))
    app.add_exception_handler(ConflictError, cast(ExceptionHandler, conflict_handler))
    app.add_exception_handler(ValidationError, cast(ExceptionHandler, validation_handler))
    app.add_exception_handler(
        RequestValidationError, cast(ExceptionHandler, request_validation_handler)
    )
    app.add_exception_handler(BackingStoreError, cast(ExceptionHandler, backing_store_handler))
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    # Include routers
    app.include_router(health.router)
    app.include_router(clicks.router)
    app.include_router(banners.router)
    app.include_router(cache.router)

    return app


app = create_app()
