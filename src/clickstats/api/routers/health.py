"""Health check endpoints.

- /health       - Service status with cache size
- /health/live  - Liveness probe (always OK while the process runs)
- /health/ready - Readiness probe (checks database connectivity)
"""

from __future__ import annotations

import asyncio
import time
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import ORJSONResponse

from clickstats import __version__
from clickstats.api.deps import get_cache
from clickstats.cache import ClickStatsCache
from clickstats.persistence.db import health_check as db_health_check

router = APIRouter(tags=["health"])

DB_CHECK_TIMEOUT = 5.0  # seconds


async def check_database() -> dict[str, Any]:
    """Check database connectivity, reporting latency and any failure."""
    start = time.monotonic()
    try:
        healthy = await asyncio.wait_for(db_health_check(), timeout=DB_CHECK_TIMEOUT)
        message = None if healthy else "Database check failed"
    except asyncio.TimeoutError:
        healthy = False
        message = "Database check timed out"

    result: dict[str, Any] = {
        "status": "up" if healthy else "down",
        "latency_ms": round((time.monotonic() - start) * 1000, 2),
    }
    if message:
        result["message"] = message
    return result


@router.get("/health")
async def health(cache: ClickStatsCache | None = Depends(get_cache)) -> dict[str, Any]:
    """Service status, version and current cache size."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": __version__,
        "cache": {
            "enabled": cache is not None,
            "size": cache.size() if cache is not None else 0,
        },
    }


@router.get("/health/live")
async def live() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@router.get("/health/ready")
async def ready() -> ORJSONResponse:
    """Readiness probe.

    Returns 200 when the database answers, 503 otherwise.
    """
    database = await check_database()
    healthy = database["status"] == "up"
    return ORJSONResponse(
        content={"status": "healthy" if healthy else "unhealthy", "checks": {"database": database}},
        status_code=200 if healthy else 503,
    )
