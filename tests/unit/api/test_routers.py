"""Tests for the HTTP API, running the cached stack over SQLite."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterator
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from clickstats.api.app import create_app
from clickstats.api.deps import get_backend
from clickstats.api.routers import health
from clickstats.cache import InMemoryClickStatsCache, MemoryStore
from clickstats.config import settings
from clickstats.core.errors import BackingStoreError
from clickstats.persistence.protocol import ClickStatsBackend
from clickstats.persistence.repositories import ClickStatsRepository


def build_app(backend: ClickStatsBackend, cache: InMemoryClickStatsCache | None) -> FastAPI:
    app = create_app()
    app.state.cache = cache

    async def override_backend() -> ClickStatsBackend:
        return backend

    app.dependency_overrides[get_backend] = override_backend
    return app


@pytest.fixture
def api_cache() -> InMemoryClickStatsCache:
    return InMemoryClickStatsCache(MemoryStore())


@pytest.fixture
async def client(
    db_session: AsyncSession, api_cache: InMemoryClickStatsCache
) -> AsyncIterator[httpx.AsyncClient]:
    app = build_app(ClickStatsRepository(db_session), api_cache)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.fixture
async def uncached_client(db_session: AsyncSession) -> AsyncIterator[httpx.AsyncClient]:
    app = build_app(ClickStatsRepository(db_session), None)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


async def create_banner(client: httpx.AsyncClient, name: str) -> int:
    response = await client.post("/api/v1/banners", json={"name": name})
    assert response.status_code == 201
    return response.json()["id"]


class TestCounter:
    """Test click recording."""

    @pytest.mark.asyncio
    async def test_counter_increments(self, client: httpx.AsyncClient) -> None:
        """Each call records one click and returns the new total."""
        banner_id = await create_banner(client, "spring-sale")

        first = await client.get(f"/api/v1/counter/{banner_id}")
        second = await client.get(f"/api/v1/counter/{banner_id}")

        assert first.status_code == 200
        assert first.json()["click_count"] == 1
        assert second.json()["click_count"] == 2
        assert second.json()["message"] == "Click recorded successfully"
        assert second.json()["banner_id"] == banner_id

    @pytest.mark.asyncio
    async def test_counter_unknown_banner(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/counter/404")
        assert response.status_code == 404
        assert response.json()["error"] == "Banner not found"

    @pytest.mark.asyncio
    async def test_counter_rejects_bad_id(self, client: httpx.AsyncClient) -> None:
        """Non-numeric and non-positive ids are 400."""
        assert (await client.get("/api/v1/counter/abc")).status_code == 400
        assert (await client.get("/api/v1/counter/0")).status_code == 400

    @pytest.mark.asyncio
    async def test_counter_keeps_banner_cached(
        self, client: httpx.AsyncClient, api_cache: InMemoryClickStatsCache
    ) -> None:
        """Recording a click does not evict the banner entry."""
        banner_id = await create_banner(client, "spring-sale")
        await client.get(f"/api/v1/banners/{banner_id}")

        await client.get(f"/api/v1/counter/{banner_id}")

        assert await api_cache.get_banner(banner_id) is not None


class TestPeriodStats:
    """Test the stats endpoint."""

    @pytest.mark.asyncio
    async def test_stats_for_period(self, client: httpx.AsyncClient) -> None:
        banner_id = await create_banner(client, "spring-sale")
        for _ in range(3):
            await client.get(f"/api/v1/counter/{banner_id}")

        response = await client.post(
            f"/api/v1/stats/{banner_id}",
            json={"ts_from": "2000-01-01T00:00:00Z", "ts_to": "2100-01-01T00:00:00Z"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_clicks"] == 3
        assert data["clicks_in_period"] == 3
        assert data["first_click"] is not None

    @pytest.mark.asyncio
    async def test_empty_period(self, client: httpx.AsyncClient) -> None:
        banner_id = await create_banner(client, "spring-sale")
        await client.get(f"/api/v1/counter/{banner_id}")

        response = await client.post(
            f"/api/v1/stats/{banner_id}",
            json={"ts_from": "2000-01-01T00:00:00Z", "ts_to": "2000-01-02T00:00:00Z"},
        )

        assert response.json()["total_clicks"] == 1
        assert response.json()["clicks_in_period"] == 0

    @pytest.mark.asyncio
    async def test_inverted_period(self, client: httpx.AsyncClient) -> None:
        """ts_from after ts_to is rejected."""
        banner_id = await create_banner(client, "spring-sale")

        response = await client.post(
            f"/api/v1/stats/{banner_id}",
            json={"ts_from": "2025-01-02T00:00:00Z", "ts_to": "2025-01-01T00:00:00Z"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid time range"

    @pytest.mark.asyncio
    async def test_missing_body_field(self, client: httpx.AsyncClient) -> None:
        banner_id = await create_banner(client, "spring-sale")
        response = await client.post(f"/api/v1/stats/{banner_id}", json={"ts_from": "x"})
        assert response.status_code == 400


class TestBanners:
    """Test banner CRUD endpoints."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, client: httpx.AsyncClient) -> None:
        banner_id = await create_banner(client, "  spring-sale  ")

        response = await client.get(f"/api/v1/banners/{banner_id}")

        assert response.status_code == 200
        assert response.json()["name"] == "spring-sale"

    @pytest.mark.asyncio
    async def test_create_invalid_names(self, client: httpx.AsyncClient) -> None:
        """Blank and over-long names are rejected."""
        blank = await client.post("/api/v1/banners", json={"name": "   "})
        too_long = await client.post("/api/v1/banners", json={"name": "x" * 256})

        assert blank.status_code == 400
        assert too_long.status_code == 400

    @pytest.mark.asyncio
    async def test_create_duplicate_name(self, client: httpx.AsyncClient) -> None:
        await create_banner(client, "spring-sale")

        response = await client.post("/api/v1/banners", json={"name": "spring-sale"})

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_list_and_search(self, client: httpx.AsyncClient) -> None:
        await create_banner(client, "spring-sale")
        await create_banner(client, "newsletter")

        everything = await client.get("/api/v1/banners")
        search = await client.get("/api/v1/banners", params={"name": "SALE"})

        assert len(everything.json()) == 2
        assert [b["name"] for b in search.json()] == ["spring-sale"]

    @pytest.mark.asyncio
    async def test_rename_banner(self, client: httpx.AsyncClient) -> None:
        """A rename is visible on the next read despite caching."""
        banner_id = await create_banner(client, "spring-sale")
        await client.get(f"/api/v1/banners/{banner_id}")

        response = await client.put(f"/api/v1/banners/{banner_id}", json={"name": "summer-sale"})

        assert response.status_code == 200
        fetched = await client.get(f"/api/v1/banners/{banner_id}")
        assert fetched.json()["name"] == "summer-sale"

    @pytest.mark.asyncio
    async def test_rename_to_own_name(self, client: httpx.AsyncClient) -> None:
        banner_id = await create_banner(client, "spring-sale")
        response = await client.put(f"/api/v1/banners/{banner_id}", json={"name": "spring-sale"})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_rename_missing_banner(self, client: httpx.AsyncClient) -> None:
        response = await client.put("/api/v1/banners/404", json={"name": "ghost"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_banner(self, client: httpx.AsyncClient) -> None:
        """A deleted banner is gone even if it was cached."""
        banner_id = await create_banner(client, "spring-sale")
        await client.get(f"/api/v1/counter/{banner_id}")
        await client.get(f"/api/v1/banners/{banner_id}/stats")

        response = await client.delete(f"/api/v1/banners/{banner_id}")

        assert response.status_code == 204
        assert (await client.get(f"/api/v1/banners/{banner_id}")).status_code == 404
        assert (await client.get(f"/api/v1/banners/{banner_id}/stats")).status_code == 404

    @pytest.mark.asyncio
    async def test_banner_stats(self, client: httpx.AsyncClient) -> None:
        banner_id = await create_banner(client, "spring-sale")
        await client.get(f"/api/v1/counter/{banner_id}")
        await client.get(f"/api/v1/banners/{banner_id}/stats")
        await client.get(f"/api/v1/counter/{banner_id}")

        response = await client.get(f"/api/v1/banners/{banner_id}/stats")

        assert response.json()["click_count"] == 2
        assert response.json()["banner"]["name"] == "spring-sale"

    @pytest.mark.asyncio
    async def test_top_banners(self, client: httpx.AsyncClient) -> None:
        """The ranking reflects clicks recorded after it was cached."""
        first = await create_banner(client, "first")
        second = await create_banner(client, "second")
        await client.get(f"/api/v1/counter/{first}")
        await client.get("/api/v1/banners/top", params={"limit": 2})

        await client.get(f"/api/v1/counter/{second}")
        await client.get(f"/api/v1/counter/{second}")
        response = await client.get("/api/v1/banners/top", params={"limit": 2})

        assert [b["banner_name"] for b in response.json()] == ["second", "first"]

    @pytest.mark.asyncio
    async def test_top_banners_limit_bounds(self, client: httpx.AsyncClient) -> None:
        assert (await client.get("/api/v1/banners/top", params={"limit": 0})).status_code == 400
        assert (await client.get("/api/v1/banners/top", params={"limit": 101})).status_code == 400

    @pytest.mark.asyncio
    async def test_banner_clicks_and_histograms(self, client: httpx.AsyncClient) -> None:
        banner_id = await create_banner(client, "spring-sale")
        await client.get(f"/api/v1/counter/{banner_id}")

        clicks = await client.get(f"/api/v1/banners/{banner_id}/clicks")
        hourly = await client.get(
            f"/api/v1/banners/{banner_id}/clicks/hourly", params={"date": "2025-01-27"}
        )
        daily = await client.get(
            f"/api/v1/banners/{banner_id}/clicks/daily",
            params={"start": "2025-01-28", "end": "2025-01-27"},
        )

        assert len(clicks.json()) == 1
        assert hourly.status_code == 200
        assert daily.status_code == 400

    @pytest.mark.asyncio
    async def test_banner_clicks_needs_both_bounds(self, client: httpx.AsyncClient) -> None:
        banner_id = await create_banner(client, "spring-sale")
        response = await client.get(
            f"/api/v1/banners/{banner_id}/clicks", params={"start": "2025-01-27T00:00:00Z"}
        )
        assert response.status_code == 400


class TestClicks:
    """Test click endpoints."""

    @pytest.mark.asyncio
    async def test_get_and_delete_click(self, client: httpx.AsyncClient) -> None:
        """Deleting a click lowers the banner's total."""
        banner_id = await create_banner(client, "spring-sale")
        await client.get(f"/api/v1/counter/{banner_id}")
        await client.get(f"/api/v1/counter/{banner_id}")
        click_id = (await client.get("/api/v1/clicks")).json()[0]["id"]

        assert (await client.get(f"/api/v1/clicks/{click_id}")).status_code == 200
        assert (await client.delete(f"/api/v1/clicks/{click_id}")).status_code == 204
        assert (await client.get(f"/api/v1/clicks/{click_id}")).status_code == 404

        stats = await client.get(f"/api/v1/banners/{banner_id}/stats")
        assert stats.json()["click_count"] == 1

    @pytest.mark.asyncio
    async def test_list_clicks_range_validation(self, client: httpx.AsyncClient) -> None:
        response = await client.get(
            "/api/v1/clicks",
            params={"start": "2025-01-28T00:00:00Z", "end": "2025-01-27T00:00:00Z"},
        )
        assert response.status_code == 400


class TestCacheEndpoints:
    """Test cache management endpoints."""

    @pytest.mark.asyncio
    async def test_stats_counts_hits(self, client: httpx.AsyncClient) -> None:
        banner_id = await create_banner(client, "spring-sale")
        await client.get(f"/api/v1/banners/{banner_id}")
        await client.get(f"/api/v1/banners/{banner_id}")

        response = await client.get("/api/v1/cache/stats")

        assert response.status_code == 200
        stats = response.json()["stats"]
        assert stats["hits"] == 2
        assert stats["size"] == 1
        assert 0.0 <= stats["hit_rate"] <= 1.0

    @pytest.mark.asyncio
    async def test_clear(
        self, client: httpx.AsyncClient, api_cache: InMemoryClickStatsCache
    ) -> None:
        await create_banner(client, "spring-sale")

        response = await client.post("/api/v1/cache/clear")

        assert response.status_code == 200
        assert response.json()["size"] == 0
        assert api_cache.size() == 0

    @pytest.mark.asyncio
    async def test_warm(self, client: httpx.AsyncClient, api_cache: InMemoryClickStatsCache) -> None:
        """Warm-up loads every banner, its stats and the ranking."""
        await create_banner(client, "spring-sale")
        await create_banner(client, "newsletter")
        await client.post("/api/v1/cache/clear")

        response = await client.post("/api/v1/cache/warm", params={"top_limit": 5})

        assert response.status_code == 200
        assert response.json()["size"] == 5
        assert await api_cache.get_top_banners(5) is not None

    @pytest.mark.asyncio
    async def test_invalidate_banner(
        self, client: httpx.AsyncClient, api_cache: InMemoryClickStatsCache
    ) -> None:
        banner_id = await create_banner(client, "spring-sale")

        response = await client.post(f"/api/v1/cache/banner/{banner_id}/invalidate")

        assert response.status_code == 200
        assert response.json()["banner_id"] == banner_id
        assert await api_cache.get_banner(banner_id) is None

    @pytest.mark.asyncio
    async def test_disabled_cache(self, uncached_client: httpx.AsyncClient) -> None:
        """Cache endpoints answer 503 while plain reads keep working."""
        banner_id = await create_banner(uncached_client, "spring-sale")

        stats = await uncached_client.get("/api/v1/cache/stats")
        banner = await uncached_client.get(f"/api/v1/banners/{banner_id}")

        assert stats.status_code == 503
        assert stats.json()["error"] == "Cache disabled"
        assert banner.status_code == 200


class TestBackingStoreFailures:
    """Test responses when the database fails."""

    @pytest.mark.asyncio
    async def test_read_failure_is_500(
        self, backend: AsyncMock, api_cache: InMemoryClickStatsCache
    ) -> None:
        backend.get_banner.side_effect = BackingStoreError("connection refused")
        app = build_app(backend, api_cache)

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            response = await http.get("/api/v1/banners/1")

        assert response.status_code == 500
        assert response.json()["error"] == "Backing store error"
        assert api_cache.size() == 0


class TestHealthAndMiddleware:
    """Test health endpoints and correlation headers."""

    @pytest.mark.asyncio
    async def test_health(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["cache"] == {"enabled": True, "size": 0}

    @pytest.mark.asyncio
    async def test_health_without_cache(self, uncached_client: httpx.AsyncClient) -> None:
        response = await uncached_client.get("/health")
        assert response.json()["cache"] == {"enabled": False, "size": 0}

    @pytest.mark.asyncio
    async def test_live(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/health/live")
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_ready_reports_database_down(
        self, client: httpx.AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(health, "db_health_check", AsyncMock(return_value=False))

        response = await client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["checks"]["database"]["status"] == "down"

    @pytest.mark.asyncio
    async def test_correlation_headers(self, client: httpx.AsyncClient) -> None:
        """Incoming ids are echoed, missing ones are generated."""
        echoed = await client.get("/health/live", headers={"x-request-id": "req-1"})
        generated = await client.get("/health/live")

        assert echoed.headers["x-request-id"] == "req-1"
        assert echoed.headers["x-correlation-id"] == "req-1"
        assert generated.headers["x-request-id"]


class TestLifespan:
    """Test cache setup and teardown during the app lifespan."""

    @pytest.fixture(autouse=True)
    def restore_logging(self) -> Iterator[None]:
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_cache_created_and_reaper_stopped(self) -> None:
        app = create_app()

        with TestClient(app):
            cache = app.state.cache
            assert isinstance(cache, InMemoryClickStatsCache)
            assert cache.store.running

        assert not cache.store.running

    def test_cache_disabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "cache_enabled", False)
        app = create_app()

        with TestClient(app) as http:
            assert app.state.cache is None
            assert http.get("/health").json()["cache"]["enabled"] is False
