"""API routers for clickstats."""

from clickstats.api.routers import banners, cache, clicks, health

__all__ = ["banners", "cache", "clicks", "health"]
