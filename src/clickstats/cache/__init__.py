"""Cache layer for clickstats.

Provides in-process TTL caching in front of the backing repository:
- MemoryStore holds entries with per-key expiry and a background reaper
- InMemoryClickStatsCache maps banner/click reads onto namespaced keys
- CachedRepository reads through the cache and invalidates on writes
"""

from clickstats.cache.base import ClickStatsCache
from clickstats.cache.keys import CacheKeys, Namespace
from clickstats.cache.memory import InMemoryClickStatsCache
from clickstats.cache.repository import CachedRepository
from clickstats.cache.store import CacheEntry, CacheStats, MemoryStore

__all__ = [
    # Storage
    "CacheEntry",
    "CacheStats",
    "MemoryStore",
    # Facade
    "CacheKeys",
    "Namespace",
    "ClickStatsCache",
    "InMemoryClickStatsCache",
    # Repository
    "CachedRepository",
]
