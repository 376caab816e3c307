"""In-memory TTL key/value store.

MemoryStore is the storage engine behind the typed cache facade:
- Opaque values under string keys, each with its own expiration instant
- Hit/miss/set/delete/expiration counters updated under the same lock
- A background reaper task that removes expired entries on an interval

Every public operation takes a single lock for its whole critical section
and never performs I/O, so callers can use it from request handlers and
worker threads alike. The lock is never held across an await.

Example:
    store = MemoryStore(cleanup_interval=30)
    await store.start()

    store.set("banner:1", banner, ttl=300)
    value, found = store.get("banner:1")

    await store.stop()
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import timedelta
from types import TracebackType
from typing import Any

logger = logging.getLogger(__name__)

# Reaper interval when none is configured
DEFAULT_CLEANUP_INTERVAL = 30.0

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """A cached value with an absolute expiration instant."""

    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """An entry is live strictly before its expiration instant."""
        return now >= self.expires_at


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time snapshot of store counters.

    Counters are cumulative for the lifetime of the store; clear() only
    affects size.
    """

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    expirations: int = 0
    size: int = 0

    @property
    def requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Fraction of lookups served from cache (0.0 with no lookups)."""
        total = self.requests
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "expirations": self.expirations,
            "size": self.size,
            "hit_rate": round(self.hit_rate, 4),
        }


def _ttl_seconds(ttl: float | timedelta) -> float:
    if isinstance(ttl, timedelta):
        return ttl.total_seconds()
    return float(ttl)


class MemoryStore:
    """Thread-safe TTL store with a background reaper.

    The reaper is an asyncio task owned by the store. It is started with
    start() and must be stopped with stop() during shutdown; both are
    idempotent. Without a running reaper, expired entries are still never
    returned, they are just removed lazily on access.
    """

    def __init__(
        self,
        cleanup_interval: float | timedelta = DEFAULT_CLEANUP_INTERVAL,
        clock: Clock = time.monotonic,
    ):
        self.cleanup_interval = _ttl_seconds(cleanup_interval)
        if self.cleanup_interval <= 0:
            raise ValueError("cleanup_interval must be positive")

        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}

        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0
        self._expirations = 0

        self._reaper: asyncio.Task[None] | None = None

    # -------------------------------------------------------------------------
    # Core operations
    # -------------------------------------------------------------------------

    def get(self, key: str) -> tuple[Any, bool]:
        """Look up a key.

        Returns:
            Tuple of (value, True) on a hit, (None, False) on a miss. An
            expired entry is removed and counted as both a miss and an
            expiration.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None, False

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                return None, False

            self._hits += 1
            return entry.value, True

    def set(self, key: str, value: Any, ttl: float | timedelta) -> None:
        """Store a value, replacing any existing entry for the key.

        A ttl of zero or less is accepted; the entry is then already
        expired on its next access.
        """
        expires_at = self._clock() + _ttl_seconds(ttl)
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)
            self._sets += 1

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if an entry was removed."""
        with self._lock:
            if self._entries.pop(key, None) is None:
                return False
            self._deletes += 1
            return True

    def delete_many(self, keys: Iterable[str]) -> int:
        """Remove several keys atomically. Returns how many were removed."""
        with self._lock:
            removed = 0
            for key in keys:
                if self._entries.pop(key, None) is not None:
                    removed += 1
            self._deletes += removed
            return removed

    def delete_prefix(self, prefix: str) -> int:
        """Remove every key starting with prefix. Returns how many were removed."""
        with self._lock:
            matching = [key for key in self._entries if key.startswith(prefix)]
            for key in matching:
                del self._entries[key]
            self._deletes += len(matching)
            return len(matching)

    def delete_keys_and_prefix(self, keys: Iterable[str], prefix: str) -> int:
        """Remove the given keys and every key starting with prefix.

        Both removals happen under one lock acquisition, so a cascade is
        never observed half applied. Returns how many entries were removed.
        """
        with self._lock:
            removed = 0
            for key in keys:
                if self._entries.pop(key, None) is not None:
                    removed += 1
            matching = [key for key in self._entries if key.startswith(prefix)]
            for key in matching:
                del self._entries[key]
            removed += len(matching)
            self._deletes += removed
            return removed

    def clear(self) -> None:
        """Remove all entries. Cumulative counters are kept."""
        with self._lock:
            self._entries = {}
        logger.info("Cache cleared")

    def size(self) -> int:
        """Number of stored entries, including expired ones not yet reaped."""
        with self._lock:
            return len(self._entries)

    def keys(self, prefix: str = "") -> list[str]:
        """Snapshot of stored keys, optionally filtered by prefix."""
        with self._lock:
            return [key for key in self._entries if key.startswith(prefix)]

    def stats(self) -> CacheStats:
        """Snapshot of counters plus the current size."""
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                sets=self._sets,
                deletes=self._deletes,
                expirations=self._expirations,
                size=len(self._entries),
            )

    def reap_expired(self) -> int:
        """Remove every expired entry. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._expirations += len(expired)
            return len(expired)

    # -------------------------------------------------------------------------
    # Reaper lifecycle
    # -------------------------------------------------------------------------

    @property
    def running(self) -> bool:
        """Whether the reaper task is active."""
        return self._reaper is not None and not self._reaper.done()

    async def start(self) -> None:
        """Start the reaper task on the running event loop."""
        if self.running:
            return

        self._reaper = asyncio.create_task(self._reap_loop(), name="cache-reaper")
        logger.info(f"Started cache reaper (interval {self.cleanup_interval}s)")

    async def stop(self) -> None:
        """Stop the reaper and wait for it to finish. Safe to call repeatedly."""
        task = self._reaper
        self._reaper = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        logger.info("Stopped cache reaper")

    async def _reap_loop(self) -> None:
        """Main loop of the reaper task."""
        while True:
            await asyncio.sleep(self.cleanup_interval)
            try:
                removed = self.reap_expired()
            except Exception as e:
                logger.error(f"Error in cache reaper: {e}")
                continue

            if removed:
                logger.debug(f"Reaped {removed} expired cache entries")

    async def __aenter__(self) -> MemoryStore:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()
