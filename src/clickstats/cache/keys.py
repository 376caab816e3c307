"""Cache key schema for clickstats.

Key format: {namespace}:{value}

Where:
- namespace: "banner", "click_stats", "banner_stats", "top_banners"
- value: decimal banner id, or the limit for top banner rankings

The ":" delimiter keeps namespaces apart, so "banner:1" can never collide
with "banner:11" or with another namespace's keys.
"""

from __future__ import annotations

from enum import Enum


class Namespace(str, Enum):
    """Derived-data kinds that can be cached."""

    BANNER = "banner"
    CLICK_STATS = "click_stats"
    BANNER_STATS = "banner_stats"
    TOP_BANNERS = "top_banners"


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    DELIMITER = ":"

    @classmethod
    def _key(cls, namespace: Namespace, value: int) -> str:
        return f"{namespace.value}{cls.DELIMITER}{int(value)}"

    @classmethod
    def banner(cls, banner_id: int) -> str:
        """Key for a banner by id."""
        return cls._key(Namespace.BANNER, banner_id)

    @classmethod
    def click_stats(cls, banner_id: int) -> str:
        """Key for a banner's click statistics."""
        return cls._key(Namespace.CLICK_STATS, banner_id)

    @classmethod
    def banner_stats(cls, banner_id: int) -> str:
        """Key for a banner joined with its click count."""
        return cls._key(Namespace.BANNER_STATS, banner_id)

    @classmethod
    def top_banners(cls, limit: int) -> str:
        """Key for the top banners ranking at a given limit."""
        return cls._key(Namespace.TOP_BANNERS, limit)

    @classmethod
    def namespace_prefix(cls, namespace: Namespace) -> str:
        """Prefix shared by every key in a namespace.

        Use with MemoryStore.delete_prefix or delete_keys_and_prefix to evict a
        whole family.
        """
        return f"{namespace.value}{cls.DELIMITER}"

    @classmethod
    def parse_key(cls, key: str) -> tuple[Namespace, int] | None:
        """Parse a cache key into its namespace and value.

        Returns None if the key doesn't match the expected format.
        """
        parts = key.split(cls.DELIMITER)
        if len(parts) != 2:
            return None

        try:
            namespace = Namespace(parts[0])
        except ValueError:
            return None

        if not parts[1].lstrip("-").isdigit():
            return None

        return namespace, int(parts[1])
