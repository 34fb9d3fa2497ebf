"""
In-memory TTL cache.

First tier of the client read path: a plain dict of key -> (value, expiry)
owned by one event loop, so no locking is needed.
"""

from typing import Any, Callable, Dict, Tuple

from shared.logging import get_logger

from .base import ABSENT, now_ms


class MemoryCache:
    """Process-memory cache with per-entry expiry in epoch milliseconds."""

    def __init__(self, clock: Callable[[], int] = now_ms):
        """
        Initialize memory cache.

        Args:
            clock: Returns the current time in epoch milliseconds
        """
        self._clock = clock
        self._cache: Dict[str, Tuple[Any, int]] = {}
        self._hits = 0
        self._misses = 0
        self.logger = get_logger("client.memory_cache")

    def get(self, key: str) -> Any:
        """
        Get item from cache.

        Returns:
            Cached value, or ABSENT if not found or expired
        """
        entry = self._cache.get(key)
        if entry is None:
            self._misses += 1
            return ABSENT

        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._cache[key]
            self._misses += 1
            return ABSENT

        self._hits += 1
        return value

    def set(self, key: str, value: Any, ttl_ms: int) -> None:
        """Store ``value`` until now + ``ttl_ms``, replacing any prior entry."""
        self._cache[key] = (value, self._clock() + ttl_ms)

    def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all items from cache."""
        self._cache.clear()
        self._hits = 0
        self._misses = 0

    def get_stats(self) -> Dict[str, Any]:
        total = self._hits + self._misses
        return {
            "size": len(self._cache),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total if total else 0.0,
        }

    def __len__(self) -> int:
        return len(self._cache)
