"""
Per-category TTL cache for transport search results.

Each transport category owns an independent partition with its own TTL and
expiry clock, so flight fares can go stale sooner than car rental quotes.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from shared.cache_keys import make_cache_key, route_prefix  # noqa: F401  (re-exported)
from shared.errors import ValidationError
from shared.logging import get_logger

# Request mode -> cache partition
MODE_CATEGORIES: Dict[str, str] = {
    "flights": "flights",
    "trains": "trains",
    "buses": "buses",
    "4wheelers": "cars",
}

DEFAULT_CATEGORY_TTLS: Dict[str, int] = {
    "flights": 1800,
    "trains": 3600,
    "buses": 1800,
    "cars": 3600,
}

DEFAULT_PURGE_INTERVAL = 120.0


@dataclass
class CachedResults:
    """Result list stored in a partition."""

    results: List[Dict[str, Any]]
    inserted_at: float


class CategoryPartition:
    """Cache partition for a single transport category."""

    def __init__(self, category: str, ttl_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.category = category
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CachedResults] = {}
        self.hits = 0
        self.misses = 0

    def _is_expired(self, entry: CachedResults, now: float) -> bool:
        return now >= entry.inserted_at + self.ttl_seconds

    def get(self, key: str) -> Optional[List[Dict[str, Any]]]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        return entry.results

    def set(self, key: str, results: List[Dict[str, Any]]) -> bool:
        # Empty result sets never create or replace an entry
        if not results:
            return False
        self._entries[key] = CachedResults(results=list(results), inserted_at=self._clock())
        return True

    def delete_prefix(self, prefix: str) -> int:
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def flush(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def keys(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class CategoryCache:
    """Search result cache partitioned by transport category.

    Owned by the transport service for the lifetime of the process:
    constructed with the service, swept periodically once ``start()`` runs,
    and emptied by ``close()``.
    """

    def __init__(
        self,
        ttls: Optional[Dict[str, int]] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        purge_interval: float = DEFAULT_PURGE_INTERVAL,
        metrics: Optional[Any] = None,
    ):
        merged = dict(DEFAULT_CATEGORY_TTLS)
        merged.update(ttls or {})
        self.partitions: Dict[str, CategoryPartition] = {
            category: CategoryPartition(category, ttl, clock)
            for category, ttl in merged.items()
        }
        self.purge_interval = purge_interval
        self.metrics = metrics
        self.logger = get_logger("transport.category_cache")
        self._sweeper: Optional[asyncio.Task] = None

    def partition_for(self, mode: str) -> CategoryPartition:
        """Resolve the partition for a request mode (unknown modes use flights)."""
        category = MODE_CATEGORIES.get(mode, "flights")
        return self.partitions[category]

    def get(self, mode: str, key: str) -> Optional[List[Dict[str, Any]]]:
        """Return cached results for ``key`` or None when absent/expired."""
        partition = self.partition_for(mode)
        results = partition.get(key)
        metric = "cache_hits_total" if results is not None else "cache_misses_total"
        self._count(metric, partition.category)

        if results is not None:
            self.logger.info("Cache hit", key=key, category=partition.category)
        else:
            self.logger.info("Cache miss", key=key, category=partition.category)
        return results

    def set(self, mode: str, key: str, results: List[Dict[str, Any]]) -> bool:
        """Cache a non-empty result list. Returns True when stored."""
        partition = self.partition_for(mode)
        stored = partition.set(key, results)
        if stored:
            self.logger.info(
                "Caching search results",
                key=key,
                category=partition.category,
                items=len(results),
                ttl=partition.ttl_seconds,
            )
            self._update_gauge(partition)
        return stored

    def clear(self, mode: str, source: Optional[str] = None, destination: Optional[str] = None) -> int:
        """Invalidate one route of a category, or the whole category."""
        if mode not in MODE_CATEGORIES:
            raise ValidationError(f"Unknown transport mode '{mode}'", details={"mode": mode})

        partition = self.partition_for(mode)
        if source and destination:
            prefix = route_prefix(mode, source, destination)
            removed = partition.delete_prefix(prefix)
            self.logger.info("Cleared cache entries", prefix=prefix, keys_count=removed)
        else:
            removed = partition.flush()
            self.logger.info("Cleared category cache", category=partition.category, keys_count=removed)

        self._update_gauge(partition)
        return removed

    def purge_expired(self) -> int:
        """Drop expired entries from every partition."""
        removed = 0
        for partition in self.partitions.values():
            removed += partition.purge_expired()
            self._update_gauge(partition)
        if removed:
            self.logger.debug("Purged expired cache entries", removed=removed)
        return removed

    def stats(self) -> Dict[str, Any]:
        """Per-partition counters."""
        return {
            category: {
                "entries": len(partition),
                "ttl_seconds": partition.ttl_seconds,
                "hits": partition.hits,
                "misses": partition.misses,
            }
            for category, partition in self.partitions.items()
        }

    async def start(self) -> None:
        """Begin the periodic expiry sweep."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop())

    async def close(self) -> None:
        """Stop the sweep and drop every entry."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None

        for partition in self.partitions.values():
            partition.flush()
            self._update_gauge(partition)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.purge_interval)
            try:
                self.purge_expired()
            except Exception as exc:  # pragma: no cover
                self.logger.error("Cache sweep failed", error=str(exc))

    def _count(self, metric: str, category: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric, category=category)

    def _update_gauge(self, partition: CategoryPartition) -> None:
        if self.metrics:
            self.metrics.set_gauge("cache_entries", len(partition), category=partition.category)
