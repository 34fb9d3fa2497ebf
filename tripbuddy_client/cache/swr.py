"""
Stale-while-revalidate read path over the memory and durable caches.

``resolve`` consults memory, then durable storage, then the fetch function,
strictly in that order. A cached value is returned immediately, flagged
stale, while a detached task refreshes both tiers. Refresh failures are
logged by the task's done-callback and never reach the caller.
"""

import asyncio
from typing import Any, Awaitable, Callable, NamedTuple, Optional, Set

from shared.logging import get_logger

from .base import ABSENT
from .durable_cache import DurableCache
from .memory_cache import MemoryCache

DEFAULT_MEMORY_TTL_MS = 300_000
DEFAULT_DURABLE_TTL_MS = 86_400_000

FetchFn = Callable[[], Awaitable[Any]]


class SWRResult(NamedTuple):
    data: Any
    stale: bool


class SWRCoordinator:
    """Read-through cache coordinator for the client."""

    def __init__(
        self,
        memory: MemoryCache,
        durable: DurableCache,
        *,
        memory_ttl_ms: int = DEFAULT_MEMORY_TTL_MS,
        durable_ttl_ms: int = DEFAULT_DURABLE_TTL_MS,
        fetch_timeout: Optional[float] = None,
    ):
        self.memory = memory
        self.durable = durable
        self.memory_ttl_ms = memory_ttl_ms
        self.durable_ttl_ms = durable_ttl_ms
        self.fetch_timeout = fetch_timeout
        self.logger = get_logger("client.swr")
        self._refreshes: Set[asyncio.Task] = set()
        self._closed = False

    async def resolve(self, key: Optional[str], fetch_fn: FetchFn) -> SWRResult:
        """Return cached data (stale) or freshly fetched data."""
        if not key:
            self.logger.warning("Invalid cache key provided, fetching fresh data")
            try:
                return SWRResult(await self._fetch(fetch_fn), False)
            except Exception as exc:
                self.logger.error("Error fetching fresh data", error=str(exc))
                return SWRResult(None, False)

        cached = self.memory.get(key)
        if cached is not ABSENT:
            self._schedule_refresh(key, fetch_fn)
            return SWRResult(cached, True)

        cached = await self.durable.get(key)
        if cached is not ABSENT:
            self._schedule_refresh(key, fetch_fn)
            return SWRResult(cached, True)

        try:
            data = await self._fetch(fetch_fn)
        except Exception as exc:
            self.logger.error("Error fetching data", key=key, error=str(exc))
            return SWRResult(None, False)

        await self._store(key, data)
        return SWRResult(data, False)

    async def _fetch(self, fetch_fn: FetchFn) -> Any:
        if self.fetch_timeout is None:
            return await fetch_fn()
        return await asyncio.wait_for(fetch_fn(), timeout=self.fetch_timeout)

    async def _store(self, key: str, data: Any) -> None:
        if data is None:
            return
        self.memory.set(key, data, self.memory_ttl_ms)
        await self.durable.set(key, data, self.durable_ttl_ms)

    async def _refresh(self, key: str, fetch_fn: FetchFn) -> None:
        data = await self._fetch(fetch_fn)
        await self._store(key, data)
        self.logger.debug("Background refresh complete", key=key, cached=data is not None)

    def _schedule_refresh(self, key: str, fetch_fn: FetchFn) -> None:
        if self._closed:
            self.logger.debug("Coordinator closed, skipping refresh", key=key)
            return
        task = asyncio.create_task(self._refresh(key, fetch_fn), name=f"swr-refresh:{key}")
        self._refreshes.add(task)
        task.add_done_callback(self._on_refresh_done)

    def _on_refresh_done(self, task: asyncio.Task) -> None:
        self._refreshes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.warning("Background refresh failed", task=task.get_name(), error=str(exc))

    @property
    def pending_refreshes(self) -> int:
        return len(self._refreshes)

    async def drain(self) -> None:
        """Wait for every outstanding background refresh."""
        while self._refreshes:
            await asyncio.gather(*list(self._refreshes), return_exceptions=True)

    async def aclose(self) -> None:
        """Stop scheduling refreshes and wait for the ones in flight."""
        self._closed = True
        await self.drain()
