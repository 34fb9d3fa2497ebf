"""
Wiring for the device-side components.
"""

from typing import Optional

import httpx

from shared.logging import configure_logging

from .api_client import TransportApiClient
from .cache import DurableCache, MemoryCache, SWRCoordinator
from .config import ClientConfig
from .flights import FlightSearch
from .ratelimit import TokenBucket
from .storage import KeyValueStorage
from .trips import DeviceIdentity, SyncReconciler, TripRecordStore


class TripBuddyClient:
    """Owns one instance of every client component and tears them down together."""

    def __init__(self, config: Optional[ClientConfig] = None, *,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 storage: Optional[KeyValueStorage] = None):
        self.config = config or ClientConfig()
        configure_logging("client", self.config.log_level)

        self.storage = storage or KeyValueStorage(self.config.storage_path)
        self.api = TransportApiClient(
            self.config.backend_url,
            timeout=self.config.request_timeout,
            transport=transport,
        )
        self.memory_cache = MemoryCache()
        self.durable_cache = DurableCache(self.storage)
        self.swr = SWRCoordinator(
            self.memory_cache,
            self.durable_cache,
            memory_ttl_ms=self.config.cache_ttl_ms,
            durable_ttl_ms=self.config.durable_cache_ttl_ms,
        )
        self.bucket = TokenBucket(self.config.rate_limit, self.config.rate_limit_window_ms)
        self.flights = FlightSearch(self.api, self.swr, self.bucket)

        self.identity = DeviceIdentity(self.storage)
        self.trip_store = TripRecordStore(self.storage)
        self.trips = SyncReconciler(self.trip_store, self.api, self.identity)

    async def aclose(self) -> None:
        await self.swr.aclose()
        await self.api.aclose()
        await self.storage.close()

    async def __aenter__(self) -> "TripBuddyClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
