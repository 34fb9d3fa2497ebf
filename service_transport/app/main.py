"""
Transport Service for TripBuddy.

Serves transport searches behind the per-category cache and keeps the
authoritative copy of users' trips and search history.
"""

from typing import Optional

from fastapi import Query, Request

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import ValidationError
from shared.logging import set_user_context
from shared.timestamps import utc_now_iso

from .adapters.document_store import DocumentStore, create_document_store
from .adapters.flight_fare_client import FlightFareClient
from .caching.category_cache import CategoryCache
from .domain.models import DeleteTripRequest, SearchRequest, TripRequest
from .domain.search import TransportSearchService
from .domain.trips import TripRepository
from .ratelimit.token_bucket import TokenBucketRateLimiter, get_client_ip


class TransportService(BaseService):
    """Transport search and trip sync service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        document_store: Optional[DocumentStore] = None,
        flight_client: Optional[FlightFareClient] = None,
        cache: Optional[CategoryCache] = None,
        rate_limiter: Optional[TokenBucketRateLimiter] = None,
    ):
        super().__init__("transport", 5000, config or get_config("transport", 5000))

        self.document_store = document_store or create_document_store(self.config.document_store_url)
        self.flight_client = flight_client or FlightFareClient(
            self.config.rapidapi_key,
            self.config.rapidapi_host,
            timeout=self.config.flight_api_timeout,
            results_limit=self.config.flight_results_limit,
            metrics=self.metrics,
        )
        self.cache = cache or CategoryCache(
            self.config.category_ttls(),
            purge_interval=self.config.cache_purge_interval,
            metrics=self.metrics,
        )
        self.rate_limiter = rate_limiter or TokenBucketRateLimiter(
            self.config.flight_search_limit,
            self.config.flight_search_window_seconds,
        )
        self.trips = TripRepository(self.document_store, metrics=self.metrics)
        self.search_service = TransportSearchService(
            self.cache,
            self.flight_client,
            self.trips,
            rate_limiter=self.rate_limiter,
            metrics=self.metrics,
        )

        if not self.config.rapidapi_key:
            self.logger.warning("RapidAPI key not configured, flight searches will return no results")

        self._setup_transport_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.transport_service = self

    async def on_startup(self) -> None:
        await self.cache.start()
        self.logger.info("Transport service started", document_store=type(self.document_store).__name__)

    async def on_shutdown(self) -> None:
        await self.cache.close()
        await self.flight_client.close()
        await self.document_store.close()
        self.logger.info("Transport service stopped")

    async def _check_dependencies(self):
        """Check the document store and the flight API circuit."""
        healthy = await self.document_store.ping()
        return {
            "document_store": "ok" if healthy else "error",
            "flight_api": self.flight_client.circuit_breaker.get_state()["state"],
        }

    def _setup_transport_routes(self):
        """Set up transport routes."""

        @self.app.get("/")
        async def root():
            return {
                "message": "TripBuddy Transport API",
                "status": "running",
                "timestamp": utc_now_iso(),
            }

        @self.app.get("/transport/test")
        async def transport_test(request: Request):
            return {
                "message": "Transport API is working!",
                "timestamp": utc_now_iso(),
                "endpoint": request.url.path,
            }

        @self.app.post("/transport/search")
        async def search(payload: SearchRequest, request: Request):
            """Search one transport mode; cached results are served when fresh."""
            return await self.search_service.search(payload, client_id=get_client_ip(request))

        @self.app.get("/transport/history/{user_id}")
        async def history(user_id: str):
            """All saved trips and searches for a user, newest first."""
            set_user_context(user_id)
            trips = await self.trips.list_trips(user_id)
            return {
                "trips": [trip.to_dict() for trip in trips],
                "count": len(trips),
                "timestamp": utc_now_iso(),
            }

        @self.app.post("/transport/trip/add")
        async def add_trip(payload: TripRequest):
            set_user_context(payload.user_id)
            trip = await self.trips.add_trip(payload.user_id, payload.trip_data)
            return {
                "success": True,
                "trip": trip.to_dict(),
                "message": "Trip added successfully",
            }

        @self.app.post("/transport/trip/sync")
        async def sync_trip(payload: TripRequest):
            """Push a locally created trip; pushing the same trip twice stores it once."""
            set_user_context(payload.user_id)
            trip, created = await self.trips.sync_trip(payload.user_id, payload.trip_data)
            return {
                "success": True,
                "trip": trip.to_dict(),
                "created": created,
                "message": "Trip synced successfully" if created else "Trip already synced",
            }

        @self.app.delete("/transport/trip/{trip_id}")
        async def delete_trip(trip_id: str, payload: Optional[DeleteTripRequest] = None):
            user_id = payload.user_id if payload else None
            set_user_context(user_id)
            if not user_id:
                raise ValidationError("Trip ID and User ID are required.", details={"field": "userId"})
            await self.trips.delete_trip(trip_id, user_id)
            return {"success": True, "message": "Trip deleted successfully"}

        @self.app.delete("/transport/cache/{mode}")
        async def clear_cache(
            mode: str,
            source: Optional[str] = Query(None),
            destination: Optional[str] = Query(None),
        ):
            """Invalidate one route's entries, or the whole partition."""
            cleared = self.cache.clear(mode, source, destination)
            return {"success": True, "cleared": cleared}

        @self.app.get("/transport/cache/stats")
        async def cache_stats():
            return {"partitions": self.cache.stats(), "timestamp": utc_now_iso()}


def create_app(config: Optional[ServiceConfig] = None, **components):
    """Create FastAPI application."""
    service = TransportService(config, **components)
    return service.app


if __name__ == "__main__":
    service = TransportService()
    service.run()
