"""
Transport search service: mode dispatch behind the category cache.
"""

import time
from typing import Any, Dict, List, Optional

from shared.cache_keys import make_cache_key
from shared.errors import RateLimitError, TripBuddyException, ValidationError
from shared.logging import get_logger
from shared.timestamps import utc_now_iso

from ..adapters.flight_fare_client import FlightFareClient
from ..caching.category_cache import MODE_CATEGORIES, CategoryCache
from ..ratelimit.token_bucket import TokenBucketRateLimiter
from . import providers
from .models import SearchRequest, TransportMode
from .trips import TripRepository


RATE_LIMIT_MESSAGE = "Too many flight search requests - please try again later."


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class TransportSearchService:
    """Runs searches, consulting the category cache before any provider."""

    def __init__(
        self,
        cache: CategoryCache,
        flight_client: FlightFareClient,
        trips: TripRepository,
        rate_limiter: Optional[TokenBucketRateLimiter] = None,
        metrics: Optional[Any] = None,
    ):
        self.cache = cache
        self.flight_client = flight_client
        self.trips = trips
        self.rate_limiter = rate_limiter
        self.metrics = metrics
        self.logger = get_logger("transport.search")

    async def search(self, request: SearchRequest, client_id: str = "unknown") -> Dict[str, Any]:
        source = _clean(request.source)
        destination = _clean(request.destination)
        mode = _clean(request.mode)
        date = _clean(request.date)

        if not source or not destination or not mode:
            raise ValidationError(
                "Missing required fields: source, destination, and mode are required.",
                details={"required": ["source", "destination", "mode"]},
            )
        if mode not in MODE_CATEGORIES:
            raise ValidationError("Invalid mode selected.", details={"mode": mode})

        start_time = time.perf_counter()
        cache_key = make_cache_key(mode, source, destination, date)

        cached = self.cache.get(mode, cache_key)
        if cached is not None:
            return self._response(cached, cached=True, start_time=start_time, trip_id=None)

        if mode == TransportMode.FLIGHTS.value:
            self._enforce_rate_limit(client_id)

        results = await self._dispatch(mode, source, destination, date)
        self.cache.set(mode, cache_key, results)

        elapsed = time.perf_counter() - start_time
        if self.metrics:
            self.metrics.observe_histogram("search_duration_seconds", elapsed, mode=mode)
        self.logger.info(
            "Search completed",
            mode=mode,
            source=source,
            destination=destination,
            count=len(results),
            response_time_ms=int(elapsed * 1000),
        )

        trip_id = None
        if request.user_id and results:
            trip_id = await self._record_search(request.user_id, source, destination, date, mode, len(results))

        return self._response(results, cached=False, start_time=start_time, trip_id=trip_id)

    async def _dispatch(self, mode: str, source: str, destination: str,
                        date: Optional[str]) -> List[Dict[str, Any]]:
        if mode == TransportMode.FLIGHTS.value:
            return await self.flight_client.search(source.upper(), destination.upper(), date)
        if mode == TransportMode.TRAINS.value:
            return providers.search_trains(source, destination, date)
        if mode == TransportMode.BUSES.value:
            return providers.search_buses(source, destination)
        return providers.search_cars(source, destination)

    def _enforce_rate_limit(self, client_id: str) -> None:
        if self.rate_limiter is None:
            return
        result = self.rate_limiter.check_rate_limit(client_id)
        if not result["allowed"]:
            raise RateLimitError(
                RATE_LIMIT_MESSAGE,
                details={"limit": result["limit"], "retry_after": result["retry_after"]},
            )

    async def _record_search(self, user_id: str, source: str, destination: str,
                             date: Optional[str], mode: str, count: int) -> Optional[str]:
        try:
            trip = await self.trips.record_search(user_id, {
                "source": source,
                "destination": destination,
                "date": date,
                "mode": mode,
                "resultsCount": count,
                "searchTime": utc_now_iso(),
            })
        except TripBuddyException as exc:
            self.logger.error("Error saving search history", user_id=user_id, error=exc.message)
            return None
        return trip.id

    @staticmethod
    def _response(results: List[Dict[str, Any]], *, cached: bool, start_time: float,
                  trip_id: Optional[str]) -> Dict[str, Any]:
        return {
            "results": results,
            "cached": cached,
            "count": len(results),
            "responseTime": int((time.perf_counter() - start_time) * 1000),
            "tripId": trip_id,
            "timestamp": utc_now_iso(),
        }
