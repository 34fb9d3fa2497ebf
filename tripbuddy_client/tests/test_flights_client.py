"""
Unit tests for client flight search and its request budget.
"""

import json

import httpx
import pytest

from shared.errors import ValidationError
from shared.test_helpers import FakeClock
from tripbuddy_client.api_client import TransportApiClient
from tripbuddy_client.cache import DurableCache, MemoryCache, SWRCoordinator
from tripbuddy_client.flights import FlightSearch
from tripbuddy_client.ratelimit import TokenBucket
from tripbuddy_client.storage import KeyValueStorage

FLIGHTS = [{"id": "FL000", "price": 85.5}]


class TestTokenBucket:
    """Test cases for TokenBucket."""

    def test_exhaustion_and_window_refill(self):
        """Test the fixed-window budget."""
        clock = FakeClock(0)
        bucket = TokenBucket(capacity=2, refill_interval_ms=60_000, clock=clock)

        assert bucket.try_remove_token() is True
        assert bucket.try_remove_token() is True
        assert bucket.try_remove_token() is False

        clock.advance(45_000)
        assert bucket.retry_after_ms() == 15_000

        clock.advance(15_000)
        assert bucket.try_remove_token() is True
        assert bucket.tokens == 1


class TestFlightSearch:
    """Test cases for FlightSearch."""

    @pytest.fixture
    def requests(self):
        """Requests received by the fake backend."""
        return []

    @pytest.fixture
    async def api(self, requests):
        """Create TransportApiClient answering every search with FLIGHTS."""

        def handler(request):
            requests.append(json.loads(request.content))
            return httpx.Response(200, json={"results": FLIGHTS, "cached": False, "count": 1})

        api = TransportApiClient("http://backend.test", transport=httpx.MockTransport(handler))
        yield api
        await api.aclose()

    @pytest.fixture
    async def swr(self):
        """Create SWRCoordinator over in-memory tiers."""
        storage = KeyValueStorage()
        clock = FakeClock(1_000_000)
        coordinator = SWRCoordinator(MemoryCache(clock=clock), DurableCache(storage, clock=clock))
        yield coordinator
        await coordinator.aclose()
        await storage.close()

    @pytest.mark.asyncio
    async def test_cold_then_stale(self, api, swr, requests):
        """Test that the second search is served stale and refreshed."""
        flights = FlightSearch(api, swr, TokenBucket(capacity=5))

        first = await flights.search(" del ", "bom", "2025-09-07")
        second = await flights.search("DEL", "BOM", "2025-09-07")
        await swr.drain()

        assert first.data == FLIGHTS and first.stale is False
        assert second.data == FLIGHTS and second.stale is True
        assert len(requests) == 2
        assert requests[0] == {"source": "DEL", "destination": "BOM", "mode": "flights", "date": "2025-09-07"}

    @pytest.mark.asyncio
    async def test_empty_bucket_blocks_network(self, api, swr, requests):
        """Test that an exhausted budget fails the cold fetch without a request."""
        flights = FlightSearch(api, swr, TokenBucket(capacity=1, clock=FakeClock(0)))

        await flights.search("DEL", "BOM", "2025-09-07")
        result = await flights.search("DEL", "BLR", "2025-09-07")

        assert result.data is None
        assert result.stale is False
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_user_id_is_forwarded(self, api, swr, requests):
        """Test that searches carry the user id for history."""
        flights = FlightSearch(api, swr, TokenBucket())

        await flights.search("DEL", "BOM", "2025-09-07", user_id="u1")

        assert requests[0]["userId"] == "u1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("source,destination,date", [
        ("", "BOM", "2025-09-07"),
        ("DEL", "  ", "2025-09-07"),
        ("DEL", "BOM", ""),
    ])
    async def test_validation(self, api, swr, source, destination, date):
        """Test blank inputs."""
        flights = FlightSearch(api, swr, TokenBucket())
        with pytest.raises(ValidationError):
            await flights.search(source, destination, date)
