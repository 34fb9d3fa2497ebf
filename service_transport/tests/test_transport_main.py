"""
Unit tests for the Transport Service routes.
"""

import pytest
from fastapi.testclient import TestClient

from service_transport.app.adapters.document_store import InMemoryDocumentStore
from service_transport.app.adapters.flight_fare_client import FlightFareClient
from service_transport.app.main import TransportService, create_app
from service_transport.app.ratelimit.token_bucket import TokenBucketRateLimiter
from shared.config import get_config
from shared.retry import RetryConfig
from shared.test_helpers import TestDataFactory, TestEnvironment, flight_api_transport

SEARCH_DEL_BOM = {"source": "DEL", "destination": "BOM", "date": "2025-09-07", "mode": "flights"}


def build_service(calls, payload=None, status_code=200, rate_limiter=None):
    config = get_config("transport", 5000, TestEnvironment.get_mock_config())
    flight_client = FlightFareClient(
        config.rapidapi_key,
        config.rapidapi_host,
        transport=flight_api_transport(payload, status_code=status_code, calls=calls),
        retry_config=RetryConfig(max_attempts=1, base_delay=0.0),
    )
    return TransportService(
        config,
        document_store=InMemoryDocumentStore(),
        flight_client=flight_client,
        rate_limiter=rate_limiter,
    )


class TestTransportService:
    """Test cases for TransportService."""

    @pytest.fixture
    def upstream_calls(self):
        """Requests received by the fake flight API."""
        return []

    @pytest.fixture
    def transport_service(self, upstream_calls):
        """Create TransportService instance."""
        return build_service(upstream_calls)

    @pytest.fixture
    def client(self, transport_service):
        """Create test client (runs the lifespan)."""
        with TestClient(transport_service.app) as client:
            yield client

    def test_root_endpoint(self, client):
        """Test root endpoint."""
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["message"] == "TripBuddy Transport API"

    def test_transport_test_endpoint(self, client):
        """Test the connectivity check endpoint."""
        response = client.get("/transport/test")
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Transport API is working!"
        assert data["endpoint"] == "/transport/test"

    def test_health_endpoint(self, client):
        """Test health endpoint with the document store check."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "transport"
        assert data["dependencies"] == {"document_store": "ok", "flight_api": "closed"}

    def test_repeated_flight_search_is_cached(self, client, upstream_calls):
        """Test DEL->BOM searched twice inside the TTL."""
        first = client.post("/transport/search", json=SEARCH_DEL_BOM)
        second = client.post("/transport/search", json={**SEARCH_DEL_BOM, "source": " del "})

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["cached"] is False
        assert first.json()["count"] == 3
        assert second.json()["cached"] is True
        assert second.json()["results"] == first.json()["results"]
        assert len(upstream_calls) == 1
        assert upstream_calls[0].url.params["from"] == "DEL"

    def test_search_response_shape(self, client):
        """Test the search response fields."""
        data = client.post("/transport/search", json=SEARCH_DEL_BOM).json()
        assert set(data) == {"results", "cached", "count", "responseTime", "tripId", "timestamp"}
        assert data["tripId"] is None

    @pytest.mark.parametrize("body", [
        {"destination": "BOM", "mode": "flights"},
        {"source": "DEL", "mode": "flights"},
        {"source": "DEL", "destination": "BOM"},
        {"source": "  ", "destination": "BOM", "mode": "flights"},
    ])
    def test_search_missing_fields(self, client, body):
        """Test 400 on missing required fields."""
        response = client.post("/transport/search", json=body)
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert data["message"] == "Missing required fields: source, destination, and mode are required."
        assert data["request_id"]

    def test_search_invalid_mode(self, client):
        """Test 400 on an unknown mode."""
        response = client.post("/transport/search", json={**SEARCH_DEL_BOM, "mode": "boats"})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid mode selected."

    def test_search_trains(self, client):
        """Test the train provider."""
        data = client.post("/transport/search", json={"source": "Delhi", "destination": "Mumbai", "mode": "trains"}).json()
        assert data["count"] == 3
        assert {train["trainName"] for train in data["results"]} == {
            "Rajdhani Express", "Shatabdi Express", "Duronto Express",
        }

    def test_search_buses_filtered_by_route(self, client):
        """Test the bus provider route filter."""
        data = client.post("/transport/search", json={"source": "delhi", "destination": "MUMBAI", "mode": "buses"}).json()
        assert [bus["id"] for bus in data["results"]] == ["bus-1", "bus-2"]
        assert all(bus["bookingId"].startswith("BUS-") for bus in data["results"])

    def test_search_four_wheelers(self, client, transport_service):
        """Test the car provider and the cars partition."""
        data = client.post("/transport/search", json={"source": "Pune", "destination": "Goa", "mode": "4wheelers"}).json()
        assert [car["id"] for car in data["results"]] == ["car-2"]
        assert data["results"][0]["totalPrice"] == 4200
        assert data["results"][0]["estimatedTime"] == "5h 40m"
        assert len(transport_service.cache.partitions["cars"]) == 1

    def test_search_records_history_for_user(self, client):
        """Test that a search with results is saved to the user's history."""
        data = client.post("/transport/search", json={**SEARCH_DEL_BOM, "userId": "u1"}).json()
        assert data["tripId"].startswith("search-")

        history = client.get("/transport/history/u1").json()
        assert history["count"] == 1
        assert history["trips"][0]["kind"] == "search"
        assert history["trips"][0]["payload"]["resultsCount"] == 3

    def test_search_without_results_not_recorded(self, client):
        """Test that empty searches leave no history and no cache entry."""
        body = {"source": "Nowhere", "destination": "Goa", "mode": "buses", "userId": "u1"}
        data = client.post("/transport/search", json=body).json()

        assert data == {**data, "results": [], "count": 0, "tripId": None, "cached": False}
        assert client.post("/transport/search", json=body).json()["cached"] is False
        assert client.get("/transport/history/u1").json()["count"] == 0

    def test_trip_add(self, client):
        """Test saving a trip."""
        response = client.post("/transport/trip/add", json={
            "userId": "u1",
            "tripData": TestDataFactory.create_trip_data("t1"),
        })
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["trip"]["id"] == "t1"
        assert data["trip"]["kind"] == "saved"
        assert data["message"] == "Trip added successfully"

    def test_trip_add_requires_fields(self, client):
        """Test 400 without trip data."""
        response = client.post("/transport/trip/add", json={"userId": "u1"})
        assert response.status_code == 400

    def test_trip_sync_is_dedup_safe(self, client):
        """Test that syncing one trip twice yields one record."""
        body = {"userId": "u1", "tripData": TestDataFactory.create_trip_data("t1")}

        first = client.post("/transport/trip/sync", json=body).json()
        second = client.post("/transport/trip/sync", json=body).json()

        assert first["created"] is True
        assert second["created"] is False
        assert second["success"] is True
        assert client.get("/transport/history/u1").json()["count"] == 1

    def test_trip_delete(self, client):
        """Test deleting an owned trip, then deleting it again."""
        client.post("/transport/trip/sync", json={"userId": "u1", "tripData": TestDataFactory.create_trip_data("t1")})

        response = client.request("DELETE", "/transport/trip/t1", json={"userId": "u1"})
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Trip deleted successfully"}

        again = client.request("DELETE", "/transport/trip/t1", json={"userId": "u1"})
        assert again.status_code == 404
        assert again.json()["message"] == "Trip not found or unauthorized"

    def test_trip_delete_by_other_user(self, client):
        """Test that another user's trip reads as not found."""
        client.post("/transport/trip/sync", json={"userId": "u1", "tripData": TestDataFactory.create_trip_data("t1")})

        response = client.request("DELETE", "/transport/trip/t1", json={"userId": "u2"})
        assert response.status_code == 404
        assert client.get("/transport/history/u1").json()["count"] == 1

    def test_trip_delete_requires_user(self, client):
        """Test 400 without a body."""
        response = client.delete("/transport/trip/t1")
        assert response.status_code == 400

    def test_cache_clear_by_route(self, client):
        """Test selective invalidation through the API."""
        client.post("/transport/search", json=SEARCH_DEL_BOM)

        response = client.delete("/transport/cache/flights", params={"source": "del", "destination": "bom"})

        assert response.json() == {"success": True, "cleared": 1}
        assert client.post("/transport/search", json=SEARCH_DEL_BOM).json()["cached"] is False

    def test_cache_clear_unknown_mode(self, client):
        """Test 400 for an unknown cache mode."""
        assert client.delete("/transport/cache/boats").status_code == 400

    def test_cache_stats(self, client):
        """Test partition statistics."""
        client.post("/transport/search", json=SEARCH_DEL_BOM)
        client.post("/transport/search", json=SEARCH_DEL_BOM)

        partitions = client.get("/transport/cache/stats").json()["partitions"]
        assert partitions["flights"]["entries"] == 1
        assert partitions["flights"]["hits"] == 1
        assert set(partitions) == {"flights", "trains", "buses", "cars"}

    def test_metrics_endpoint(self, client):
        """Test Prometheus exposition."""
        client.post("/transport/search", json=SEARCH_DEL_BOM)
        client.post("/transport/search", json=SEARCH_DEL_BOM)

        body = client.get("/metrics").text
        assert 'cache_hits_total{category="flights"} 1.0' in body
        assert 'search_duration_seconds_count{mode="flights"} 1.0' in body


class TestFlightSearchLimits:
    """Test cases for upstream protection."""

    def test_rate_limit_applies_to_cache_misses_only(self):
        """Test 429 once the flight budget is spent, while cache hits still pass."""
        calls = []
        service = build_service(calls, rate_limiter=TokenBucketRateLimiter(2, 3600.0))

        with TestClient(service.app) as client:
            for date in ("2025-09-07", "2025-09-08"):
                assert client.post("/transport/search", json={**SEARCH_DEL_BOM, "date": date}).status_code == 200

            cached = client.post("/transport/search", json=SEARCH_DEL_BOM)
            limited = client.post("/transport/search", json={**SEARCH_DEL_BOM, "date": "2025-09-09"})
            trains = client.post("/transport/search", json={**SEARCH_DEL_BOM, "mode": "trains"})

        assert cached.status_code == 200
        assert limited.status_code == 429
        assert limited.json()["message"] == "Too many flight search requests - please try again later."
        assert trains.status_code == 200
        assert len(calls) == 2

    def test_upstream_failure_degrades_and_is_not_cached(self):
        """Test that an upstream 503 yields no results and no cache entry."""
        calls = []
        service = build_service(calls, payload={"message": "unavailable"}, status_code=503)

        with TestClient(service.app) as client:
            first = client.post("/transport/search", json=SEARCH_DEL_BOM).json()
            second = client.post("/transport/search", json=SEARCH_DEL_BOM).json()

        assert first["results"] == []
        assert first["count"] == 0
        assert second["cached"] is False
        assert len(calls) == 2

    def test_create_app(self):
        """Test the application factory."""
        config = get_config("transport", 5000, TestEnvironment.get_mock_config())
        app = create_app(config, document_store=InMemoryDocumentStore())
        assert isinstance(app.state.transport_service, TransportService)
