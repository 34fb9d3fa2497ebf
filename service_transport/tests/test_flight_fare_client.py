"""
Unit tests for the flight fare API client.
"""

import httpx
import pytest

from service_transport.app.adapters.flight_fare_client import (
    FlightFareClient,
    airline_name,
    extract_flights,
    normalize_flight,
)
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig
from shared.test_helpers import TestDataFactory, failing_transport, flight_api_transport

FAST_RETRY = RetryConfig(max_attempts=2, base_delay=0.0, max_delay=0.0, jitter=False)


def make_client(transport, metrics=None, results_limit=20):
    return FlightFareClient(
        "test-key",
        "flights.test",
        transport=transport,
        retry_config=FAST_RETRY,
        metrics=metrics,
        results_limit=results_limit,
    )


class TestNormalization:
    """Test cases for flight normalization helpers."""

    def test_airline_name_lookup(self):
        """Test carrier code mapping."""
        assert airline_name("6e") == "IndiGo"
        assert airline_name("ZZ") is None
        assert airline_name(None) is None

    def test_extract_flights_shapes(self):
        """Test each supported response shape."""
        flights = [{"id": "1"}]
        assert extract_flights({"results": flights}) == flights
        assert extract_flights({"data": flights}) == flights
        assert extract_flights({"flights": flights}) == flights
        assert extract_flights(flights) == flights
        assert extract_flights({"unexpected": True}) is None

    def test_normalize_nested_flight(self):
        """Test flattening of the nested upstream shape."""
        raw = TestDataFactory.create_raw_flights(2)[1]
        flight = normalize_flight(raw, 1, "DEL", "BOM", "2025-09-07")

        assert flight["id"] == "FL001"
        assert flight["flightDate"] == "2025-09-07"
        assert flight["departureAirport"] == "Delhi"
        assert flight["arrivalAirport"] == "Mumbai"
        assert flight["airlineName"] == "IndiGo"
        assert flight["flightNumber"] == "6E-101"
        assert flight["price"] == 86.5
        assert flight["currency"] == "USD"
        assert flight["stops"] == "1 Stop"
        assert flight["duration"] == "2h 10m"
        assert flight["cabinType"] == "Economy"

    def test_normalize_sparse_flight_defaults(self):
        """Test defaults when the upstream omits fields."""
        flight = normalize_flight({"direct": True, "price": 120}, 0, "DEL", "BOM", "2025-09-07")

        assert flight["id"].startswith("flight-")
        assert flight["flightDate"] == "2025-09-07"
        assert flight["departureAirport"] == "DEL"
        assert flight["arrivalAirport"] == "BOM"
        assert flight["departureTime"] == "N/A"
        assert flight["airlineName"] == "Unknown Airline"
        assert flight["price"] == 120
        assert flight["stops"] == "Direct"
        assert flight["baggage"] == {"cabin": None, "checkIn": None}
        assert flight["path"] == []


class TestFlightFareClient:
    """Test cases for FlightFareClient."""

    @pytest.mark.asyncio
    async def test_search_success(self):
        """Test request parameters, headers and normalized results."""
        calls = []
        metrics = MetricsCollector("transport")
        client = make_client(flight_api_transport(calls=calls), metrics=metrics)

        results = await client.search("DEL", "BOM", "2025-09-07")
        await client.close()

        assert len(results) == 3
        request = calls[0]
        assert request.url.path == "/v2/flights"
        assert request.url.host == "flights.test"
        assert request.url.params["from"] == "DEL"
        assert request.url.params["to"] == "BOM"
        assert request.url.params["date"] == "2025-09-07"
        assert request.url.params["currency"] == "USD"
        assert request.headers["X-RapidAPI-Key"] == "test-key"
        assert request.headers["X-RapidAPI-Host"] == "flights.test"
        assert metrics.registry.get_sample_value("flight_api_requests_total", {"outcome": "ok"}) == 1

    @pytest.mark.asyncio
    async def test_search_omits_missing_date(self):
        """Test that a None date is not sent."""
        calls = []
        client = make_client(flight_api_transport(calls=calls))

        await client.search("DEL", "BOM", None)
        await client.close()

        assert "date" not in calls[0].url.params

    @pytest.mark.asyncio
    async def test_results_limited_before_normalization(self):
        """Test the result cap."""
        payload = {"data": TestDataFactory.create_raw_flights(30)}
        client = make_client(flight_api_transport(payload))

        results = await client.search("DEL", "BOM", "2025-09-07")
        await client.close()

        assert len(results) == 20
        assert results[-1]["id"] == "FL019"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code,outcome", [
        (429, "rate_limited"),
        (403, "forbidden"),
        (503, "upstream_error"),
    ])
    async def test_http_errors_return_empty(self, status_code, outcome):
        """Test that upstream HTTP errors degrade to no results."""
        metrics = MetricsCollector("transport")
        client = make_client(flight_api_transport({"message": "nope"}, status_code=status_code), metrics=metrics)

        assert await client.search("DEL", "BOM", "2025-09-07") == []
        await client.close()
        assert metrics.registry.get_sample_value("flight_api_requests_total", {"outcome": outcome}) == 1

    @pytest.mark.asyncio
    async def test_network_error_retried_then_empty(self):
        """Test that connection errors are retried and then degrade."""
        attempts = []

        def boom(request):
            attempts.append(request)
            return httpx.ConnectError("connection refused", request=request)

        client = make_client(failing_transport(boom))

        assert await client.search("DEL", "BOM", "2025-09-07") == []
        await client.close()
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_unexpected_shape_returns_empty(self):
        """Test an unrecognised body."""
        client = make_client(flight_api_transport({"status": "ok"}))
        assert await client.search("DEL", "BOM", "2025-09-07") == []
        await client.close()

    @pytest.mark.asyncio
    async def test_empty_flight_list_returns_empty(self):
        """Test an empty result array."""
        client = make_client(flight_api_transport({"results": []}))
        assert await client.search("DEL", "BOM", "2025-09-07") == []
        await client.close()

    @pytest.mark.asyncio
    async def test_circuit_opens_after_repeated_failures(self):
        """Test that the breaker stops calling a failing upstream."""
        calls = []
        client = make_client(flight_api_transport({}, status_code=500, calls=calls))

        for _ in range(3):
            await client.search("DEL", "BOM", "2025-09-07")
        assert client.circuit_breaker.is_open()

        assert await client.search("DEL", "BOM", "2025-09-07") == []
        await client.close()
        assert len(calls) == 3
