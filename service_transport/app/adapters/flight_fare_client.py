"""
Flight fare client for the transport service.

Wraps the external RapidAPI flight fare search. The upstream is rate
limited and flaky, so every failure mode (429, 403, 5xx, network errors,
an open circuit) degrades to an empty result list.
"""

import time
from typing import Any, Dict, List, Optional

import httpx

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.errors import ExternalServiceError
from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception


AIRLINE_NAMES: Dict[str, str] = {
    "AI": "Air India",
    "IX": "Air India Express",
    "6E": "IndiGo",
    "SG": "SpiceJet",
    "UK": "Vistara",
    "G8": "Go First",
    "9W": "Jet Airways",
    "I5": "AirAsia India",
    "AA": "American Airlines",
    "DL": "Delta Air Lines",
    "UA": "United Airlines",
    "BA": "British Airways",
    "LH": "Lufthansa",
    "AF": "Air France",
    "KL": "KLM",
    "EK": "Emirates",
    "QR": "Qatar Airways",
    "SV": "Saudi Arabian Airlines",
}


def airline_name(code: Optional[str]) -> Optional[str]:
    """Map an IATA carrier code to a display name."""
    if not code:
        return None
    return AIRLINE_NAMES.get(str(code).upper())


def _first(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value not in (None, ""):
            return value
    return default


def _nested(data: Any, *path: str) -> Any:
    for part in path:
        if not isinstance(data, dict):
            return None
        data = data.get(part)
    return data


def _stops_text(flight: Dict[str, Any]) -> str:
    stops = flight.get("stops")
    if stops is None:
        return "Direct" if flight.get("direct") else "N/A"
    try:
        stops = int(stops)
    except (TypeError, ValueError):
        return str(stops)
    if stops == 0:
        return "Direct"
    return f"{stops} Stop{'s' if stops > 1 else ''}"


def normalize_flight(flight: Dict[str, Any], index: int, source: str, destination: str,
                     date: Optional[str]) -> Dict[str, Any]:
    """Flatten one upstream flight into the shape the app renders."""
    departure_time = _first(_nested(flight, "departureAirport", "time"),
                            flight.get("departure_time"), flight.get("departureDateTime"),
                            default="N/A")
    departure_stamp = _nested(flight, "departureAirport", "time")
    flight_date = _first(departure_stamp.split("T")[0] if isinstance(departure_stamp, str) else None,
                         flight.get("departure_date"), date)

    price = flight.get("price")
    return {
        "id": _first(flight.get("id"), default=f"flight-{int(time.time() * 1000)}-{index}"),
        "flightDate": flight_date,
        "flightStatus": _first(flight.get("status"), default="scheduled"),
        "departureAirport": _first(_nested(flight, "departureAirport", "city"),
                                   _nested(flight, "departureAirport", "code"),
                                   flight.get("from"), default=source),
        "departureTime": departure_time,
        "arrivalAirport": _first(_nested(flight, "arrivalAirport", "city"),
                                 _nested(flight, "arrivalAirport", "code"),
                                 flight.get("to"), default=destination),
        "arrivalTime": _first(_nested(flight, "arrivalAirport", "time"),
                              flight.get("arrival_time"), flight.get("arrivalDateTime"),
                              default="N/A"),
        "airlineName": _first(airline_name(_first(flight.get("airline_code"), flight.get("careerCode"))),
                              flight.get("airline_name"), flight.get("airline"),
                              default="Unknown Airline"),
        "flightNumber": _first(flight.get("flight_number"), flight.get("flight_code"),
                               flight.get("flightNumber"), default="N/A"),
        "price": _first(_nested(flight, "price", "total"), _nested(flight, "totals", "total"),
                        price if not isinstance(price, dict) else None, flight.get("fare")),
        "currency": _first(_nested(flight, "price", "currency"), _nested(flight, "totals", "currency"),
                           flight.get("currency"), default="USD"),
        "baseFare": _first(_nested(flight, "price", "base"), _nested(flight, "totals", "base"),
                           flight.get("baseFare")),
        "taxes": _first(_nested(flight, "price", "tax"), _nested(flight, "totals", "tax"),
                        flight.get("taxes")),
        "stops": _stops_text(flight),
        "duration": _first(_nested(flight, "duration", "text"),
                           flight.get("duration") if not isinstance(flight.get("duration"), dict) else None,
                           flight.get("flight_duration"), default="N/A"),
        "cabinType": _first(flight.get("cabin_class"), flight.get("cabinType"), flight.get("class"),
                            default="Economy"),
        "baggage": {
            "cabin": _first(_nested(flight, "baggage", "cabin"), flight.get("cabin_baggage")),
            "checkIn": _first(_nested(flight, "baggage", "checkIn"), flight.get("checked_baggage")),
        },
        "path": flight.get("path") or [],
        "departureDelay": flight.get("departureDelay") or 0,
        "arrivalDelay": flight.get("arrivalDelay") or 0,
    }


def extract_flights(payload: Any) -> Optional[List[Dict[str, Any]]]:
    """Locate the flight list in the several response shapes the API uses."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for field in ("results", "data", "flights"):
            if isinstance(payload.get(field), list):
                return payload[field]
    return None


class FlightFareClient:
    """Client for the external flight fare search API."""

    def __init__(
        self,
        api_key: str,
        api_host: str,
        *,
        timeout: float = 15.0,
        results_limit: int = 20,
        metrics: Optional[Any] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.api_key = api_key
        self.api_host = api_host
        self.base_url = f"https://{api_host}"
        self.results_limit = results_limit
        self.metrics = metrics
        self.logger = get_logger("transport.flight_fare_client")

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=3,
            recovery_timeout=60.0,
            name="flight_fare_api",
        )
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "X-RapidAPI-Key": api_key,
                "X-RapidAPI-Host": api_host,
                "Content-Type": "application/json",
            },
        )

        config = retry_config or RetryConfig(max_attempts=2, base_delay=0.5, max_delay=2.0)
        self._get_with_retry = retry_on_exception((httpx.TransportError,), config=config)(self._get)

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, params: Dict[str, Any]) -> httpx.Response:
        return await self._client.get("/v2/flights", params=params)

    async def search(self, source: str, destination: str, date: Optional[str]) -> List[Dict[str, Any]]:
        """Search flights; returns an empty list on any upstream failure."""
        params = {
            "from": source,
            "to": destination,
            "date": date,
            "type": "Economy",
            "adult": 1,
            "child": 0,
            "infant": 0,
            "currency": "USD",
        }
        params = {key: value for key, value in params.items() if value is not None}

        try:
            payload = await self.circuit_breaker.call(self._request, params)
        except CircuitBreakerOpenException:
            self.logger.warning("Flight API circuit open, returning empty results")
            self._count("circuit_open")
            return []
        except ExternalServiceError as exc:
            status = exc.details.get("status_code")
            if status == 429:
                self.logger.warning("Rate limit exceeded (429), returning empty results")
                self._count("rate_limited")
            elif status == 403:
                self.logger.warning("API access forbidden (403), check API key")
                self._count("forbidden")
            else:
                self.logger.warning("Flight API unavailable", status_code=status, error=exc.message)
                self._count("upstream_error")
            return []
        except (RetryError, httpx.HTTPError) as exc:
            self.logger.error("Error fetching flights", error=str(exc), url=f"{self.base_url}/v2/flights")
            self._count("network_error")
            return []

        flights = extract_flights(payload)
        if flights is None:
            keys = list(payload.keys()) if isinstance(payload, dict) else type(payload).__name__
            self.logger.warning("Unexpected API response structure", keys=keys)
            self._count("unexpected_shape")
            return []

        if not flights:
            self.logger.warning("No flight data found in API response")
            self._count("empty")
            return []

        limited = flights[: self.results_limit]
        results = [
            normalize_flight(flight, index, source, destination, date)
            for index, flight in enumerate(limited)
            if isinstance(flight, dict)
        ]
        self.logger.info(
            "Processed flights",
            source=source,
            destination=destination,
            received=len(flights),
            returned=len(results),
        )
        self._count("ok")
        return results

    async def _request(self, params: Dict[str, Any]) -> Any:
        response = await self._get_with_retry(params)

        if response.status_code == 200:
            try:
                return response.json()
            except ValueError as exc:
                raise ExternalServiceError(
                    service="flight_fare_api",
                    message="Invalid JSON body",
                    details={"status_code": 200},
                ) from exc

        self.logger.error(
            "Flight API request failed",
            status_code=response.status_code,
            response=response.text[:500],
        )
        raise ExternalServiceError(
            service="flight_fare_api",
            message=f"Unexpected status {response.status_code}",
            details={"status_code": response.status_code},
        )

    def _count(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("flight_api_requests_total", outcome=outcome)
