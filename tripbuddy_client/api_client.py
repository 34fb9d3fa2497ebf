"""
HTTP client for the Transport Service.

Methods return decoded JSON and raise ``httpx.HTTPStatusError`` or
``httpx.TransportError`` on failure; wrap calls in
``tripbuddy_client.remote.call_remote`` to get a ``RemoteResult``.
"""

from typing import Any, Dict, List, Optional

import httpx

from shared.logging import get_logger


class TransportApiClient:
    """Client for communicating with the Transport service."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.logger = get_logger("client.api")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
            event_hooks={"request": [self._log_request], "response": [self._log_response]},
        )

    async def _log_request(self, request: httpx.Request) -> None:
        self.logger.debug("API request", method=request.method, url=str(request.url))

    async def _log_response(self, response: httpx.Response) -> None:
        request = response.request
        if response.is_error:
            self.logger.warning(
                "API response error",
                method=request.method,
                url=str(request.url),
                status_code=response.status_code,
            )
        else:
            self.logger.debug("API response", status_code=response.status_code, url=str(request.url))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, path: str, **kwargs) -> Any:
        response = await self._client.request(method, path, **kwargs)
        response.raise_for_status()
        return response.json()

    async def search(self, source: str, destination: str, mode: str, date: Optional[str] = None,
                     user_id: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"source": source, "destination": destination, "mode": mode}
        if date:
            payload["date"] = date
        if user_id:
            payload["userId"] = user_id
        return await self._send("POST", "/transport/search", json=payload)

    async def get_history(self, user_id: str) -> List[Dict[str, Any]]:
        body = await self._send("GET", f"/transport/history/{user_id}")
        if not isinstance(body, dict):
            raise ValueError(f"Unexpected history response: {type(body).__name__}")
        return body.get("trips") or []

    async def add_trip(self, user_id: str, trip_data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._send("POST", "/transport/trip/add", json={"userId": user_id, "tripData": trip_data})

    async def sync_trip(self, user_id: str, trip_data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._send("POST", "/transport/trip/sync", json={"userId": user_id, "tripData": trip_data})

    async def delete_trip(self, trip_id: str, user_id: str) -> Dict[str, Any]:
        return await self._send("DELETE", f"/transport/trip/{trip_id}", json={"userId": user_id})
