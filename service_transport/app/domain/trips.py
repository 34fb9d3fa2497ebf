"""
Remote trip repository.

Saved trips and search history share one document namespace keyed by the
canonical ``(userId, id)`` identity: ``trips:{userId}:{id}``. Inserts go
through ``put_if_absent`` so a trip pushed twice (retries, concurrent
syncs) is stored once.
"""

import secrets
import time
from typing import Any, Dict, List, Optional, Tuple

from shared.errors import NotFoundOrUnauthorizedError, ValidationError
from shared.logging import get_logger
from shared.timestamps import sort_key, utc_now_iso

from ..adapters.document_store import DocumentStore
from .models import RemoteTrip, TripKind


KEY_PREFIX = "trips"

# Keys that describe the record itself rather than the trip payload
RESERVED_FIELDS = {"id", "userId", "kind", "createdAt", "syncedAt", "origin", "syncState"}


def trip_key(user_id: str, trip_id: str) -> str:
    return f"{KEY_PREFIX}:{user_id}:{trip_id}"


def user_prefix(user_id: str) -> str:
    return f"{KEY_PREFIX}:{user_id}:"


def generate_trip_id(prefix: str = "trip") -> str:
    """Time-ordered id with a random suffix."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def _require_user(user_id: Optional[str]) -> str:
    if not user_id or not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("User ID is required.", details={"field": "userId"})
    if ":" in user_id:
        raise ValidationError("User ID must not contain ':'", details={"field": "userId"})
    return user_id


def _trip_payload(trip_data: Dict[str, Any]) -> Dict[str, Any]:
    nested = trip_data.get("payload")
    if isinstance(nested, dict):
        return dict(nested)
    return {key: value for key, value in trip_data.items() if key not in RESERVED_FIELDS}


class TripRepository:
    """Authoritative trip store on top of a key-value document store."""

    def __init__(self, store: DocumentStore, metrics: Optional[Any] = None):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("transport.trips")

    def _build(self, user_id: str, trip_data: Any, *, require_id: bool) -> RemoteTrip:
        user_id = _require_user(user_id)
        if not isinstance(trip_data, dict) or not trip_data:
            raise ValidationError("User ID and trip data are required.", details={"field": "tripData"})

        trip_id = trip_data.get("id")
        if trip_id in (None, ""):
            if require_id:
                raise ValidationError("Trip data must include an id", details={"field": "tripData.id"})
            trip_id = generate_trip_id()
        trip_id = str(trip_id)
        if ":" in trip_id:
            raise ValidationError("Trip id must not contain ':'", details={"field": "tripData.id"})

        return RemoteTrip(
            id=trip_id,
            user_id=user_id,
            kind=TripKind.SAVED,
            payload=_trip_payload(trip_data),
            created_at=trip_data.get("createdAt") or utc_now_iso(),
        )

    async def _insert(self, trip: RemoteTrip) -> Tuple[RemoteTrip, bool]:
        key = trip_key(trip.user_id, trip.id)
        created = await self.store.put_if_absent(key, trip.to_dict())
        if created:
            return trip, True

        existing = await self.store.get(key)
        if existing is None:
            # Deleted between the two calls; the insert wins on retry
            created = await self.store.put_if_absent(key, trip.to_dict())
            return trip, created
        return RemoteTrip.from_dict(existing), False

    async def add_trip(self, user_id: str, trip_data: Dict[str, Any]) -> RemoteTrip:
        """Save a trip. Re-adding an existing ``(userId, id)`` returns the stored record."""
        trip = self._build(user_id, trip_data, require_id=False)
        stored, created = await self._insert(trip)
        self._count("added" if created else "duplicate")
        self.logger.info("Trip added", user_id=user_id, trip_id=stored.id, created=created)
        return stored

    async def sync_trip(self, user_id: str, trip_data: Dict[str, Any]) -> Tuple[RemoteTrip, bool]:
        """Push a locally created trip.

        Returns the stored trip and whether this call created it. An already
        present trip is returned unchanged.
        """
        trip = self._build(user_id, trip_data, require_id=True)
        trip.synced_at = utc_now_iso()
        stored, created = await self._insert(trip)
        if created:
            self._count("synced")
            self.logger.info("Trip synced", user_id=user_id, trip_id=stored.id)
        else:
            self._count("duplicate")
            self.logger.info("Trip already exists, skipping sync", user_id=user_id, trip_id=stored.id)
        return stored, created

    async def record_search(self, user_id: str, details: Dict[str, Any]) -> RemoteTrip:
        """Record a search in the user's history."""
        user_id = _require_user(user_id)
        trip = RemoteTrip(
            id=generate_trip_id("search"),
            user_id=user_id,
            kind=TripKind.SEARCH,
            payload=dict(details),
            created_at=utc_now_iso(),
        )
        await self.store.put(trip_key(user_id, trip.id), trip.to_dict())
        self.logger.info("Search recorded", user_id=user_id, trip_id=trip.id)
        return trip

    async def list_trips(self, user_id: str) -> List[RemoteTrip]:
        """All trips and searches for ``user_id``, newest first."""
        user_id = _require_user(user_id)
        documents = await self.store.list(user_prefix(user_id))
        trips = [RemoteTrip.from_dict(document) for document in documents if document.get("userId") == user_id]
        trips.sort(key=lambda trip: sort_key(trip.created_at), reverse=True)
        return trips

    async def delete_trip(self, trip_id: str, user_id: str) -> None:
        """Delete a trip owned by ``user_id``.

        A missing trip and one owned by another user raise the same error.
        """
        user_id = _require_user(user_id)
        if not trip_id:
            raise ValidationError("Trip ID and User ID are required.", details={"field": "tripId"})

        removed = await self.store.delete(trip_key(user_id, trip_id))
        if not removed:
            self.logger.warning("Trip delete rejected", user_id=user_id, trip_id=trip_id)
            raise NotFoundOrUnauthorizedError("Trip not found or unauthorized", details={"trip_id": trip_id})
        self.logger.info("Trip deleted", user_id=user_id, trip_id=trip_id)

    def _count(self, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("trip_sync_total", result=result)
