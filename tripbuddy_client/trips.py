"""
Offline-first trip records.

Trips are written to device storage first and pushed to the Transport
Service when it is reachable. Records that could not be pushed stay
``pending`` until ``SyncReconciler.sync_pending`` gets them through; the
server stores each ``(userId, id)`` once, so re-pushing is always safe.
"""

import asyncio
import json
import secrets
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from shared.errors import StorageError, ValidationError
from shared.logging import get_logger
from shared.timestamps import sort_key, utc_now_iso

from .api_client import TransportApiClient
from .remote import call_remote
from .storage import KeyValueStorage

TRIPS_KEY = "user_trips"
USER_ID_KEY = "user_id"

logger = get_logger("client.trips")


class SyncState(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"


class Origin(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


def generate_record_id() -> str:
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def generate_user_id() -> str:
    return f"user_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


def validate_user_id(user_id: Optional[str]) -> str:
    """Apply the server's user id rules before anything is stored locally."""
    if not user_id or not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("User ID is required.", details={"field": "user_id"})
    if ":" in user_id:
        raise ValidationError("User ID must not contain ':'", details={"field": "user_id"})
    return user_id


@dataclass
class TripRecord:
    """A trip as the device knows it."""

    id: str
    user_id: str
    payload: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=utc_now_iso)
    origin: Origin = Origin.LOCAL
    sync_state: SyncState = SyncState.PENDING

    @classmethod
    def create(cls, user_id: str, payload: Dict[str, Any]) -> "TripRecord":
        return cls(id=generate_record_id(), user_id=user_id, payload=dict(payload))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "payload": self.payload,
            "createdAt": self.created_at,
            "origin": self.origin.value,
            "syncState": self.sync_state.value,
        }

    def to_trip_data(self) -> Dict[str, Any]:
        """Body sent to the server as ``tripData``."""
        return {"id": self.id, "payload": self.payload, "createdAt": self.created_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TripRecord":
        return cls(
            id=str(data["id"]),
            user_id=str(data["userId"]),
            payload=dict(data.get("payload") or {}),
            created_at=data.get("createdAt") or utc_now_iso(),
            origin=Origin(data.get("origin", Origin.LOCAL.value)),
            sync_state=SyncState(data.get("syncState", SyncState.PENDING.value)),
        )

    @classmethod
    def from_remote(cls, document: Dict[str, Any]) -> "TripRecord":
        """Wrap a server trip document."""
        return cls(
            id=str(document["id"]),
            user_id=str(document.get("userId", "")),
            payload=dict(document.get("payload") or {}),
            created_at=document.get("createdAt") or "",
            origin=Origin.REMOTE,
            sync_state=SyncState.SYNCED,
        )


class TripRecordStore:
    """The device's list of trip records under the ``user_trips`` key.

    Every mutation is a read-modify-write of the whole list, serialized by
    the store's lock. Reads degrade to an empty list; writes raise
    ``StorageError``.
    """

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self._write_lock: Optional[asyncio.Lock] = None

    def _lock(self) -> asyncio.Lock:
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        return self._write_lock

    async def load(self) -> List[TripRecord]:
        try:
            raw = await self.storage.get_item(TRIPS_KEY)
            if not raw:
                return []
            return [TripRecord.from_dict(item) for item in json.loads(raw)]
        except (StorageError, ValueError, KeyError, TypeError) as exc:
            logger.error("Error getting local trips", error=str(exc))
            return []

    async def save(self, records: List[TripRecord]) -> None:
        await self.storage.set_item(TRIPS_KEY, json.dumps([record.to_dict() for record in records]))

    async def append(self, record: TripRecord) -> None:
        async with self._lock():
            records = await self.load()
            records.append(record)
            await self.save(records)

    async def remove(self, trip_id: str) -> Optional[TripRecord]:
        """Delete a record; returns it, or None if it was not stored."""
        async with self._lock():
            records = await self.load()
            kept = [record for record in records if record.id != trip_id]
            if len(kept) == len(records):
                return None
            await self.save(kept)
        return next(record for record in records if record.id == trip_id)

    async def mark_synced(self, trip_id: str) -> bool:
        async with self._lock():
            records = await self.load()
            for record in records:
                if record.id == trip_id:
                    if record.sync_state is SyncState.SYNCED:
                        return True
                    record.sync_state = SyncState.SYNCED
                    await self.save(records)
                    return True
        return False


class DeviceIdentity:
    """Persistent per-device user id."""

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    async def get_user_id(self) -> str:
        """Return the stored user id, creating it on first use.

        When storage is unusable a fresh id is returned for this call only.
        """
        try:
            user_id = await self.storage.get_item(USER_ID_KEY)
            if not user_id:
                user_id = generate_user_id()
                await self.storage.set_item(USER_ID_KEY, user_id)
                logger.info("Generated device user id", user_id=user_id)
            return user_id
        except StorageError as exc:
            logger.error("Error getting user ID", error=str(exc))
            return generate_user_id()


class SyncReconciler:
    """Keeps device trip records and the Transport Service in step."""

    def __init__(self, store: TripRecordStore, api: TransportApiClient, identity: DeviceIdentity):
        self.store = store
        self.api = api
        self.identity = identity

    async def add_trip(self, user_id: str, payload: Dict[str, Any]) -> TripRecord:
        """Save a trip locally, then try to push it.

        The record is returned ``synced`` if the push succeeded and
        ``pending`` otherwise.
        """
        user_id = validate_user_id(user_id)

        record = TripRecord.create(user_id, payload)
        await self.store.append(record)

        try:
            result = await call_remote("add_trip", lambda: self.api.add_trip(user_id, record.to_trip_data()))
        except ValidationError as exc:
            logger.warning("Backend rejected trip, saved locally", trip_id=record.id, error=exc.message)
            return record

        if result.ok:
            await self.store.mark_synced(record.id)
            record.sync_state = SyncState.SYNCED
            logger.info("Trip saved to backend successfully", trip_id=record.id)
        else:
            logger.warning("Failed to save to backend, saved locally", trip_id=record.id, reason=result.reason.value)
        return record

    async def list_trips(self, user_id: str) -> List[TripRecord]:
        """Local and remote trips merged by id, newest first.

        A local record shadows a remote one with the same id. When the server
        cannot be reached only local records are returned.
        """
        local, remote = await asyncio.gather(
            self.store.load(),
            call_remote("get_history", lambda: self.api.get_history(user_id)),
        )

        merged: Dict[str, TripRecord] = {}
        for record in local:
            if record.user_id == user_id:
                merged.setdefault(record.id, record)

        if remote.ok:
            for document in remote.value or []:
                if isinstance(document, dict) and "id" in document:
                    merged.setdefault(str(document["id"]), TripRecord.from_remote(document))
        else:
            logger.warning("Showing local trips only", reason=remote.reason.value)

        return sorted(merged.values(), key=lambda record: sort_key(record.created_at), reverse=True)

    async def remove_trip(self, trip_id: str) -> bool:
        """Delete a trip locally, then ask the server to delete it too.

        Returns whether a local record was removed. Remote failures, including
        "not found", are only logged.
        """
        removed = await self.store.remove(trip_id)
        user_id = removed.user_id if removed else await self.identity.get_user_id()

        result = await call_remote("delete_trip", lambda: self.api.delete_trip(trip_id, user_id))
        if result.ok:
            logger.info("Trip removed from backend successfully", trip_id=trip_id)
        else:
            logger.warning("Failed to remove from backend", trip_id=trip_id, reason=result.reason.value)
        return removed is not None

    async def sync_pending(self) -> Dict[str, int]:
        """Push every pending record; each one succeeds or fails on its own."""
        pending = [record for record in await self.store.load() if record.sync_state is SyncState.PENDING]
        summary = {"attempted": len(pending), "synced": 0, "failed": 0}

        for record in pending:
            try:
                result = await call_remote(
                    "sync_trip",
                    lambda record=record: self.api.sync_trip(record.user_id, record.to_trip_data()),
                )
            except ValidationError as exc:
                logger.warning("Failed to sync trip", trip_id=record.id, error=exc.message)
                summary["failed"] += 1
                continue

            if result.ok:
                await self.store.mark_synced(record.id)
                summary["synced"] += 1
            else:
                logger.warning("Failed to sync trip", trip_id=record.id, reason=result.reason.value)
                summary["failed"] += 1

        logger.info("Sync finished", **summary)
        return summary
