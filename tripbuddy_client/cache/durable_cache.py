"""
Persistent TTL cache on the device key-value storage.

Second tier of the client read path. Entries are stored as JSON
``{"value": ..., "expiresAt": <epoch ms>}`` under ``cache:{key}``. Read
and write failures are logged and treated as a miss or a no-op; nothing
here raises.
"""

import json
from typing import Any, Callable, Optional

from shared.errors import StorageError
from shared.logging import get_logger

from ..storage import KeyValueStorage
from .base import ABSENT, now_ms

NAMESPACE = "cache:"


class DurableCache:
    """Device-persistent cache with lazy expiry."""

    def __init__(self, storage: KeyValueStorage, clock: Callable[[], int] = now_ms):
        self.storage = storage
        self._clock = clock
        self.logger = get_logger("client.durable_cache")

    @staticmethod
    def _storage_key(key: str) -> str:
        return f"{NAMESPACE}{key}"

    async def get(self, key: Optional[str]) -> Any:
        """Return the cached value, or ABSENT if missing, expired or unreadable."""
        if not key:
            self.logger.warning("Durable cache: invalid key provided")
            return ABSENT

        storage_key = self._storage_key(key)
        try:
            raw = await self.storage.get_item(storage_key)
            if raw is None:
                return ABSENT
            entry = json.loads(raw)
            value = entry["value"]
            expired = self._clock() >= entry["expiresAt"]
        except (StorageError, ValueError, KeyError, TypeError) as exc:
            self.logger.warning("Durable cache get error", key=key, error=str(exc))
            return ABSENT

        if expired:
            await self.delete(key)
            return ABSENT
        return value

    async def set(self, key: Optional[str], value: Any, ttl_ms: int) -> None:
        """Persist ``value`` until now + ``ttl_ms``."""
        if not key:
            self.logger.warning("Durable cache: invalid key provided")
            return
        if value is None:
            self.logger.warning("Durable cache: invalid data provided", key=key)
            return

        try:
            raw = json.dumps({"value": value, "expiresAt": self._clock() + ttl_ms})
            await self.storage.set_item(self._storage_key(key), raw)
        except (StorageError, TypeError, ValueError) as exc:
            self.logger.warning("Durable cache set error", key=key, error=str(exc))

    async def delete(self, key: str) -> None:
        try:
            await self.storage.remove_item(self._storage_key(key))
        except StorageError as exc:
            self.logger.warning("Durable cache delete error", key=key, error=str(exc))
