"""SQLite-backed key-value storage for the device."""

import asyncio
from pathlib import Path
from typing import List, Optional, Union

import aiosqlite

from shared.errors import StorageError
from shared.logging import get_logger

logger = get_logger("client.storage")

MEMORY_DATABASE = ":memory:"


class KeyValueStorage:
    """Persistent string-to-string store shared by the client components.

    One connection is opened lazily and kept until ``close()``. Every failure
    surfaces as ``StorageError``; callers decide whether to swallow it.
    """

    def __init__(self, database_path: Union[Path, str] = MEMORY_DATABASE):
        """Initialize storage.

        Args:
            database_path: Path to the SQLite database file, or ``:memory:``
        """
        self.database_path = str(database_path)
        if self.database_path != MEMORY_DATABASE:
            Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)
        self._db: Optional[aiosqlite.Connection] = None
        self._initialization_lock: Optional[asyncio.Lock] = None

    async def _connection(self) -> aiosqlite.Connection:
        if self._db is not None:
            return self._db

        if self._initialization_lock is None:
            self._initialization_lock = asyncio.Lock()

        async with self._initialization_lock:
            if self._db is not None:
                return self._db
            try:
                db = await aiosqlite.connect(self.database_path)
                await db.execute("PRAGMA journal_mode=WAL")
                await db.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    )
                """
                )
                await db.commit()
            except aiosqlite.Error as exc:
                logger.error("Failed to open device storage", path=self.database_path, error=str(exc))
                raise StorageError("Device storage unavailable", details={"operation": "open"}) from exc
            self._db = db
            logger.debug("Device storage opened", path=self.database_path)
            return db

    async def get_item(self, key: str) -> Optional[str]:
        db = await self._connection()
        try:
            async with db.execute("SELECT value FROM kv_store WHERE key = ?", (key,)) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StorageError("Device storage read failed", details={"key": key}) from exc
        return row[0] if row else None

    async def set_item(self, key: str, value: str) -> None:
        db = await self._connection()
        try:
            await db.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
            """,
                (key, value),
            )
            await db.commit()
        except aiosqlite.Error as exc:
            raise StorageError("Device storage write failed", details={"key": key}) from exc

    async def remove_item(self, key: str) -> None:
        db = await self._connection()
        try:
            await db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            await db.commit()
        except aiosqlite.Error as exc:
            raise StorageError("Device storage delete failed", details={"key": key}) from exc

    async def keys(self, prefix: str = "") -> List[str]:
        db = await self._connection()
        try:
            async with db.execute(
                "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StorageError("Device storage scan failed", details={"prefix": prefix}) from exc
        return [row[0] for row in rows]

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None
