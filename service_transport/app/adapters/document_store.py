"""
Key-value document store used as the remote system of record for trips.

Only get/put/put-if-absent/delete/list-by-prefix are required, which keeps
the trip repository independent of any particular database's query
language.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import redis.asyncio as redis

from shared.errors import StorageError
from shared.logging import get_logger


Document = Dict[str, Any]

_GLOB_CHARS = re.compile(r"([*?\[\]\\])")


def escape_glob(value: str) -> str:
    """Escape Redis MATCH pattern metacharacters so ``value`` matches literally."""
    return _GLOB_CHARS.sub(r"\\\1", value)


class DocumentStore(ABC):
    """Abstract key-value document store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Document]:
        """Return the document stored under ``key`` or None."""

    @abstractmethod
    async def put(self, key: str, document: Document) -> None:
        """Store ``document`` under ``key``, replacing any previous one."""

    @abstractmethod
    async def put_if_absent(self, key: str, document: Document) -> bool:
        """Atomically store ``document`` unless ``key`` exists. True if stored."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``. True if something was removed."""

    @abstractmethod
    async def list(self, prefix: str) -> List[Document]:
        """Return every document whose key starts with ``prefix``."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class InMemoryDocumentStore(DocumentStore):
    """Process-local document store for development and tests."""

    def __init__(self):
        self._documents: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[Document]:
        raw = self._documents.get(key)
        return json.loads(raw) if raw is not None else None

    async def put(self, key: str, document: Document) -> None:
        self._documents[key] = json.dumps(document)

    async def put_if_absent(self, key: str, document: Document) -> bool:
        # No await between the check and the write, so this is atomic on the loop
        if key in self._documents:
            return False
        self._documents[key] = json.dumps(document)
        return True

    async def delete(self, key: str) -> bool:
        return self._documents.pop(key, None) is not None

    async def list(self, prefix: str) -> List[Document]:
        return [json.loads(raw) for key, raw in sorted(self._documents.items()) if key.startswith(prefix)]

    def __len__(self) -> int:
        return len(self._documents)


class RedisDocumentStore(DocumentStore):
    """Redis-backed document store (documents stored as JSON strings)."""

    def __init__(self, redis_url: str, namespace: str = "tripbuddy"):
        self.redis_url = redis_url
        self.namespace = namespace
        self.logger = get_logger("transport.document_store")
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._redis

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Document]:
        try:
            client = await self._get_redis()
            raw = await client.get(self._key(key))
        except redis.RedisError as exc:
            self.logger.error("Document get failed", key=key, error=str(exc))
            raise StorageError("Document store unavailable", details={"operation": "get"}) from exc
        return json.loads(raw) if raw else None

    async def put(self, key: str, document: Document) -> None:
        try:
            client = await self._get_redis()
            await client.set(self._key(key), json.dumps(document))
        except redis.RedisError as exc:
            self.logger.error("Document put failed", key=key, error=str(exc))
            raise StorageError("Document store unavailable", details={"operation": "put"}) from exc

    async def put_if_absent(self, key: str, document: Document) -> bool:
        try:
            client = await self._get_redis()
            stored = await client.set(self._key(key), json.dumps(document), nx=True)
        except redis.RedisError as exc:
            self.logger.error("Document put_if_absent failed", key=key, error=str(exc))
            raise StorageError("Document store unavailable", details={"operation": "put_if_absent"}) from exc
        return bool(stored)

    async def delete(self, key: str) -> bool:
        try:
            client = await self._get_redis()
            removed = await client.delete(self._key(key))
        except redis.RedisError as exc:
            self.logger.error("Document delete failed", key=key, error=str(exc))
            raise StorageError("Document store unavailable", details={"operation": "delete"}) from exc
        return bool(removed)

    async def list(self, prefix: str) -> List[Document]:
        try:
            client = await self._get_redis()
            full_prefix = self._key(prefix)
            pattern = f"{escape_glob(full_prefix)}*"
            keys = [key async for key in client.scan_iter(match=pattern) if key.startswith(full_prefix)]
            if not keys:
                return []
            values = await client.mget(sorted(keys))
        except redis.RedisError as exc:
            self.logger.error("Document list failed", prefix=prefix, error=str(exc))
            raise StorageError("Document store unavailable", details={"operation": "list"}) from exc
        return [json.loads(value) for value in values if value]

    async def ping(self) -> bool:
        try:
            client = await self._get_redis()
            return bool(await client.ping())
        except redis.RedisError as exc:
            self.logger.error("Redis health check failed", error=str(exc))
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def create_document_store(url: str) -> DocumentStore:
    """Build a document store from a ``memory://`` or ``redis://`` URL."""
    if url.startswith("memory://"):
        return InMemoryDocumentStore()
    if url.startswith(("redis://", "rediss://", "unix://")):
        return RedisDocumentStore(url)
    raise ValueError(f"Unsupported document store URL: {url}")
