"""
Entity Store - namespaced key-value persistence

Every marketplace entity is a JSON document under a string key
(product:{id}, cart:{user}:{product}, ...). The store offers point reads,
point writes, point deletes and prefix scans. There are no transactions and
no multi-key atomicity: concurrent writers to one key are last-write-wins.

Backed by Redis in deployed environments. Without REDIS_URL an in-process
dictionary is used, which is only suitable for development and tests.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from secondhand.core.config import settings
from secondhand.core.exceptions import UnexpectedError

logger = logging.getLogger(__name__)

Document = Dict[str, Any]

# Characters with meaning in a Redis MATCH pattern
_GLOB_SPECIALS = "\\*?[]"


class EntityStoreError(UnexpectedError):
    """The backing key-value store failed."""
    default_code = "ENTITY_STORE_FAILED"


class EntityStore(ABC):
    """Narrow key-value interface the services depend on."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Document]:
        """Return the document stored at key, or None."""

    @abstractmethod
    async def set(self, key: str, value: Document) -> None:
        """Store value at key, replacing any previous document."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key. Deleting an absent key is not an error."""

    @abstractmethod
    async def scan_prefix(self, prefix: str) -> List[Document]:
        """Return every document whose key starts with prefix (unordered)."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class InMemoryEntityStore(EntityStore):
    """Process-local store. Documents are copied through JSON on the way in and out."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[Document]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Document) -> None:
        self._data[key] = json.dumps(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def scan_prefix(self, prefix: str) -> List[Document]:
        return [json.loads(raw) for key, raw in self._data.items() if key.startswith(prefix)]


class RedisEntityStore(EntityStore):
    """
    Redis-backed store.

    Keys are written as {namespace}:{key}. Prefix scans use SCAN with a MATCH
    pattern (never KEYS) followed by MGET in batches.
    """

    SCAN_COUNT = 500

    def __init__(self, client: redis.Redis, namespace: str = ""):
        self._client = client
        self._namespace = f"{namespace}:" if namespace else ""

    def _full_key(self, key: str) -> str:
        return f"{self._namespace}{key}"

    @staticmethod
    def _escape_pattern(value: str) -> str:
        return "".join(f"\\{ch}" if ch in _GLOB_SPECIALS else ch for ch in value)

    async def get(self, key: str) -> Optional[Document]:
        try:
            raw = await self._client.get(self._full_key(key))
        except RedisError as e:
            raise EntityStoreError(f"Store read failed for {key}", details={"error": str(e)}) from e
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Document) -> None:
        try:
            await self._client.set(self._full_key(key), json.dumps(value))
        except RedisError as e:
            raise EntityStoreError(f"Store write failed for {key}", details={"error": str(e)}) from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._full_key(key))
        except RedisError as e:
            raise EntityStoreError(f"Store delete failed for {key}", details={"error": str(e)}) from e

    async def scan_prefix(self, prefix: str) -> List[Document]:
        pattern = self._escape_pattern(self._full_key(prefix)) + "*"
        documents: List[Document] = []
        batch: List[str] = []
        try:
            async for key in self._client.scan_iter(match=pattern, count=self.SCAN_COUNT):
                batch.append(key)
                if len(batch) >= self.SCAN_COUNT:
                    documents.extend(await self._mget(batch))
                    batch = []
            if batch:
                documents.extend(await self._mget(batch))
        except RedisError as e:
            raise EntityStoreError(f"Store scan failed for {prefix}", details={"error": str(e)}) from e
        return documents

    async def _mget(self, keys: List[str]) -> List[Document]:
        values = await self._client.mget(keys)
        # A key may vanish between SCAN and MGET
        return [json.loads(raw) for raw in values if raw is not None]

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()


# Global store (initialized lazily)
_entity_store: Optional[EntityStore] = None


def get_entity_store() -> EntityStore:
    """Get the process-wide store, creating it on first use.

    Falls back to the in-memory store if REDIS_URL is not configured.
    """
    global _entity_store

    if _entity_store is None:
        if settings.REDIS_URL:
            client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
            )
            _entity_store = RedisEntityStore(client, namespace=settings.KV_NAMESPACE)
            logger.info("Entity store using Redis (namespace=%s)", settings.KV_NAMESPACE)
        else:
            logger.warning("REDIS_URL not set; entity store is in-memory and not persistent")
            _entity_store = InMemoryEntityStore()

    return _entity_store


async def close_entity_store():
    """Close the store connection on shutdown."""
    global _entity_store
    if _entity_store is not None:
        await _entity_store.close()
        _entity_store = None
