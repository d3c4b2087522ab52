"""
Storefront Sync - Key-Value Storage
String-valued key-value persistence behind a small get/set/remove interface.

Two backends are provided: an in-process dictionary (tests, single-process
deployments) and Redis (shared, durable deployments). Keys follow the layout
the dashboard has always used, e.g. ``{platform_id}_credentials`` or
``inventory_updates``.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..core.config import Settings
from ..core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract string-valued key-value store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value for ``key`` or None if absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove ``key``. Removing a missing key is not an error."""

    async def get_json(self, key: str) -> Optional[Any]:
        """
        Read and decode a JSON value.

        Args:
            key: Storage key

        Returns:
            Decoded value, or None when absent or unreadable
        """
        try:
            raw = await self.get(key)
        except PersistenceError as e:
            logger.error(f"Failed to read {key}: {e}")
            return None

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Stored value for {key} is not valid JSON: {e}")
            return None

    async def set_json(self, key: str, value: Any) -> None:
        """Encode ``value`` as JSON and store it."""
        await self.set(key, json.dumps(value))


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store, local to the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise PersistenceError(f"Values must be strings, got {type(value).__name__}")
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


class RedisKeyValueStore(KeyValueStore):
    """
    Redis-backed store.

    Redis errors are wrapped in PersistenceError so callers only deal with
    one failure type.
    """

    def __init__(self, redis_client: redis.Redis, key_prefix: str = ""):
        """
        Initialize Redis store.

        Args:
            redis_client: Redis client created with ``decode_responses=True``
            key_prefix: Optional namespace prepended to every key
        """
        self.redis_client = redis_client
        self.key_prefix = key_prefix
        logger.info(f"RedisKeyValueStore initialized (prefix={key_prefix!r})")

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.redis_client.get(self._key(key))
        except RedisError as e:
            raise PersistenceError(f"Failed to read {key}: {e}") from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        try:
            await self.redis_client.set(self._key(key), value)
        except RedisError as e:
            raise PersistenceError(f"Failed to write {key}: {e}") from e

    async def remove(self, key: str) -> None:
        try:
            await self.redis_client.delete(self._key(key))
        except RedisError as e:
            raise PersistenceError(f"Failed to remove {key}: {e}") from e

    async def health_check(self) -> Dict[str, Any]:
        """
        Check Redis connectivity.

        Returns:
            Health status information
        """
        try:
            await self.redis_client.ping()
            return {"status": "healthy", "redis_connected": True, "key_prefix": self.key_prefix}
        except RedisError as e:
            logger.error(f"Key-value store health check failed: {e}")
            return {
                "status": "unhealthy",
                "redis_connected": False,
                "error": str(e),
                "key_prefix": self.key_prefix,
            }

    async def close(self) -> None:
        await self.redis_client.close()


def create_key_value_store(settings: Settings) -> KeyValueStore:
    """
    Create the key-value store selected by configuration.

    Args:
        settings: Library settings

    Returns:
        KeyValueStore instance
    """
    if settings.storage_backend == "redis":
        redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password,
            db=settings.redis_db,
            decode_responses=True,
        )
        return RedisKeyValueStore(redis_client, key_prefix=settings.redis_key_prefix)

    if settings.storage_backend != "memory":
        logger.warning(f"Unknown storage backend {settings.storage_backend!r}, using memory")
    return InMemoryKeyValueStore()
