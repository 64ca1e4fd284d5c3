"""
Redis key-value store

Async Redis backend with:
- Automatic JSON serialization/deserialization
- Connection pooling
- Errors mapped onto the storage exception hierarchy
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis

from habitquest.config import REDIS_URL
from habitquest.exceptions import wrap_external_exception
from habitquest.storage.base import KeyValueStore

logger = logging.getLogger(__name__)


class RedisStore(KeyValueStore):
    """Store each key as a JSON string in Redis"""

    def __init__(self, redis_url: str = REDIS_URL, client: Optional[Any] = None):
        """
        Initialize Redis store.

        Args:
            redis_url: Redis connection URL
            client: Pre-built client (tests inject a mock here)
        """
        self.redis_url = redis_url
        self._client = client

    async def _get_client(self):
        if self._client is None:
            try:
                self._client = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    max_connections=10,
                )
                await self._client.ping()
                logger.info(f"✅ Redis connected: {self.redis_url}")
            except redis.RedisError as e:
                self._client = None
                logger.error(f"❌ Redis connection failed: {e}")
                raise wrap_external_exception(e, operation="store_connect")
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        client = await self._get_client()
        try:
            raw = await client.get(key)
        except redis.RedisError as e:
            raise wrap_external_exception(e, operation="store_get", context={"key": key})
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        client = await self._get_client()
        try:
            await client.set(key, json.dumps(value, ensure_ascii=False))
        except redis.RedisError as e:
            raise wrap_external_exception(e, operation="store_set", context={"key": key})

    async def delete(self, key: str) -> None:
        client = await self._get_client()
        try:
            await client.delete(key)
        except redis.RedisError as e:
            raise wrap_external_exception(e, operation="store_delete", context={"key": key})

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            try:
                await self._client.aclose()
                logger.info("Redis connection closed")
            except redis.RedisError as e:
                logger.error(f"Error closing Redis connection: {e}")
            finally:
                self._client = None
