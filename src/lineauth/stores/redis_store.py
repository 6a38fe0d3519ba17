"""Redis-backed key/value store.

Redis Schema:
  Key: caller-supplied, e.g. ``line:pkce:{state}``
  Value: the PKCE code_verifier
  TTL: ``ttl_seconds`` (600 by default, the lifetime of an authorization code)

Single-use is enforced with ``GETDEL`` (Redis >= 6.2), which reads and
deletes in one atomic command.
"""

from __future__ import annotations

import logging
from typing import Optional

import redis.asyncio

from lineauth.stores.base import KeyValueStore

logger = logging.getLogger(__name__)


class RedisKeyValueStore(KeyValueStore):
    """Key/value store for multi-instance deployments."""

    def __init__(self, redis_client: redis.asyncio.Redis, ttl_seconds: int = 600):
        """Initialize Redis store.

        Args:
            redis_client: Redis async client.
            ttl_seconds: Entry TTL in seconds.
        """
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds

    async def store(self, key: str, value: str) -> None:
        await self.redis.set(key, value, ex=self.ttl_seconds)

    async def verify(self, key: str) -> Optional[str]:
        value = await self.redis.getdel(key)
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value
