"""
Key-value cache backend for domain → tenant resolution.

Redis is an optimization only: every error is logged and reported as a miss
(or a no-op for writes) so request resolution keeps working without it.
"""

import logging
from functools import lru_cache
from typing import Optional, Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from raya_domains.config import settings

logger = logging.getLogger("raya.cache")


class Cache(Protocol):
    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str, ttl: int) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class RedisCache:
    def __init__(self, redis: Redis, key_prefix: str = "raya"):
        self.redis = redis
        self.key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(self._key(key))
        except RedisError as e:
            logger.warning("Cache get error for %s: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self.redis.setex(self._key(key), ttl, value)
        except RedisError as e:
            logger.warning("Cache set error for %s: %s", key, e)

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(self._key(key))
        except RedisError as e:
            # A stale entry survives until its TTL runs out.
            logger.error("Cache delete error for %s: %s", key, e)


@lru_cache
def get_cache() -> RedisCache:
    client = Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
    )
    return RedisCache(client)
