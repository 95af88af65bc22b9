"""Redis neighbor cache and shared Redis client.

Neighbor lists are stored as JSON arrays under CacheKeys.neighbors(id).
Uses the redis-py async client with connection pooling; the same client
backs the request bus, reply slots and sequence counters.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import orjson
import redis.asyncio as redis
from redis.exceptions import RedisError

from amity.cache.base import NeighborCache
from amity.cache.keys import CacheKeys
from amity.config import settings
from amity.core.errors import CacheError
from amity.core.operations import EntityId

if TYPE_CHECKING:
    from redis.asyncio import Redis

# Module-level connection pool
_redis_client: Redis | None = None


async def get_redis() -> Redis:
    """Get or create the Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            encoding="utf-8",
            decode_responses=False,  # Payloads are raw JSON bytes
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


class RedisNeighborCache(NeighborCache):
    """Cache of neighbor lists in Redis.

    ``ttl`` of None stores entries without expiry; entries are always
    replaced whole by the next mutation touching the entity.
    """

    def __init__(self, client: Redis, ttl: int | None = None):
        self.client = client
        self.ttl = ttl

    async def put(self, entity_id: EntityId, neighbors: list[EntityId]) -> None:
        key = CacheKeys.neighbors(entity_id)
        value = orjson.dumps(list(neighbors))
        try:
            if self.ttl:
                await self.client.setex(key, self.ttl, value)
            else:
                await self.client.set(key, value)
        except RedisError as e:
            raise CacheError(f"Cache put failed for {key}: {e}") from e

    async def delete(self, entity_id: EntityId) -> None:
        key = CacheKeys.neighbors(entity_id)
        try:
            await self.client.delete(key)
        except RedisError as e:
            raise CacheError(f"Cache delete failed for {key}: {e}") from e

    async def get(self, entity_id: EntityId) -> list[EntityId] | None:
        key = CacheKeys.neighbors(entity_id)
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            raise CacheError(f"Cache get failed for {key}: {e}") from e

        if raw is None:
            return None

        try:
            value: Any = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise CacheError(f"Corrupt cache entry at {key}: {e}") from e
        if not isinstance(value, list):
            raise CacheError(f"Corrupt cache entry at {key}: expected a list")
        return value

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await self.client.ping()
            return True
        except RedisError:
            return False
