"""Neighbor cache layer for Amity.

Cache-aside projection of the graph store:
- Entries are written only by mutations (see FriendshipManager)
- Whole-list replacement, never partial updates
- Redis and in-memory backends
"""

from amity.cache.base import NeighborCache
from amity.cache.keys import CacheKeys, entity_token
from amity.cache.memory import InMemoryNeighborCache
from amity.cache.redis import RedisNeighborCache, close_redis, get_redis

__all__ = [
    "CacheKeys",
    "InMemoryNeighborCache",
    "NeighborCache",
    "RedisNeighborCache",
    "close_redis",
    "entity_token",
    "get_redis",
]
