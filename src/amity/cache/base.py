"""Neighbor cache interface.

The cache is a derived projection of the store: entries are whole neighbor
lists, written only by the cache-aside manager and never partially updated.
Implementations wrap every backend fault in CacheError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from amity.core.operations import EntityId


class NeighborCache(ABC):
    """Abstract keyed cache of neighbor lists."""

    async def initialize(self) -> None:
        """Prepare connections. No-op by default."""

    async def close(self) -> None:
        """Release connections. No-op by default."""

    @abstractmethod
    async def put(self, entity_id: EntityId, neighbors: list[EntityId]) -> None:
        """Replace the cached neighbor list of an entity."""

    @abstractmethod
    async def delete(self, entity_id: EntityId) -> None:
        """Drop the cached entry of an entity."""

    @abstractmethod
    async def get(self, entity_id: EntityId) -> list[EntityId] | None:
        """Cached neighbor list, or None on a miss."""
