"""In-memory neighbor cache for single-process deployments and tests."""

from __future__ import annotations

from amity.cache.base import NeighborCache
from amity.core.operations import EntityId


class InMemoryNeighborCache(NeighborCache):
    """Dictionary-backed cache. Stored lists are copied on the way in and out."""

    def __init__(self) -> None:
        self._entries: dict[EntityId, list[EntityId]] = {}

    async def put(self, entity_id: EntityId, neighbors: list[EntityId]) -> None:
        self._entries[entity_id] = list(neighbors)

    async def delete(self, entity_id: EntityId) -> None:
        self._entries.pop(entity_id, None)

    async def get(self, entity_id: EntityId) -> list[EntityId] | None:
        entry = self._entries.get(entity_id)
        return list(entry) if entry is not None else None

    def __len__(self) -> int:
        return len(self._entries)
