"""In-memory graph store for single-process deployments and tests."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter

from amity.core.errors import StoreError
from amity.core.operations import EntityId
from amity.store.base import Store, sorted_ids

logger = logging.getLogger(__name__)


class InMemoryStore(Store):
    """Undirected adjacency-set graph guarded by an asyncio lock.

    Mutations are serialized; reads take a consistent snapshot under the
    same lock.
    """

    def __init__(self) -> None:
        self._adjacency: dict[EntityId, set[EntityId]] = {}
        self._lock = asyncio.Lock()

    async def insert_node(self, entity_id: EntityId) -> None:
        async with self._lock:
            self._adjacency.setdefault(entity_id, set())

    async def delete_node(self, entity_id: EntityId) -> None:
        async with self._lock:
            neighbors = self._adjacency.get(entity_id)
            if neighbors is None:
                return
            if neighbors:
                raise StoreError(
                    f"Cannot delete node {entity_id!r}: it still has {len(neighbors)} edge(s)"
                )
            del self._adjacency[entity_id]

    async def node_exists(self, entity_id: EntityId) -> bool:
        async with self._lock:
            return entity_id in self._adjacency

    async def insert_edge(self, a: EntityId, b: EntityId) -> None:
        if a == b:
            raise StoreError(f"Cannot connect node {a!r} to itself")

        async with self._lock:
            missing = [n for n in (a, b) if n not in self._adjacency]
            if missing:
                raise StoreError(f"Unknown node(s): {', '.join(repr(n) for n in missing)}")
            if b in self._adjacency[a]:
                raise StoreError(f"Edge already exists: {a!r} - {b!r}")
            self._adjacency[a].add(b)
            self._adjacency[b].add(a)

    async def delete_edge(self, a: EntityId, b: EntityId) -> None:
        async with self._lock:
            self._adjacency.get(a, set()).discard(b)
            self._adjacency.get(b, set()).discard(a)

    async def list_neighbors(self, entity_id: EntityId) -> list[EntityId]:
        async with self._lock:
            return sorted_ids(self._adjacency.get(entity_id, ()))

    async def are_connected(self, a: EntityId, b: EntityId) -> bool:
        async with self._lock:
            return b in self._adjacency.get(a, ())

    async def recommend(
        self,
        entity_id: EntityId,
        depth: int,
        threshold: int,
        inclusive: bool = True,
    ) -> list[EntityId]:
        if depth < 1:
            raise StoreError(f"Traversal depth must be positive, got {depth}")

        async with self._lock:
            if entity_id not in self._adjacency:
                return []
            counts = self._count_paths(entity_id, depth)

        if inclusive:
            matches = [n for n, c in counts.items() if c >= threshold]
        else:
            matches = [n for n, c in counts.items() if c > threshold]
        return sorted_ids(matches)

    def _count_paths(self, source: EntityId, depth: int) -> Counter[EntityId]:
        """Count edge-unique walks of exactly ``depth`` hops per endpoint."""
        counts: Counter[EntityId] = Counter()

        def walk(node: EntityId, remaining: int, used: frozenset[frozenset[EntityId]]) -> None:
            if remaining == 0:
                if node != source:
                    counts[node] += 1
                return
            for nxt in self._adjacency[node]:
                edge = frozenset((node, nxt))
                if edge in used:
                    continue
                walk(nxt, remaining - 1, used | {edge})

        walk(source, depth, frozenset())
        return counts
