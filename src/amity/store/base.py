"""Graph store interface.

The store is the single source of truth for the friendship graph.
Implementations wrap every backend fault in StoreError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from amity.core.operations import EntityId


def id_sort_key(entity_id: EntityId) -> tuple[int, int | str]:
    """Total order over entity IDs: ints ascending, then strs ascending."""
    if isinstance(entity_id, str):
        return (1, entity_id)
    return (0, entity_id)


def sorted_ids(ids: Iterable[EntityId]) -> list[EntityId]:
    """Return IDs in the store's documented (ascending) order."""
    return sorted(ids, key=id_sort_key)


class Store(ABC):
    """Abstract friendship graph store.

    Neighbor lists and recommendations are returned in ascending ID order
    so that repeated reads of an unmutated graph are identical.
    """

    async def initialize(self) -> None:
        """Prepare connections and schema. No-op by default."""

    async def close(self) -> None:
        """Release connections. No-op by default."""

    @abstractmethod
    async def insert_node(self, entity_id: EntityId) -> None:
        """Create a node. Creating an existing node is a no-op."""

    @abstractmethod
    async def delete_node(self, entity_id: EntityId) -> None:
        """Delete a node that has no edges.

        Raises:
            StoreError: if the node still has edges.
        """

    @abstractmethod
    async def node_exists(self, entity_id: EntityId) -> bool:
        """Check whether a node exists."""

    @abstractmethod
    async def insert_edge(self, a: EntityId, b: EntityId) -> None:
        """Create an undirected edge between two existing nodes.

        Raises:
            StoreError: on self-loops, unknown nodes, or an existing edge.
        """

    @abstractmethod
    async def delete_edge(self, a: EntityId, b: EntityId) -> None:
        """Delete the edge between two nodes. Missing edges are a no-op."""

    @abstractmethod
    async def list_neighbors(self, entity_id: EntityId) -> list[EntityId]:
        """List direct neighbors in ascending order."""

    @abstractmethod
    async def are_connected(self, a: EntityId, b: EntityId) -> bool:
        """Check whether an edge exists between two nodes."""

    @abstractmethod
    async def recommend(
        self,
        entity_id: EntityId,
        depth: int,
        threshold: int,
        inclusive: bool = True,
    ) -> list[EntityId]:
        """Entities reachable from ``entity_id`` by at least ``threshold`` paths.

        A path is a walk of exactly ``depth`` hops that never reuses an
        edge. ``inclusive`` selects ``>=`` (True) or ``>`` (False) for the
        path-count comparison. The source itself is never recommended.
        """
