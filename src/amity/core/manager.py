"""Cache-aside manager for the friendship graph.

The store is the single source of truth; the cache is a projection that
can always be rebuilt from it.

Write path:
    1. Mutate the store (StoreError propagates, nothing else happens)
    2. Re-read the neighbor lists of every endpoint from the store
    3. Replace the cached lists whole

Read path:
    Cache hit returns directly. A miss reads the store and, by default,
    does not fill the cache: a read-triggered fill racing a mutation's
    refresh could leave a stale entry that nothing corrects.

There is no lock around mutate-then-refresh. Two concurrent mutations of
the same entity leave whichever refresh finished last; ordering of the
mutations themselves is the store's concern.
"""

from __future__ import annotations

import logging

from amity.cache.base import NeighborCache
from amity.core.errors import CacheRefreshFailed
from amity.core.operations import EntityId
from amity.store.base import Store

logger = logging.getLogger(__name__)

DEFAULT_RECOMMEND_DEPTH = 2
DEFAULT_RECOMMEND_THRESHOLD = 2


class FriendshipManager:
    """Executes graph operations against the store and keeps the cache in step.

    Only this class writes to the cache.
    """

    def __init__(
        self,
        store: Store,
        cache: NeighborCache,
        recommend_depth: int = DEFAULT_RECOMMEND_DEPTH,
        recommend_threshold: int = DEFAULT_RECOMMEND_THRESHOLD,
        recommend_inclusive: bool = True,
        populate_cache_on_read: bool = False,
    ):
        self.store = store
        self.cache = cache
        self.recommend_depth = recommend_depth
        self.recommend_threshold = recommend_threshold
        self.recommend_inclusive = recommend_inclusive
        self.populate_cache_on_read = populate_cache_on_read

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    async def add_edge(self, a: EntityId, b: EntityId) -> None:
        """Connect ``a`` and ``b``, then refresh both cached neighbor lists.

        Raises:
            StoreError: the mutation failed; the cache was not touched.
            CacheRefreshFailed: the mutation is committed but a refresh failed.
        """
        await self.store.insert_edge(a, b)
        logger.debug(f"Edge added: {a!r} - {b!r}")
        await self._refresh(a, b)

    async def remove_edge(self, a: EntityId, b: EntityId) -> None:
        """Disconnect ``a`` and ``b``, then refresh both cached neighbor lists.

        Removing an edge that does not exist still refreshes the cache.

        Raises:
            StoreError: the mutation failed; the cache was not touched.
            CacheRefreshFailed: the mutation is committed but a refresh failed.
        """
        await self.store.delete_edge(a, b)
        logger.debug(f"Edge removed: {a!r} - {b!r}")
        await self._refresh(a, b)

    async def _refresh(self, *entity_ids: EntityId) -> None:
        """Rebuild the cache entry of each entity from the store.

        Every entity is attempted; failures are reported together.
        """
        failed: list[EntityId] = []
        first_error: BaseException | None = None

        for entity_id in entity_ids:
            try:
                neighbors = await self.store.list_neighbors(entity_id)
                await self.cache.put(entity_id, neighbors)
            except Exception as e:
                logger.warning(f"Cache refresh failed for {entity_id!r}: {e}")
                failed.append(entity_id)
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise CacheRefreshFailed(failed, first_error) from first_error

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list_neighbors(self, entity_id: EntityId) -> list[EntityId]:
        """Neighbors of ``entity_id``, from the cache when present."""
        cached = await self.cache.get(entity_id)
        if cached is not None:
            logger.debug(f"Neighbor cache hit: {entity_id!r}")
            return cached

        logger.debug(f"Neighbor cache miss: {entity_id!r}")
        neighbors = await self.store.list_neighbors(entity_id)
        if self.populate_cache_on_read:
            await self.cache.put(entity_id, neighbors)
        return neighbors

    async def recommend(
        self,
        entity_id: EntityId,
        depth: int | None = None,
        threshold: int | None = None,
    ) -> list[EntityId]:
        """Multi-hop recommendations, computed fresh by the store every time."""
        return await self.store.recommend(
            entity_id,
            depth if depth is not None else self.recommend_depth,
            threshold if threshold is not None else self.recommend_threshold,
            inclusive=self.recommend_inclusive,
        )

    async def are_connected(self, a: EntityId, b: EntityId) -> bool:
        return await self.store.are_connected(a, b)

    async def node_exists(self, entity_id: EntityId) -> bool:
        return await self.store.node_exists(entity_id)

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    async def add_node(self, entity_id: EntityId) -> None:
        await self.store.insert_node(entity_id)
        logger.debug(f"Node added: {entity_id!r}")

    async def remove_node(self, entity_id: EntityId) -> None:
        await self.store.delete_node(entity_id)
        logger.debug(f"Node removed: {entity_id!r}")

    async def evict(self, entity_id: EntityId) -> None:
        """Drop the cached entry of an entity (operator use)."""
        await self.cache.delete(entity_id)
        logger.info(f"Evicted neighbor cache entry: {entity_id!r}")
