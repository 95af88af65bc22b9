"""
FalkorDB graph store for the friendship graph.

All operations go through one async connection pool. Node creation uses
MERGE so concurrent inserts of the same uid are safe. Edge creation checks
for an existing edge in either direction and creates the new one in the same
statement, so concurrent add_edge(a, b) and add_edge(b, a) leave one edge.
"""

from __future__ import annotations

import logging
from typing import Any

from falkordb.asyncio import FalkorDB
from redis.asyncio import BlockingConnectionPool

from amity.core.errors import StoreError
from amity.core.operations import EntityId
from amity.store.base import Store, sorted_ids
from amity.store.schema import FRIEND_REL, MAX_TRAVERSAL_DEPTH, PERSON_LABEL, SCHEMA_STATEMENTS

logger = logging.getLogger(__name__)


class FalkorDBStore(Store):
    """Async FalkorDB implementation of the graph store."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        password: str | None = None,
        graph_name: str = "friendship",
        max_connections: int = 16,
    ):
        self.host = host
        self.port = port
        self.password = password
        self.graph_name = graph_name
        self.max_connections = max_connections

        self._pool: BlockingConnectionPool | None = None
        self._db: FalkorDB | None = None
        self._graph: Any = None
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize connection pool, select graph, and apply schema."""
        if self._initialized:
            return

        self._pool = BlockingConnectionPool(
            host=self.host,
            port=self.port,
            password=self.password,
            max_connections=self.max_connections,
            timeout=None,
            decode_responses=True,
        )

        self._db = FalkorDB(connection_pool=self._pool)
        self._graph = self._db.select_graph(self.graph_name)

        for stmt in SCHEMA_STATEMENTS:
            try:
                await self._graph.query(stmt)
            except Exception as e:
                # Index already exists is not an error
                if "already indexed" not in str(e).lower():
                    logger.warning(f"Schema statement warning: {stmt} -> {e}")

        self._initialized = True
        logger.info(f"FalkorDBStore initialized: {self.host}:{self.port}/{self.graph_name}")

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            try:
                await self._pool.aclose()
                logger.info("FalkorDBStore connection pool closed")
            except Exception as e:
                logger.warning(f"Error closing FalkorDBStore pool: {e}")
            finally:
                self._pool = None
                self._db = None
                self._graph = None
                self._initialized = False

    async def _query(self, cypher: str, params: dict[str, Any] | None = None) -> list[list[Any]]:
        """Run a query and return its rows, wrapping faults in StoreError."""
        if self._graph is None:
            raise StoreError("FalkorDBStore not initialized. Call initialize() first.")
        try:
            result = await self._graph.query(cypher, params=params or {})
        except Exception as e:
            raise StoreError(f"Graph query failed: {e}") from e
        return list(result.result_set or [])

    # ── Nodes ───────────────────────────────────────────────────────────

    async def insert_node(self, entity_id: EntityId) -> None:
        await self._query(f"MERGE (:{PERSON_LABEL} {{uid: $uid}})", {"uid": entity_id})

    async def delete_node(self, entity_id: EntityId) -> None:
        rows = await self._query(
            f"MATCH (p:{PERSON_LABEL} {{uid: $uid}}) "
            f"OPTIONAL MATCH (p)-[r:{FRIEND_REL}]-() "
            "RETURN count(r)",
            {"uid": entity_id},
        )
        degree = int(rows[0][0]) if rows else 0
        if degree:
            raise StoreError(f"Cannot delete node {entity_id!r}: it still has {degree} edge(s)")

        await self._query(
            f"MATCH (p:{PERSON_LABEL} {{uid: $uid}}) WHERE NOT (p)-[:{FRIEND_REL}]-() DELETE p",
            {"uid": entity_id},
        )

    async def node_exists(self, entity_id: EntityId) -> bool:
        rows = await self._query(
            f"MATCH (p:{PERSON_LABEL} {{uid: $uid}}) RETURN count(p) > 0",
            {"uid": entity_id},
        )
        return bool(rows and rows[0][0])

    # ── Edges ───────────────────────────────────────────────────────────

    async def insert_edge(self, a: EntityId, b: EntityId) -> None:
        if a == b:
            raise StoreError(f"Cannot connect node {a!r} to itself")

        # Check and create in one statement; the graph applies it atomically
        rows = await self._query(
            f"MATCH (a:{PERSON_LABEL} {{uid: $a}}), (b:{PERSON_LABEL} {{uid: $b}}) "
            f"OPTIONAL MATCH (a)-[r:{FRIEND_REL}]-(b) "
            "WITH a, b, count(r) AS existing "
            "WHERE existing = 0 "
            f"CREATE (a)-[:{FRIEND_REL}]->(b) "
            "RETURN count(*)",
            {"a": a, "b": b},
        )
        if rows and int(rows[0][0]) > 0:
            return

        rows = await self._query(
            f"MATCH (a:{PERSON_LABEL} {{uid: $a}}), (b:{PERSON_LABEL} {{uid: $b}}) "
            "RETURN count(*)",
            {"a": a, "b": b},
        )
        if not rows or int(rows[0][0]) == 0:
            raise StoreError(f"Unknown node(s): {a!r}, {b!r}")
        raise StoreError(f"Edge already exists: {a!r} - {b!r}")

    async def delete_edge(self, a: EntityId, b: EntityId) -> None:
        await self._query(
            f"MATCH (:{PERSON_LABEL} {{uid: $a}})-[r:{FRIEND_REL}]-(:{PERSON_LABEL} {{uid: $b}}) "
            "DELETE r",
            {"a": a, "b": b},
        )

    async def list_neighbors(self, entity_id: EntityId) -> list[EntityId]:
        rows = await self._query(
            f"MATCH (:{PERSON_LABEL} {{uid: $uid}})-[:{FRIEND_REL}]-(b:{PERSON_LABEL}) "
            "RETURN DISTINCT b.uid AS uid ORDER BY uid",
            {"uid": entity_id},
        )
        return sorted_ids(row[0] for row in rows if row[0] is not None)

    async def are_connected(self, a: EntityId, b: EntityId) -> bool:
        rows = await self._query(
            f"MATCH (:{PERSON_LABEL} {{uid: $a}})-[r:{FRIEND_REL}]-(:{PERSON_LABEL} {{uid: $b}}) "
            "RETURN count(r) > 0",
            {"a": a, "b": b},
        )
        return bool(rows and rows[0][0])

    # ── Traversal ───────────────────────────────────────────────────────

    async def recommend(
        self,
        entity_id: EntityId,
        depth: int,
        threshold: int,
        inclusive: bool = True,
    ) -> list[EntityId]:
        if not 1 <= depth <= MAX_TRAVERSAL_DEPTH:
            raise StoreError(f"Traversal depth must be between 1 and {MAX_TRAVERSAL_DEPTH}")

        comparison = ">=" if inclusive else ">"
        rows = await self._query(
            f"MATCH (src:{PERSON_LABEL} {{uid: $uid}})"
            f"-[:{FRIEND_REL}*{depth}..{depth}]-"
            f"(dst:{PERSON_LABEL}) "
            "WHERE dst.uid <> $uid "
            "WITH dst.uid AS uid, count(*) AS paths "
            f"WHERE paths {comparison} $threshold "
            "RETURN uid ORDER BY uid",
            {"uid": entity_id, "threshold": threshold},
        )
        return sorted_ids(row[0] for row in rows)
