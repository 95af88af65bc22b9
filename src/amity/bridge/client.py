"""Client side of the request/response bridge.

Turns a fire-and-forget publish into an awaitable reply:

    key = next_key(requester)           # atomic per-requester sequence
    publish(topic, key, operation)      # PublishFailed if the bus is unreachable
    await_reply(key, timeout)           # CallTimeout if nothing arrives
                                        # ReplyFailed if the slot cannot be read
    envelope.unwrap()                   # RemoteError if the server rejected it

Each call performs exactly one publish and exactly one blocking read of the
reply slot. The bridge never retries: PublishFailed, CallTimeout and
ReplyFailed are retry-safe for the caller, RemoteError is not. A timed-out
call leaves its reply slot to expire on its own.
"""

from __future__ import annotations

import logging
from typing import Any

from amity.bus.base import Publisher
from amity.core.errors import (
    BusError,
    CallTimeout,
    DecodeFailed,
    PublishFailed,
    ReplyFailed,
    ReplySinkError,
)
from amity.core.operations import (
    AddEdge,
    AddNode,
    AreConnected,
    EntityId,
    ListNeighbors,
    NodeExists,
    Operation,
    Recommend,
    RemoveEdge,
    RemoveNode,
    encode_operation,
)
from amity.correlation import CorrelationKeyGenerator
from amity.observability.logging import LogContext
from amity.replies.base import ReplySink

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class BridgeClient:
    """Issues operations over the bus and waits for their correlated replies."""

    def __init__(
        self,
        publisher: Publisher,
        reply_sink: ReplySink,
        keygen: CorrelationKeyGenerator,
        topic: str,
        default_timeout: float = DEFAULT_TIMEOUT,
    ):
        self.publisher = publisher
        self.reply_sink = reply_sink
        self.keygen = keygen
        self.topic = topic
        self.default_timeout = default_timeout

    async def call(
        self,
        requester_id: EntityId,
        operation: Operation,
        timeout: float | None = None,
    ) -> Any:
        """Publish ``operation`` and return the payload of its reply.

        Raises:
            Unavailable: no correlation key could be allocated.
            PublishFailed: the operation never reached the bus.
            CallTimeout: no reply arrived within ``timeout`` seconds.
            ReplyFailed: the reply slot could not be read or held a garbled reply.
            RemoteError: the server processed the operation and reported an error.
        """
        if timeout is None:
            timeout = self.default_timeout

        key = await self.keygen.next_key(requester_id)

        with LogContext(correlation_key=key, requester_id=requester_id):
            try:
                payload = encode_operation(operation)
            except (TypeError, ValueError) as e:
                raise PublishFailed(f"Cannot serialize operation: {e}", key=key) from e

            try:
                await self.publisher.publish(self.topic, key, payload)
            except BusError as e:
                logger.warning(f"Publish failed: {e.detail}")
                raise PublishFailed(f"Publish failed: {e.detail}", key=key) from e

            logger.debug(f"Published {operation.kind.value}, awaiting reply")

            try:
                envelope = await self.reply_sink.await_reply(key, timeout)
            except (ReplySinkError, DecodeFailed) as e:
                logger.warning(f"Reply unreadable: {e.detail}")
                raise ReplyFailed(f"Reply unreadable: {e.detail}", key=key) from e
            if envelope is None:
                logger.warning(f"No reply within {timeout}s")
                raise CallTimeout(key, timeout)

            logger.debug(f"Reply received: {envelope.status.value}")
            return envelope.unwrap(key=key)

    # -------------------------------------------------------------------------
    # Convenience calls
    # -------------------------------------------------------------------------

    async def add_node(
        self, requester_id: EntityId, entity_id: EntityId, timeout: float | None = None
    ) -> None:
        await self.call(requester_id, AddNode(entity_id), timeout)

    async def remove_node(
        self, requester_id: EntityId, entity_id: EntityId, timeout: float | None = None
    ) -> None:
        await self.call(requester_id, RemoveNode(entity_id), timeout)

    async def add_edge(
        self, requester_id: EntityId, a: EntityId, b: EntityId, timeout: float | None = None
    ) -> None:
        await self.call(requester_id, AddEdge(a, b), timeout)

    async def remove_edge(
        self, requester_id: EntityId, a: EntityId, b: EntityId, timeout: float | None = None
    ) -> None:
        await self.call(requester_id, RemoveEdge(a, b), timeout)

    async def list_neighbors(
        self, requester_id: EntityId, entity_id: EntityId, timeout: float | None = None
    ) -> list[EntityId]:
        return await self.call(requester_id, ListNeighbors(entity_id), timeout)

    async def recommend(
        self,
        requester_id: EntityId,
        entity_id: EntityId,
        depth: int | None = None,
        threshold: int | None = None,
        timeout: float | None = None,
    ) -> list[EntityId]:
        return await self.call(requester_id, Recommend(entity_id, depth, threshold), timeout)

    async def are_connected(
        self, requester_id: EntityId, a: EntityId, b: EntityId, timeout: float | None = None
    ) -> bool:
        return await self.call(requester_id, AreConnected(a, b), timeout)

    async def node_exists(
        self, requester_id: EntityId, entity_id: EntityId, timeout: float | None = None
    ) -> bool:
        return await self.call(requester_id, NodeExists(entity_id), timeout)
