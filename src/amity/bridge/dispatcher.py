"""Server side of the request/response bridge.

Consumes operations from the bus, executes them through the cache-aside
manager and delivers exactly one reply envelope per processed message.

Per-message states:
    RECEIVED -> DECODED -> EXECUTING -> REPLIED
    RECEIVED -> DECODE_FAILED -> REPLIED (error envelope)
    RECEIVED -> DECODE_FAILED -> DROPPED (no correlation key recoverable)

A reply that cannot be delivered ends in DELIVERY_FAILED; that message is
left unacknowledged so the bus may redeliver it. The dispatcher itself
never retries.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import orjson

from amity.bus.base import BusMessage, Consumer
from amity.core.envelope import ReplyEnvelope
from amity.core.errors import (
    AmityError,
    CacheError,
    CacheRefreshFailed,
    DecodeFailed,
    ReplySinkError,
    StoreError,
)
from amity.core.manager import FriendshipManager
from amity.core.operations import (
    AddEdge,
    AddNode,
    AreConnected,
    ListNeighbors,
    NodeExists,
    Operation,
    Recommend,
    RemoveEdge,
    RemoveNode,
    decode_operation,
)
from amity.observability.logging import LogContext
from amity.replies.base import ReplySink

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 32


class DispatchState(str, Enum):
    """State reached while processing one bus message."""

    RECEIVED = "received"
    DECODED = "decoded"
    DECODE_FAILED = "decode_failed"
    EXECUTING = "executing"
    REPLIED = "replied"
    DROPPED = "dropped"
    DELIVERY_FAILED = "delivery_failed"


@dataclass
class DispatchOutcome:
    """Result of handling one message.

    ``envelope`` is None only when the message was dropped.
    """

    state: DispatchState
    key: str | None
    envelope: ReplyEnvelope | None = None
    trace: list[DispatchState] = field(default_factory=list)


def recover_key(message: BusMessage) -> str | None:
    """Best-effort correlation key of a message.

    The bus key wins; otherwise a string ``"key"`` field of a JSON object
    payload is used.
    """
    if message.key and message.key.strip():
        return message.key
    try:
        data = orjson.loads(message.value)
    except orjson.JSONDecodeError:
        return None
    if isinstance(data, dict):
        key = data.get("key")
        if isinstance(key, str) and key.strip():
            return key
    return None


class Dispatcher:
    """Executes bus operations and replies on the correlated reply slot.

    Example:
        dispatcher = Dispatcher(consumer, manager, reply_sink)
        await dispatcher.run()  # until stop()
    """

    def __init__(
        self,
        consumer: Consumer,
        manager: FriendshipManager,
        reply_sink: ReplySink,
        concurrency: int = DEFAULT_CONCURRENCY,
    ):
        if concurrency < 1:
            raise ValueError("Dispatcher concurrency must be at least 1")
        self.consumer = consumer
        self.manager = manager
        self.reply_sink = reply_sink
        self.concurrency = concurrency
        self._semaphore = asyncio.Semaphore(concurrency)
        self._tasks: set[asyncio.Task[None]] = set()
        self._running = False
        self._stats = {
            "received": 0,
            "replied_ok": 0,
            "replied_error": 0,
            "dropped": 0,
            "delivery_failed": 0,
        }

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """Consume messages until stopped, one task per message."""
        self._running = True
        logger.info(f"Dispatcher started (concurrency={self.concurrency})")

        try:
            async for message in self.consumer.messages():
                if not self._running:
                    break
                await self._semaphore.acquire()
                task = asyncio.create_task(self._process(message))
                self._tasks.add(task)
                task.add_done_callback(self._task_done)
        finally:
            self._running = False
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)
            logger.info("Dispatcher stopped")

    async def stop(self) -> None:
        """Stop consuming and wait for in-flight messages to finish."""
        self._running = False
        await self.consumer.close()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    @property
    def is_running(self) -> bool:
        return self._running

    def get_stats(self) -> dict[str, int]:
        """Processing counters since start."""
        return {**self._stats, "in_flight": len(self._tasks)}

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        self._semaphore.release()

    async def _process(self, message: BusMessage) -> None:
        try:
            outcome = await self.handle_message(message)
            if outcome.state != DispatchState.DELIVERY_FAILED:
                await self.consumer.ack(message)
        except AmityError as e:
            logger.error(f"Failed to acknowledge message {message.offset!r}: {e}")
        except Exception:
            logger.exception(f"Unexpected failure processing message {message.offset!r}")

    # -------------------------------------------------------------------------
    # Message handling
    # -------------------------------------------------------------------------

    async def handle_message(self, message: BusMessage) -> DispatchOutcome:
        """Process one message to completion.

        Never raises for decode or execution failures; those become error
        envelopes (or a drop when no key can be recovered).
        """
        self._stats["received"] += 1
        trace = [DispatchState.RECEIVED]
        key = recover_key(message)

        with LogContext(correlation_key=key):
            try:
                operation = decode_operation(message.value)
            except DecodeFailed as e:
                trace.append(DispatchState.DECODE_FAILED)
                if key is None:
                    self._stats["dropped"] += 1
                    trace.append(DispatchState.DROPPED)
                    logger.warning(f"Dropped undecodable message without key: {e.detail}")
                    return DispatchOutcome(DispatchState.DROPPED, None, None, trace)
                logger.warning(f"Malformed operation: {e.detail}")
                envelope = ReplyEnvelope.error(f"DecodeFailed: {e.detail}")
                return await self._reply(key, envelope, trace)

            trace.append(DispatchState.DECODED)

            if key is None:
                self._stats["dropped"] += 1
                trace.append(DispatchState.DROPPED)
                logger.warning(f"Dropped {operation.kind.value} without correlation key")
                return DispatchOutcome(DispatchState.DROPPED, None, None, trace)

            trace.append(DispatchState.EXECUTING)
            envelope = await self._execute(operation)
            return await self._reply(key, envelope, trace)

    async def _execute(self, operation: Operation) -> ReplyEnvelope:
        """Run an operation and convert its outcome to an envelope."""
        try:
            data = await self.execute(operation)
        except CacheRefreshFailed as e:
            logger.error(str(e))
            return ReplyEnvelope.error(f"CacheRefreshFailed: {e}")
        except StoreError as e:
            logger.warning(f"{operation.kind.value} failed in store: {e.detail}")
            return ReplyEnvelope.error(f"StoreError: {e.detail}")
        except CacheError as e:
            logger.warning(f"{operation.kind.value} failed in cache: {e.detail}")
            return ReplyEnvelope.error(f"CacheError: {e.detail}")
        except Exception as e:
            logger.exception(f"Unexpected error executing {operation.kind.value}")
            return ReplyEnvelope.error(f"InternalError: {type(e).__name__}: {e}")
        return ReplyEnvelope.ok(data)

    async def execute(self, operation: Operation) -> Any:
        """Dispatch an operation to the matching manager method."""
        manager = self.manager

        if isinstance(operation, AddEdge):
            await manager.add_edge(operation.a, operation.b)
            return None
        if isinstance(operation, RemoveEdge):
            await manager.remove_edge(operation.a, operation.b)
            return None
        if isinstance(operation, ListNeighbors):
            return await manager.list_neighbors(operation.id)
        if isinstance(operation, Recommend):
            return await manager.recommend(operation.id, operation.depth, operation.threshold)
        if isinstance(operation, AddNode):
            await manager.add_node(operation.id)
            return None
        if isinstance(operation, RemoveNode):
            await manager.remove_node(operation.id)
            return None
        if isinstance(operation, AreConnected):
            return await manager.are_connected(operation.a, operation.b)
        if isinstance(operation, NodeExists):
            return await manager.node_exists(operation.id)

        raise TypeError(f"Unsupported operation: {operation!r}")

    async def _reply(
        self, key: str, envelope: ReplyEnvelope, trace: list[DispatchState]
    ) -> DispatchOutcome:
        try:
            await self.reply_sink.deliver(key, envelope)
        except ReplySinkError as e:
            self._stats["delivery_failed"] += 1
            trace.append(DispatchState.DELIVERY_FAILED)
            logger.error(f"Reply delivery failed: {e.detail}")
            return DispatchOutcome(DispatchState.DELIVERY_FAILED, key, envelope, trace)

        if envelope.is_ok:
            self._stats["replied_ok"] += 1
        else:
            self._stats["replied_error"] += 1
        trace.append(DispatchState.REPLIED)
        logger.debug(f"Replied {envelope.status.value}")
        return DispatchOutcome(DispatchState.REPLIED, key, envelope, trace)
