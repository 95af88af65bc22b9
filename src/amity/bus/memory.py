"""In-memory message bus.

Each topic is an append-only log; offsets are log indices. Consumers read
from a starting offset and advance independently, so a new consumer
created at a saved offset resumes from there.

Suitable for single-process deployments and tests.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator

from amity.bus.base import BusMessage, Consumer, Publisher
from amity.core.errors import BusError

logger = logging.getLogger(__name__)


class InMemoryBus(Publisher):
    """Append-only per-topic logs shared by publishers and consumers."""

    def __init__(self) -> None:
        self._logs: dict[str, list[BusMessage]] = defaultdict(list)
        self._changed = asyncio.Condition()
        self._closed = False

    async def publish(self, topic: str, key: str, value: bytes) -> None:
        """Append a message to the topic log."""
        if self._closed:
            raise BusError("Bus is closed")
        if not isinstance(value, (bytes, bytearray)):
            raise BusError(f"Message value must be bytes, got {type(value).__name__}")

        async with self._changed:
            log = self._logs[topic]
            log.append(BusMessage(topic=topic, key=key, value=bytes(value), offset=len(log)))
            self._changed.notify_all()

        logger.debug(f"Published {key} to {topic}")

    def consumer(self, topic: str, offset: int = 0) -> InMemoryConsumer:
        """Create a consumer reading ``topic`` from ``offset``."""
        return InMemoryConsumer(self, topic, offset)

    def size(self, topic: str) -> int:
        """Number of messages ever published to a topic."""
        return len(self._logs[topic])

    async def close(self) -> None:
        self._closed = True
        async with self._changed:
            self._changed.notify_all()

    async def _read(self, topic: str, offset: int, stop: asyncio.Event) -> BusMessage | None:
        async with self._changed:
            await self._changed.wait_for(
                lambda: len(self._logs[topic]) > offset or stop.is_set() or self._closed
            )
            if len(self._logs[topic]) > offset:
                return self._logs[topic][offset]
            return None

    async def _wake(self) -> None:
        async with self._changed:
            self._changed.notify_all()


class InMemoryConsumer(Consumer):
    """Reads one topic of an InMemoryBus.

    ``position`` is the offset of the next message to read.
    """

    def __init__(self, bus: InMemoryBus, topic: str, offset: int = 0):
        self.bus = bus
        self.topic = topic
        self.position = offset
        self.acked: set[int] = set()
        self._stop = asyncio.Event()

    async def messages(self) -> AsyncIterator[BusMessage]:
        while not self._stop.is_set():
            message = await self.bus._read(self.topic, self.position, self._stop)
            if message is None:
                return
            self.position += 1
            yield message

    async def ack(self, message: BusMessage) -> None:
        if isinstance(message.offset, int):
            self.acked.add(message.offset)

    async def close(self) -> None:
        self._stop.set()
        await self.bus._wake()
