"""Tests for the in-memory message bus."""

import asyncio

import pytest

from amity.bus.base import BusMessage
from amity.bus.memory import InMemoryBus
from amity.core.errors import BusError


async def _take(consumer, count: int) -> list[BusMessage]:
    taken: list[BusMessage] = []
    async for message in consumer.messages():
        taken.append(message)
        if len(taken) == count:
            break
    return taken


class TestInMemoryBus:
    """Test append-only topic logs."""

    async def test_publish_appends(self, bus: InMemoryBus) -> None:
        await bus.publish("t", "k1", b"one")
        await bus.publish("t", "k2", b"two")
        assert bus.size("t") == 2
        assert bus.size("other") == 0

    async def test_publish_requires_bytes(self, bus: InMemoryBus) -> None:
        with pytest.raises(BusError, match="bytes"):
            await bus.publish("t", "k", "text")  # type: ignore[arg-type]

    async def test_publish_after_close(self, bus: InMemoryBus) -> None:
        await bus.close()
        with pytest.raises(BusError, match="closed"):
            await bus.publish("t", "k", b"x")

    async def test_consumer_reads_in_order(self, bus: InMemoryBus) -> None:
        for i in range(3):
            await bus.publish("t", f"k{i}", f"v{i}".encode())

        messages = await _take(bus.consumer("t"), 3)

        assert [m.key for m in messages] == ["k0", "k1", "k2"]
        assert [m.offset for m in messages] == [0, 1, 2]
        assert all(m.topic == "t" for m in messages)

    async def test_consumer_resumes_from_offset(self, bus: InMemoryBus) -> None:
        """A new consumer at a saved offset skips what was already read."""
        for i in range(3):
            await bus.publish("t", f"k{i}", b"v")

        first = bus.consumer("t")
        await _take(first, 2)
        resumed = bus.consumer("t", offset=first.position)

        messages = await _take(resumed, 1)
        assert messages[0].key == "k2"

    async def test_consumer_waits_for_new_messages(self, bus: InMemoryBus) -> None:
        consumer = bus.consumer("t")
        reader = asyncio.create_task(_take(consumer, 1))
        await asyncio.sleep(0.01)
        assert not reader.done()

        await bus.publish("t", "late", b"v")
        messages = await asyncio.wait_for(reader, timeout=1.0)
        assert messages[0].key == "late"

    async def test_close_ends_iteration(self, bus: InMemoryBus) -> None:
        consumer = bus.consumer("t")
        reader = asyncio.create_task(_take(consumer, 5))
        await asyncio.sleep(0.01)

        await consumer.close()

        assert await asyncio.wait_for(reader, timeout=1.0) == []

    async def test_ack_records_offset(self, bus: InMemoryBus) -> None:
        await bus.publish("t", "k", b"v")
        consumer = bus.consumer("t")
        (message,) = await _take(consumer, 1)

        await consumer.ack(message)

        assert consumer.acked == {0}
