"""Tests for in-memory reply slots."""

import asyncio

import pytest

from amity.core.envelope import ReplyEnvelope
from amity.replies.memory import InMemoryReplySink


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestInMemoryReplySink:
    """Test keyed, TTL-bounded slots."""

    def test_ttl_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            InMemoryReplySink(ttl=0)

    async def test_deliver_then_await(self, reply_sink: InMemoryReplySink) -> None:
        await reply_sink.deliver("k1", ReplyEnvelope.ok([1]))

        envelope = await reply_sink.await_reply("k1", timeout=0.1)

        assert envelope == ReplyEnvelope.ok([1])
        assert "k1" not in reply_sink

    async def test_await_then_deliver(self, reply_sink: InMemoryReplySink) -> None:
        waiter = asyncio.create_task(reply_sink.await_reply("k1", timeout=1.0))
        await asyncio.sleep(0.01)

        await reply_sink.deliver("k1", ReplyEnvelope.error("nope"))

        assert await waiter == ReplyEnvelope.error("nope")

    async def test_consumes_at_most_one(self, reply_sink: InMemoryReplySink) -> None:
        await reply_sink.deliver("k1", ReplyEnvelope.ok(1))
        await reply_sink.deliver("k1", ReplyEnvelope.ok(2))

        assert (await reply_sink.await_reply("k1", timeout=0.1)).data == 1
        assert (await reply_sink.await_reply("k1", timeout=0.1)).data == 2

    async def test_timeout_returns_none(self, reply_sink: InMemoryReplySink) -> None:
        assert await reply_sink.await_reply("missing", timeout=0.01) is None
        assert len(reply_sink) == 0

    async def test_zero_timeout_does_not_block(self, reply_sink: InMemoryReplySink) -> None:
        assert await reply_sink.await_reply("missing", timeout=0) is None

    async def test_slots_are_independent(self, reply_sink: InMemoryReplySink) -> None:
        await reply_sink.deliver("a", ReplyEnvelope.ok("for a"))

        assert await reply_sink.await_reply("b", timeout=0.01) is None
        assert (await reply_sink.await_reply("a", timeout=0.01)).data == "for a"

    async def test_unconsumed_slot_expires(self) -> None:
        """An abandoned reply is reclaimed after its TTL."""
        clock = FakeClock()
        sink = InMemoryReplySink(ttl=60, clock=clock)
        await sink.deliver("abandoned", ReplyEnvelope.ok(None))

        clock.now += 59
        assert sink.purge_expired() == 0
        clock.now += 2
        assert sink.purge_expired() == 1
        assert "abandoned" not in sink

    async def test_redelivery_extends_lifetime(self) -> None:
        clock = FakeClock()
        sink = InMemoryReplySink(ttl=10, clock=clock)
        await sink.deliver("k", ReplyEnvelope.ok(1))
        clock.now += 8
        await sink.deliver("k", ReplyEnvelope.ok(2))
        clock.now += 8

        assert sink.purge_expired() == 0
