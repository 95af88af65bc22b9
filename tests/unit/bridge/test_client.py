"""Tests for the bridge client."""

from unittest.mock import AsyncMock

import orjson
import pytest

from amity.bridge.client import BridgeClient
from amity.core.envelope import ReplyEnvelope
from amity.core.errors import (
    BusError,
    CallTimeout,
    DecodeFailed,
    PublishFailed,
    RemoteError,
    ReplyFailed,
    ReplySinkError,
    Unavailable,
)
from amity.core.operations import AddEdge, ListNeighbors
from amity.correlation import CorrelationKeyGenerator, InMemorySequenceCounter


@pytest.fixture
def publisher() -> AsyncMock:
    publisher = AsyncMock()
    publisher.publish = AsyncMock(return_value=None)
    return publisher


@pytest.fixture
def sink() -> AsyncMock:
    sink = AsyncMock()
    sink.await_reply = AsyncMock(return_value=ReplyEnvelope.ok([2, 3]))
    return sink


@pytest.fixture
def bridge(publisher: AsyncMock, sink: AsyncMock) -> BridgeClient:
    keygen = CorrelationKeyGenerator(InMemorySequenceCounter(), clock=lambda: 1700000000)
    return BridgeClient(publisher, sink, keygen, topic="requests", default_timeout=3.0)


class TestCall:
    """Test publish-then-wait."""

    async def test_success_returns_payload(
        self, bridge: BridgeClient, publisher: AsyncMock, sink: AsyncMock
    ) -> None:
        """One publish and one wait, both addressed by the same key."""
        assert await bridge.call(42, ListNeighbors(1)) == [2, 3]

        publisher.publish.assert_awaited_once_with(
            "requests", "i:42-1700000000-1", b'{"kind":"ListNeighbors","id":1}'
        )
        sink.await_reply.assert_awaited_once_with("i:42-1700000000-1", 3.0)

    async def test_explicit_timeout(self, bridge: BridgeClient, sink: AsyncMock) -> None:
        await bridge.call(1, ListNeighbors(1), timeout=0.5)
        assert sink.await_reply.call_args.args[1] == 0.5

    async def test_publish_failure_skips_wait(
        self, bridge: BridgeClient, publisher: AsyncMock, sink: AsyncMock
    ) -> None:
        publisher.publish.side_effect = BusError("broker unreachable")

        with pytest.raises(PublishFailed) as exc_info:
            await bridge.call(1, AddEdge(1, 2))

        assert exc_info.value.retry_safe is True
        assert exc_info.value.key == "i:1-1700000000-1"
        sink.await_reply.assert_not_called()

    async def test_serialization_failure(
        self, bridge: BridgeClient, publisher: AsyncMock, sink: AsyncMock
    ) -> None:
        with pytest.raises(PublishFailed, match="serialize"):
            await bridge.call(1, object())  # type: ignore[arg-type]

        publisher.publish.assert_not_called()
        sink.await_reply.assert_not_called()

    async def test_timeout(self, bridge: BridgeClient, sink: AsyncMock) -> None:
        sink.await_reply.return_value = None

        with pytest.raises(CallTimeout) as exc_info:
            await bridge.call(1, ListNeighbors(1), timeout=0.2)

        assert exc_info.value.timeout == 0.2
        assert exc_info.value.retry_safe is True

    async def test_remote_error(self, bridge: BridgeClient, sink: AsyncMock) -> None:
        sink.await_reply.return_value = ReplyEnvelope.error("StoreError: Edge already exists")

        with pytest.raises(RemoteError) as exc_info:
            await bridge.call(1, AddEdge(1, 2))

        assert "already exists" in exc_info.value.detail
        assert exc_info.value.retry_safe is False

    async def test_unreachable_reply_slot(self, bridge: BridgeClient, sink: AsyncMock) -> None:
        """A failed wait after publishing is retry-safe, like a timeout."""
        sink.await_reply.side_effect = ReplySinkError("redis down")

        with pytest.raises(ReplyFailed) as exc_info:
            await bridge.call(1, AddEdge(1, 2))

        assert exc_info.value.retry_safe is True
        assert exc_info.value.key == "i:1-1700000000-1"
        assert "redis down" in str(exc_info.value)

    async def test_garbled_reply(self, bridge: BridgeClient, sink: AsyncMock) -> None:
        sink.await_reply.side_effect = DecodeFailed("Invalid reply envelope")

        with pytest.raises(ReplyFailed) as exc_info:
            await bridge.call(1, ListNeighbors(1))

        assert isinstance(exc_info.value.__cause__, DecodeFailed)

    async def test_counter_unavailable_publishes_nothing(
        self, publisher: AsyncMock, sink: AsyncMock
    ) -> None:
        counter = AsyncMock()
        counter.increment = AsyncMock(side_effect=Unavailable("redis down"))
        bridge = BridgeClient(publisher, sink, CorrelationKeyGenerator(counter), topic="t")

        with pytest.raises(Unavailable):
            await bridge.call(1, ListNeighbors(1))

        publisher.publish.assert_not_called()

    async def test_each_call_gets_a_new_key(
        self, bridge: BridgeClient, publisher: AsyncMock
    ) -> None:
        await bridge.call(7, ListNeighbors(1))
        await bridge.call(7, ListNeighbors(1))

        keys = [c.args[1] for c in publisher.publish.await_args_list]
        assert keys == ["i:7-1700000000-1", "i:7-1700000000-2"]


class TestConvenienceCalls:
    """Convenience coroutines publish the matching operation."""

    async def test_recommend_forwards_parameters(
        self, bridge: BridgeClient, publisher: AsyncMock
    ) -> None:
        await bridge.recommend(1, 5, depth=3, threshold=1)

        payload = orjson.loads(publisher.publish.call_args.args[2])
        assert payload == {"kind": "Recommend", "id": 5, "depth": 3, "threshold": 1}

    async def test_add_edge_returns_none(
        self, bridge: BridgeClient, publisher: AsyncMock, sink: AsyncMock
    ) -> None:
        sink.await_reply.return_value = ReplyEnvelope.ok(None)

        assert await bridge.add_edge(1, "a", "b") is None
        payload = orjson.loads(publisher.publish.call_args.args[2])
        assert payload == {"kind": "AddEdge", "a": "a", "b": "b"}

    async def test_are_connected(self, bridge: BridgeClient, sink: AsyncMock) -> None:
        sink.await_reply.return_value = ReplyEnvelope.ok(True)
        assert await bridge.are_connected(1, 1, 2) is True
