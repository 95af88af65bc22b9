"""End-to-end bridge scenarios over in-memory backends."""

import asyncio
from collections.abc import AsyncIterator

import pytest

from amity.bridge.client import BridgeClient
from amity.bridge.dispatcher import Dispatcher
from amity.cache.memory import InMemoryNeighborCache
from amity.core.envelope import ReplyEnvelope
from amity.core.errors import CallTimeout, RemoteError
from amity.core.operations import ListNeighbors
from amity.replies.memory import InMemoryReplySink
from amity.store.memory import InMemoryStore


@pytest.fixture
async def running(dispatcher: Dispatcher) -> AsyncIterator[Dispatcher]:
    """Dispatcher consuming in the background for the duration of a test."""
    task = asyncio.create_task(dispatcher.run())
    yield dispatcher
    await dispatcher.stop()
    await asyncio.wait_for(task, timeout=1.0)


class TestScenarios:
    """Calls round-trip through bus, dispatcher, manager and reply slots."""

    async def test_two_nodes_one_edge(
        self, client: BridgeClient, running: Dispatcher
    ) -> None:
        await client.add_node("req", 1)
        await client.add_node("req", 2)
        await client.add_edge("req", 1, 2)

        assert await client.list_neighbors("req", 1) == [2]
        assert await client.list_neighbors("req", 2) == [1]
        assert await client.are_connected("req", 2, 1) is True

    async def test_recommend_shared_friend(
        self, client: BridgeClient, running: Dispatcher
    ) -> None:
        for node in (1, 2, 3, 4):
            await client.add_node("req", node)
        for a, b in [(1, 2), (1, 3), (2, 4), (3, 4)]:
            await client.add_edge("req", a, b)

        assert await client.recommend("req", 1, depth=2, threshold=2) == [4]
        assert await client.recommend("req", 1, depth=2, threshold=3) == []

    async def test_cache_matches_store(
        self,
        client: BridgeClient,
        running: Dispatcher,
        store: InMemoryStore,
        cache: InMemoryNeighborCache,
    ) -> None:
        for node in ("a", "b", "c"):
            await client.add_node("req", node)
        await client.add_edge("req", "a", "b")
        await client.add_edge("req", "a", "c")
        await client.remove_edge("req", "a", "b")

        for node in ("a", "b", "c"):
            assert await cache.get(node) == await store.list_neighbors(node)

    async def test_remove_missing_edge_succeeds(
        self, client: BridgeClient, running: Dispatcher
    ) -> None:
        await client.add_node("req", 1)
        await client.add_node("req", 2)

        assert await client.remove_edge("req", 1, 2) is None

    async def test_business_failure_is_remote_error(
        self, client: BridgeClient, running: Dispatcher
    ) -> None:
        await client.add_node("req", 1)
        await client.add_node("req", 2)
        await client.add_edge("req", 1, 2)

        with pytest.raises(RemoteError, match="already exists"):
            await client.add_edge("req", 1, 2)

    async def test_concurrent_calls_get_their_own_replies(
        self, client: BridgeClient, running: Dispatcher
    ) -> None:
        """Many in-flight calls from one requester never see each other's replies."""
        await asyncio.gather(*(client.add_node("req", n) for n in range(20)))

        results = await asyncio.gather(*(client.node_exists("req", n) for n in range(20)))

        assert results == [True] * 20


class TestTimeouts:
    """A call with no dispatcher times out; a late reply is never seen by another call."""

    async def test_late_reply_does_not_leak(
        self, client: BridgeClient, reply_sink: InMemoryReplySink
    ) -> None:
        with pytest.raises(CallTimeout) as exc_info:
            await client.call("req", ListNeighbors(1), timeout=0.05)
        stale_key = exc_info.value.key

        # The abandoned call's reply arrives after the caller gave up
        await reply_sink.deliver(stale_key, ReplyEnvelope.ok(["stale"]))

        async def reply_to_next() -> None:
            while len(reply_sink) < 2:
                await asyncio.sleep(0.005)
            fresh_key = next(k for k in reply_sink._slots if k != stale_key)
            await reply_sink.deliver(fresh_key, ReplyEnvelope.ok(["fresh"]))

        responder = asyncio.create_task(reply_to_next())
        result = await client.call("req", ListNeighbors(1), timeout=1.0)
        await responder

        assert result == ["fresh"]
        assert stale_key in reply_sink
