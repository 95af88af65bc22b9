"""Global pytest configuration and fixtures.

In-memory backends wired the same way the runtime wires them, so bridge
scenarios run without Redis or FalkorDB.
"""

from __future__ import annotations

import pytest

from amity.bridge.client import BridgeClient
from amity.bridge.dispatcher import Dispatcher
from amity.bus.memory import InMemoryBus
from amity.cache.memory import InMemoryNeighborCache
from amity.core.manager import FriendshipManager
from amity.correlation import CorrelationKeyGenerator, InMemorySequenceCounter
from amity.replies.memory import InMemoryReplySink
from amity.store.memory import InMemoryStore

TOPIC = "amity:test:requests"


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def cache() -> InMemoryNeighborCache:
    return InMemoryNeighborCache()


@pytest.fixture
def manager(store: InMemoryStore, cache: InMemoryNeighborCache) -> FriendshipManager:
    return FriendshipManager(store, cache)


@pytest.fixture
def bus() -> InMemoryBus:
    return InMemoryBus()


@pytest.fixture
def reply_sink() -> InMemoryReplySink:
    return InMemoryReplySink(ttl=60)


@pytest.fixture
def dispatcher(
    bus: InMemoryBus, manager: FriendshipManager, reply_sink: InMemoryReplySink
) -> Dispatcher:
    return Dispatcher(bus.consumer(TOPIC), manager, reply_sink, concurrency=4)


@pytest.fixture
def client(bus: InMemoryBus, reply_sink: InMemoryReplySink) -> BridgeClient:
    keygen = CorrelationKeyGenerator(InMemorySequenceCounter())
    return BridgeClient(bus, reply_sink, keygen, topic=TOPIC, default_timeout=2.0)
