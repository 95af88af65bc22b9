"""Runtime wiring for Amity.

Backends are chosen from ``settings.backend``:
- memory: in-process store, cache, bus, reply slots and counter. Client and
  dispatcher must run in the same process and share these singletons.
- redis: FalkorDB store; Redis for cache, request stream, reply slots and
  sequence counters, all through the shared client from get_redis().
"""

from __future__ import annotations

import logging

from amity.bridge.client import BridgeClient
from amity.bridge.dispatcher import Dispatcher
from amity.bus.base import Consumer, Publisher
from amity.bus.memory import InMemoryBus
from amity.bus.redis_stream import RedisStreamConsumer, RedisStreamPublisher
from amity.cache.base import NeighborCache
from amity.cache.memory import InMemoryNeighborCache
from amity.cache.redis import RedisNeighborCache, close_redis, get_redis
from amity.config import settings
from amity.core.manager import FriendshipManager
from amity.correlation import (
    CorrelationKeyGenerator,
    InMemorySequenceCounter,
    RedisSequenceCounter,
    SequenceCounter,
)
from amity.replies.base import ReplySink
from amity.replies.memory import InMemoryReplySink
from amity.replies.redis import RedisReplySink
from amity.store.base import Store
from amity.store.memory import InMemoryStore

logger = logging.getLogger(__name__)

MEMORY_BACKENDS = {"memory", "inmemory", "in_memory"}
REDIS_BACKENDS = {"redis", "falkordb"}

# Process-wide singletons for the memory backend
_memory_store: InMemoryStore | None = None
_memory_cache: InMemoryNeighborCache | None = None
_memory_bus: InMemoryBus | None = None
_memory_reply_sink: InMemoryReplySink | None = None
_memory_counter: InMemorySequenceCounter | None = None


def _backend() -> str:
    backend = settings.backend.lower()
    if backend in MEMORY_BACKENDS:
        return "memory"
    if backend in REDIS_BACKENDS:
        return "redis"
    raise ValueError("Unsupported backend. Supported values: memory, redis.")


async def create_store() -> Store:
    """Create and initialize the graph store."""
    global _memory_store
    if _backend() == "memory":
        if _memory_store is None:
            _memory_store = InMemoryStore()
        return _memory_store

    from amity.store.falkordb import FalkorDBStore

    password = settings.falkordb_password
    store = FalkorDBStore(
        host=settings.falkordb_host,
        port=settings.falkordb_port,
        password=password.get_secret_value() if password else None,
        graph_name=settings.falkordb_graph,
        max_connections=settings.falkordb_max_connections,
    )
    await store.initialize()
    return store


async def create_cache() -> NeighborCache:
    """Create the neighbor cache."""
    global _memory_cache
    if _backend() == "memory":
        if _memory_cache is None:
            _memory_cache = InMemoryNeighborCache()
        return _memory_cache
    return RedisNeighborCache(await get_redis(), ttl=settings.cache_ttl)


def _get_memory_bus() -> InMemoryBus:
    global _memory_bus
    if _memory_bus is None:
        _memory_bus = InMemoryBus()
    return _memory_bus


async def create_bus() -> Publisher:
    """Create the request publisher."""
    if _backend() == "memory":
        return _get_memory_bus()
    return RedisStreamPublisher(await get_redis(), timeout=settings.publish_timeout)


async def create_consumer() -> Consumer:
    """Create a consumer of the request topic."""
    if _backend() == "memory":
        return _get_memory_bus().consumer(settings.bus_stream)
    return RedisStreamConsumer(
        await get_redis(),
        stream_name=settings.bus_stream,
        consumer_group=settings.bus_consumer_group,
        consumer_id=settings.bus_consumer_id,
        dead_letter_stream=settings.bus_dead_letter_stream,
    )


async def create_reply_sink() -> ReplySink:
    """Create the reply slot store."""
    global _memory_reply_sink
    if _backend() == "memory":
        if _memory_reply_sink is None:
            _memory_reply_sink = InMemoryReplySink(ttl=settings.reply_ttl)
        return _memory_reply_sink
    return RedisReplySink(await get_redis(), ttl=settings.reply_ttl)


async def create_counter() -> SequenceCounter:
    """Create the correlation sequence counter."""
    global _memory_counter
    if _backend() == "memory":
        if _memory_counter is None:
            _memory_counter = InMemorySequenceCounter()
        return _memory_counter
    return RedisSequenceCounter(await get_redis())


async def build_manager() -> FriendshipManager:
    return FriendshipManager(
        store=await create_store(),
        cache=await create_cache(),
        recommend_depth=settings.recommend_depth,
        recommend_threshold=settings.recommend_threshold,
        recommend_inclusive=settings.recommend_inclusive,
        populate_cache_on_read=settings.populate_cache_on_read,
    )


async def build_dispatcher() -> Dispatcher:
    """Assemble a dispatcher from the configured backends."""
    dispatcher = Dispatcher(
        consumer=await create_consumer(),
        manager=await build_manager(),
        reply_sink=await create_reply_sink(),
        concurrency=settings.dispatcher_concurrency,
    )
    logger.info(f"Dispatcher built ({_backend()} backend)")
    return dispatcher


async def build_client() -> BridgeClient:
    """Assemble a bridge client from the configured backends."""
    return BridgeClient(
        publisher=await create_bus(),
        reply_sink=await create_reply_sink(),
        keygen=CorrelationKeyGenerator(await create_counter()),
        topic=settings.bus_stream,
        default_timeout=settings.call_timeout,
    )


async def shutdown(dispatcher: Dispatcher | None = None) -> None:
    """Release backend resources."""
    global _memory_store, _memory_cache, _memory_bus, _memory_reply_sink, _memory_counter
    if dispatcher is not None:
        await dispatcher.manager.store.close()

    if _memory_bus is not None:
        await _memory_bus.close()

    _memory_store = None
    _memory_cache = None
    _memory_bus = None
    _memory_reply_sink = None
    _memory_counter = None

    await close_redis()
    logger.info("Runtime shut down")
