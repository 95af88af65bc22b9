"""Request bus for Amity.

Carries tagged operations from bridge clients to dispatchers:
- InMemoryBus: append-only per-topic logs for single-process deployments
- RedisStreamPublisher / RedisStreamConsumer: Redis Streams with consumer groups
"""

from amity.bus.base import BusMessage, Consumer, Publisher
from amity.bus.memory import InMemoryBus, InMemoryConsumer
from amity.bus.redis_stream import RedisStreamConsumer, RedisStreamPublisher

__all__ = [
    "BusMessage",
    "Consumer",
    "InMemoryBus",
    "InMemoryConsumer",
    "Publisher",
    "RedisStreamConsumer",
    "RedisStreamPublisher",
]
