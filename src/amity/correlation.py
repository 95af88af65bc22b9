"""Correlation key generation.

A correlation key links one outbound request to its reply slot:

    "{requester_token}-{unix_seconds}-{sequence}"

The requester token is type-tagged ("i:1" vs "s:1") like the counter key,
so requesters 1 and "1", which count independently, never share a key.
Uniqueness comes from the per-requester sequence, which is incremented
atomically by the counter backend (Redis INCR, or a locked integer). The
timestamp only makes keys readable and time-sortable; skewed clocks cannot
produce duplicates. A counter that cannot be reached raises Unavailable
rather than falling back to anything that could repeat a key.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from typing import TYPE_CHECKING, NamedTuple

from redis.exceptions import RedisError

from amity.cache.keys import CacheKeys, entity_token
from amity.core.errors import Unavailable
from amity.core.operations import EntityId

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class SequenceCounter(ABC):
    """Atomic, per-requester monotonically increasing counter."""

    @abstractmethod
    async def increment(self, requester_id: EntityId) -> int:
        """Atomically increment and return the requester's sequence.

        Raises:
            Unavailable: if the counter's backing store cannot be reached.
        """


class InMemorySequenceCounter(SequenceCounter):
    """Thread-safe in-process counter."""

    def __init__(self) -> None:
        self._values: defaultdict[EntityId, int] = defaultdict(int)
        self._lock = threading.Lock()

    async def increment(self, requester_id: EntityId) -> int:
        with self._lock:
            self._values[requester_id] += 1
            return self._values[requester_id]


class RedisSequenceCounter(SequenceCounter):
    """Counter backed by Redis INCR, shared by every process of a requester."""

    def __init__(self, client: Redis):
        self.client = client

    async def increment(self, requester_id: EntityId) -> int:
        key = CacheKeys.sequence(requester_id)
        try:
            return int(await self.client.incr(key))
        except (RedisError, OSError) as e:
            raise Unavailable(f"Sequence counter {key} unreachable: {e}") from e


class KeyParts(NamedTuple):
    requester_id: EntityId
    timestamp: int
    sequence: int


class CorrelationKeyGenerator:
    """Produces correlation keys from a sequence counter and a coarse clock."""

    def __init__(self, counter: SequenceCounter, clock: Callable[[], float] = time.time):
        self.counter = counter
        self._clock = clock

    async def next_key(self, requester_id: EntityId) -> str:
        """Allocate a new correlation key for ``requester_id``.

        Raises:
            Unavailable: if the sequence counter cannot be reached.
        """
        sequence = await self.counter.increment(requester_id)
        return f"{entity_token(requester_id)}-{int(self._clock())}-{sequence}"


def parse_key(key: str) -> KeyParts:
    """Split a correlation key into its parts.

    The requester comes back with its original type: ``i:42`` gives the int
    42 and ``s:42`` the string "42".

    Raises:
        ValueError: if the key is not in ``requester-timestamp-sequence`` form.
    """
    parts = key.rsplit("-", 2)
    if len(parts) != 3:
        raise ValueError(f"Malformed correlation key: {key!r}")
    token, timestamp, sequence = parts
    tag, _, raw_id = token.partition(":")
    try:
        if tag == "i":
            requester_id: EntityId = int(raw_id)
        elif tag == "s" and raw_id:
            requester_id = raw_id
        else:
            raise ValueError(f"Unknown requester token {token!r}")
        return KeyParts(requester_id, int(timestamp), int(sequence))
    except ValueError as e:
        raise ValueError(f"Malformed correlation key: {key!r}") from e
