"""Message bus interfaces.

Publisher sends ``(key, bytes)`` pairs to a topic. Consumer yields them as
a lazy, effectively infinite sequence; its position is tracked outside the
consumer loop (a log offset, or a Redis consumer group), so a restarted
consumer resumes where the previous one acknowledged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BusMessage:
    """One message read from the bus."""

    topic: str
    key: str | None
    value: bytes
    offset: int | str | None = None


class Publisher(ABC):
    """Abstract bus producer."""

    @abstractmethod
    async def publish(self, topic: str, key: str, value: bytes) -> None:
        """Publish one message.

        Raises:
            BusError: if the bus is unreachable or rejects the message.
        """

    async def close(self) -> None:
        """Release resources. No-op by default."""


class Consumer(ABC):
    """Abstract bus consumer."""

    @abstractmethod
    def messages(self) -> AsyncIterator[BusMessage]:
        """Iterate over messages until the consumer is closed."""

    @abstractmethod
    async def ack(self, message: BusMessage) -> None:
        """Mark a message as processed."""

    @abstractmethod
    async def close(self) -> None:
        """Stop iteration and release resources."""
