"""Reply slot interface.

A reply slot is addressed by a correlation key. The dispatcher appends an
envelope; the waiting caller consumes at most one. Every slot expires after
a fixed lifetime whether or not it was consumed, so replies to abandoned
(timed-out) calls do not accumulate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from amity.core.envelope import ReplyEnvelope


class ReplySink(ABC):
    """Abstract keyed, TTL-bounded reply slots."""

    def __init__(self, ttl: int):
        if ttl <= 0:
            raise ValueError("Reply slot TTL must be positive")
        self.ttl = ttl

    @abstractmethod
    async def deliver(self, key: str, envelope: ReplyEnvelope) -> None:
        """Append an envelope to the slot for ``key`` and (re)start its TTL.

        Raises:
            ReplySinkError: if the slot store is unreachable.
        """

    @abstractmethod
    async def await_reply(self, key: str, timeout: float) -> ReplyEnvelope | None:
        """Consume one envelope for ``key``, waiting at most ``timeout`` seconds.

        Returns None on timeout.

        Raises:
            ReplySinkError: if the slot store is unreachable.
            DecodeFailed: if the stored reply is not a valid envelope.
        """

    async def close(self) -> None:
        """Release resources. No-op by default."""
