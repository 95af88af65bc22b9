"""In-memory reply slots for single-process deployments and tests."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from amity.core.envelope import ReplyEnvelope
from amity.replies.base import ReplySink

logger = logging.getLogger(__name__)

DEFAULT_TTL = 60


@dataclass
class _Slot:
    expires_at: float
    queue: asyncio.Queue[bytes] = field(default_factory=asyncio.Queue)
    waiters: int = 0


class InMemoryReplySink(ReplySink):
    """Per-key queues with an expiry deadline.

    Expired slots are reclaimed lazily on every deliver/await_reply and
    explicitly by purge_expired(). A slot with a waiting caller is never
    reclaimed from under it.
    """

    def __init__(self, ttl: int = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        super().__init__(ttl)
        self._clock = clock
        self._slots: dict[str, _Slot] = {}

    async def deliver(self, key: str, envelope: ReplyEnvelope) -> None:
        self.purge_expired()
        slot = self._slots.get(key)
        if slot is None:
            slot = self._slots[key] = _Slot(expires_at=self._clock() + self.ttl)
        else:
            slot.expires_at = self._clock() + self.ttl
        slot.queue.put_nowait(envelope.encode())
        logger.debug(f"Reply delivered to slot {key}")

    async def await_reply(self, key: str, timeout: float) -> ReplyEnvelope | None:
        self.purge_expired()
        slot = self._slots.get(key)
        if slot is None:
            slot = self._slots[key] = _Slot(expires_at=self._clock() + self.ttl)

        slot.waiters += 1
        try:
            if timeout <= 0:
                raw = slot.queue.get_nowait() if not slot.queue.empty() else None
            else:
                try:
                    raw = await asyncio.wait_for(slot.queue.get(), timeout=timeout)
                except TimeoutError:
                    raw = None
        finally:
            slot.waiters -= 1
            if slot.waiters == 0 and slot.queue.empty() and self._slots.get(key) is slot:
                del self._slots[key]

        if raw is None:
            return None
        return ReplyEnvelope.decode(raw)

    def purge_expired(self) -> int:
        """Drop expired slots nobody is waiting on. Returns the number dropped."""
        now = self._clock()
        expired = [
            key for key, slot in self._slots.items() if slot.expires_at <= now and not slot.waiters
        ]
        for key in expired:
            del self._slots[key]
        if expired:
            logger.debug(f"Reclaimed {len(expired)} expired reply slot(s)")
        return len(expired)

    def __contains__(self, key: str) -> bool:
        return key in self._slots

    def __len__(self) -> int:
        return len(self._slots)
