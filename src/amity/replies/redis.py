"""Redis reply slots.

Each slot is a list at CacheKeys.reply_slot(key):
- deliver: RPUSH + EXPIRE in one MULTI/EXEC, so a slot never lives without a TTL
- await_reply: BLPOP with the caller's timeout (LPOP when the timeout is zero)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from amity.cache.keys import CacheKeys
from amity.core.envelope import ReplyEnvelope
from amity.core.errors import ReplySinkError
from amity.replies.base import ReplySink

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

DEFAULT_TTL = 60


class RedisReplySink(ReplySink):
    """TTL-bounded reply slots stored as Redis lists."""

    def __init__(self, client: Redis, ttl: int = DEFAULT_TTL):
        super().__init__(ttl)
        self.client = client

    async def deliver(self, key: str, envelope: ReplyEnvelope) -> None:
        slot = CacheKeys.reply_slot(key)
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.rpush(slot, envelope.encode())
                pipe.expire(slot, self.ttl)
                await pipe.execute()
        except RedisError as e:
            raise ReplySinkError(f"Reply delivery to {slot} failed: {e}") from e
        logger.debug(f"Reply delivered to {slot}")

    async def await_reply(self, key: str, timeout: float) -> ReplyEnvelope | None:
        slot = CacheKeys.reply_slot(key)
        try:
            if timeout <= 0:
                # BLPOP treats 0 as "block forever"
                raw = await self.client.lpop(slot)
            else:
                result = await self.client.blpop([slot], timeout=timeout)
                raw = result[1] if result else None
        except RedisError as e:
            raise ReplySinkError(f"Waiting on {slot} failed: {e}") from e

        if raw is None:
            return None
        return ReplyEnvelope.decode(raw)
