"""Reply slots for Amity.

Correlated delivery of reply envelopes to waiting bridge callers:
- InMemoryReplySink: per-key asyncio queues with expiry
- RedisReplySink: Redis lists with RPUSH/EXPIRE and BLPOP
"""

from amity.replies.base import ReplySink
from amity.replies.memory import InMemoryReplySink
from amity.replies.redis import RedisReplySink

__all__ = [
    "InMemoryReplySink",
    "RedisReplySink",
    "ReplySink",
]
