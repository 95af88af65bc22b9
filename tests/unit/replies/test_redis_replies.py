"""Tests for Redis reply slots."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from amity.core.envelope import ReplyEnvelope
from amity.core.errors import DecodeFailed, ReplySinkError
from amity.replies.redis import RedisReplySink


@pytest.fixture
def mock_pipe() -> MagicMock:
    """Pipeline that queues commands synchronously and executes asynchronously."""
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[1, True])
    pipe.__aenter__ = AsyncMock(return_value=pipe)
    pipe.__aexit__ = AsyncMock(return_value=None)
    return pipe


@pytest.fixture
def mock_redis(mock_pipe: MagicMock) -> AsyncMock:
    """Create a mock Redis client."""
    redis = AsyncMock()
    redis.pipeline = MagicMock(return_value=mock_pipe)
    redis.blpop = AsyncMock(return_value=None)
    redis.lpop = AsyncMock(return_value=None)
    return redis


class TestDeliver:
    """Test RPUSH + EXPIRE delivery."""

    async def test_deliver_pushes_and_sets_ttl(
        self, mock_redis: AsyncMock, mock_pipe: MagicMock
    ) -> None:
        sink = RedisReplySink(mock_redis, ttl=30)

        await sink.deliver("42-1-1", ReplyEnvelope.ok([2]))

        mock_redis.pipeline.assert_called_once_with(transaction=True)
        mock_pipe.rpush.assert_called_once_with(
            "amity:reply:42-1-1", b'{"status":"ok","data":[2]}'
        )
        mock_pipe.expire.assert_called_once_with("amity:reply:42-1-1", 30)
        mock_pipe.execute.assert_awaited_once()

    async def test_deliver_fault(self, mock_redis: AsyncMock, mock_pipe: MagicMock) -> None:
        mock_pipe.execute.side_effect = RedisConnectionError("down")

        with pytest.raises(ReplySinkError):
            await RedisReplySink(mock_redis).deliver("k", ReplyEnvelope.ok())


class TestAwaitReply:
    """Test BLPOP waits."""

    async def test_blpop_with_timeout(self, mock_redis: AsyncMock) -> None:
        mock_redis.blpop.return_value = (b"amity:reply:k", b'{"status":"ok","data":true}')

        envelope = await RedisReplySink(mock_redis).await_reply("k", timeout=2.5)

        assert envelope == ReplyEnvelope.ok(True)
        mock_redis.blpop.assert_awaited_once_with(["amity:reply:k"], timeout=2.5)

    async def test_timeout_returns_none(self, mock_redis: AsyncMock) -> None:
        assert await RedisReplySink(mock_redis).await_reply("k", timeout=1) is None

    async def test_zero_timeout_uses_lpop(self, mock_redis: AsyncMock) -> None:
        """BLPOP 0 would block forever, so a zero timeout polls once."""
        await RedisReplySink(mock_redis).await_reply("k", timeout=0)

        mock_redis.lpop.assert_awaited_once_with("amity:reply:k")
        mock_redis.blpop.assert_not_called()

    async def test_corrupt_reply(self, mock_redis: AsyncMock) -> None:
        mock_redis.blpop.return_value = (b"amity:reply:k", b"garbage")

        with pytest.raises(DecodeFailed):
            await RedisReplySink(mock_redis).await_reply("k", timeout=1)

    async def test_wait_fault(self, mock_redis: AsyncMock) -> None:
        mock_redis.blpop.side_effect = RedisConnectionError("down")

        with pytest.raises(ReplySinkError):
            await RedisReplySink(mock_redis).await_reply("k", timeout=1)
