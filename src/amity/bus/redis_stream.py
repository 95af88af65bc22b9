"""Redis Streams request bus for horizontal scaling.

Requests are appended to a stream; dispatchers join a consumer group so
each request is delivered to one dispatcher at a time. The group's
last-delivered id and pending list are the externally tracked offset:
a restarted dispatcher resumes where the group left off.

Features:
- Distributed processing via consumer groups
- At-least-once delivery with acknowledgment
- Reclaiming of messages left pending by dead consumers
- Dead letter stream for messages that keep failing
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from redis.exceptions import RedisError, ResponseError

from amity.bus.base import BusMessage, Consumer, Publisher
from amity.core.errors import BusError

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Processing configuration
BATCH_SIZE = 10
BLOCK_MS = 1000  # Block for 1 second when waiting for messages
CLAIM_IDLE_MS = 30000  # Claim messages idle for 30 seconds
MAX_DELIVERIES = 3
STREAM_MAXLEN = 100000


def _generate_consumer_id() -> str:
    """Generate a unique consumer ID for this instance."""
    hostname = os.environ.get("HOSTNAME", os.environ.get("POD_NAME", "unknown"))
    return f"{hostname}-{uuid4().hex[:8]}"


def _text(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    return value.decode() if isinstance(value, bytes) else value


class RedisStreamPublisher(Publisher):
    """Publishes requests with XADD.

    Each entry carries the correlation key and the raw payload:
    ``{"key": <correlation key>, "data": <operation bytes>}``.
    """

    def __init__(self, client: Redis, timeout: float = 10.0, maxlen: int = STREAM_MAXLEN):
        self.client = client
        self.timeout = timeout
        self.maxlen = maxlen

    async def publish(self, topic: str, key: str, value: bytes) -> None:
        try:
            message_id = await asyncio.wait_for(
                self.client.xadd(topic, {"key": key, "data": value}, maxlen=self.maxlen),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            raise BusError(f"Publish to {topic} timed out after {self.timeout}s") from e
        except (RedisError, OSError) as e:
            raise BusError(f"Publish to {topic} failed: {e}") from e

        logger.debug(f"Published {key} to {topic} as {message_id!r}")


class RedisStreamConsumer(Consumer):
    """Consumer group member reading one stream.

    Example:
        consumer = RedisStreamConsumer(client, "amity:requests", "amity-dispatchers")
        async for message in consumer.messages():
            await handle(message)
            await consumer.ack(message)
    """

    def __init__(
        self,
        client: Redis,
        stream_name: str,
        consumer_group: str,
        consumer_id: str | None = None,
        dead_letter_stream: str | None = None,
        start_id: str = "0",
        batch_size: int = BATCH_SIZE,
        block_ms: int = BLOCK_MS,
        claim_idle_ms: int = CLAIM_IDLE_MS,
        max_deliveries: int = MAX_DELIVERIES,
    ):
        self.client = client
        self.stream_name = stream_name
        self.consumer_group = consumer_group
        self.consumer_id = consumer_id or _generate_consumer_id()
        self.dead_letter_stream = dead_letter_stream or f"{stream_name}:dead"
        self.start_id = start_id
        self.batch_size = batch_size
        self.block_ms = block_ms
        self.claim_idle_ms = claim_idle_ms
        self.max_deliveries = max_deliveries
        self._running = False
        self._group_ready = False

    async def ensure_group(self) -> None:
        """Ensure the stream and consumer group exist."""
        if self._group_ready:
            return
        try:
            # Create consumer group (also creates stream if it doesn't exist)
            await self.client.xgroup_create(
                self.stream_name,
                self.consumer_group,
                id=self.start_id,
                mkstream=True,
            )
            logger.info(
                f"Created consumer group {self.consumer_group} on stream {self.stream_name}"
            )
        except ResponseError as e:
            # Group already exists - this is fine
            if "BUSYGROUP" not in str(e):
                raise BusError(f"Cannot create consumer group: {e}") from e
            logger.debug(f"Consumer group {self.consumer_group} already exists")
        except RedisError as e:
            raise BusError(f"Cannot create consumer group: {e}") from e
        self._group_ready = True

    async def messages(self) -> AsyncIterator[BusMessage]:
        await self.ensure_group()
        self._running = True
        logger.info(f"Consumer {self.consumer_id} reading {self.stream_name}")

        while self._running:
            try:
                for message in await self._claim_pending():
                    yield message

                response = await self.client.xreadgroup(
                    groupname=self.consumer_group,
                    consumername=self.consumer_id,
                    streams={self.stream_name: ">"},  # Only new messages
                    count=self.batch_size,
                    block=self.block_ms,
                )
            except asyncio.CancelledError:
                raise
            except RedisError as e:
                logger.error(f"Error reading {self.stream_name}: {e}")
                await asyncio.sleep(1)  # Back off on error
                continue

            for _stream, entries in response or []:
                for message_id, fields in entries:
                    yield self._to_message(message_id, fields)

    async def ack(self, message: BusMessage) -> None:
        try:
            await self.client.xack(self.stream_name, self.consumer_group, message.offset)
        except RedisError as e:
            raise BusError(f"Ack of {message.offset!r} failed: {e}") from e

    async def close(self) -> None:
        self._running = False
        logger.info(f"Stopped consumer {self.consumer_id}")

    def _to_message(self, message_id: bytes | str, fields: dict[Any, Any]) -> BusMessage:
        key = _text(fields.get(b"key", fields.get("key")))
        data = fields.get(b"data", fields.get("data"))
        if isinstance(data, str):
            data = data.encode()
        return BusMessage(
            topic=self.stream_name,
            key=key or None,
            value=data or b"",
            offset=_text(message_id),
        )

    async def _claim_pending(self) -> list[BusMessage]:
        """Claim messages that have been pending too long.

        This handles the case where a consumer dies without ACKing messages.
        Messages delivered ``max_deliveries`` times go to the dead letter stream.
        """
        claimed_messages: list[BusMessage] = []
        try:
            pending = await self.client.xpending_range(
                self.stream_name,
                self.consumer_group,
                min="-",
                max="+",
                count=self.batch_size,
                idle=self.claim_idle_ms,
            )
        except RedisError as e:
            logger.warning(f"Error listing pending messages: {e}")
            return claimed_messages

        for entry in pending:
            message_id = entry["message_id"]
            if entry.get("times_delivered", 0) >= self.max_deliveries:
                await self._move_to_dead_letter(message_id)
                continue

            try:
                claimed = await self.client.xclaim(
                    self.stream_name,
                    self.consumer_group,
                    self.consumer_id,
                    min_idle_time=self.claim_idle_ms,
                    message_ids=[message_id],
                )
            except RedisError as e:
                logger.warning(f"Error claiming {message_id!r}: {e}")
                continue

            for msg_id, fields in claimed:
                if fields:
                    claimed_messages.append(self._to_message(msg_id, fields))

        return claimed_messages

    async def _move_to_dead_letter(self, message_id: bytes | str) -> None:
        """Move a failed message to the dead letter stream."""
        try:
            messages = await self.client.xrange(self.stream_name, message_id, message_id)
            if messages:
                _, fields = messages[0]
                await self.client.xadd(
                    self.dead_letter_stream,
                    {
                        "original_id": _text(message_id) or "",
                        "original_stream": self.stream_name,
                        **fields,
                    },
                )
                logger.warning(f"Moved message {message_id!r} to dead letter stream")

            await self.client.xack(self.stream_name, self.consumer_group, message_id)
        except RedisError as e:
            logger.error(f"Failed to move message to dead letter: {e}")
