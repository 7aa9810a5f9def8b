"""Trade change feed on Redis Streams.

Every trade insert or close is published to one stream. Listeners only use a
message as a signal to re-fetch; the payload is never applied as a patch.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
import structlog

from bias_journal.models.messages import TradeChangeMessage

logger = structlog.get_logger()


class TradeFeed:
    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        stream: str = "journal:trades",
        consumer_group: str = "journal",
        consumer_name: str = "journal-1",
        socket_timeout: float = 30.0,
        socket_connect_timeout: float = 10.0,
    ) -> None:
        self.redis_url = redis_url
        self.stream = stream
        self.consumer_group = consumer_group
        self.consumer_name = consumer_name
        self.socket_timeout = socket_timeout
        self.socket_connect_timeout = socket_connect_timeout
        self.client: aioredis.Redis | None = None

    async def connect(self) -> None:
        """Connect to Redis and make sure the consumer group exists."""
        self.client = aioredis.from_url(
            self.redis_url,
            decode_responses=False,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.socket_connect_timeout,
            retry_on_timeout=True,
        )
        await self.client.ping()
        logger.info("redis_connected", url=self.redis_url, stream=self.stream)
        await self.create_consumer_group()

    async def disconnect(self) -> None:
        if self.client:
            await self.client.aclose()
            logger.info("redis_disconnected")

    async def publish_change(self, user_id: str, trade_id: str, event: str) -> str:
        """XADD a change notice. Returns the stream entry ID."""
        assert self.client is not None
        message = TradeChangeMessage(user_id=user_id, trade_id=trade_id, event=event)
        entry_id = await self.client.xadd(self.stream, message.to_redis())
        logger.debug("trade_change_published", trade_id=trade_id, trade_event=event)
        return entry_id.decode() if isinstance(entry_id, bytes) else entry_id

    async def listen(
        self,
        user_id: str,
        callback: Callable[[TradeChangeMessage], Awaitable[None]],
    ) -> None:
        """XREADGROUP loop; calls ``callback`` for every change of ``user_id``."""
        assert self.client is not None

        while True:
            try:
                results = await self.client.xreadgroup(
                    groupname=self.consumer_group,
                    consumername=self.consumer_name,
                    streams={self.stream: ">"},
                    count=10,
                    block=5000,
                )
                if not results:
                    continue

                for _stream, messages in results:
                    for entry_id, data in messages:
                        try:
                            message = TradeChangeMessage.from_redis(data)
                            if message.user_id == user_id:
                                await callback(message)
                            await self.ack(entry_id)
                        except Exception:
                            logger.exception("trade_change_processing_error", entry_id=entry_id)
            except asyncio.CancelledError:
                break
            except aioredis.ResponseError as e:
                if "NOGROUP" in str(e):
                    logger.warning("redis_nogroup_recreating", stream=self.stream)
                    await self.create_consumer_group()
                else:
                    logger.exception("trade_feed_error")
                    await asyncio.sleep(1)
            except Exception:
                logger.exception("trade_feed_error")
                await asyncio.sleep(1)

    async def create_consumer_group(self) -> None:
        """Create consumer group, ignore if already exists."""
        assert self.client is not None
        try:
            await self.client.xgroup_create(self.stream, self.consumer_group, id="$", mkstream=True)
            logger.debug("redis_group_created", stream=self.stream, group=self.consumer_group)
        except aioredis.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise

    async def ack(self, entry_id: str | bytes) -> None:
        assert self.client is not None
        await self.client.xack(self.stream, self.consumer_group, entry_id)
