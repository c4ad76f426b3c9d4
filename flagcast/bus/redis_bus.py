"""
Redis pub/sub coordination bus.

Every service instance subscribes to the same channels, so an event
published by any instance (or an out-of-process producer) reaches the
clients of all instances.
"""

import logging
from typing import AsyncIterator

import redis.asyncio as aioredis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from ..exceptions import BusUnavailable
from .protocols import Payload

logger = logging.getLogger("flagcast.bus.redis")


class RedisSubscription:
    """
    A subscribed Redis PubSub for one channel.

    Yields raw payload bytes; the codec owns UTF-8 and JSON decoding so a
    bad payload from another producer is discarded, not fatal.
    """

    def __init__(self, topic: str, pubsub: PubSub):
        self.topic = topic
        self._pubsub = pubsub
        self._closed = False

    async def __aiter__(self) -> AsyncIterator[Payload]:
        try:
            async for message in self._pubsub.listen():
                if message is None or message.get("type") != "message":
                    continue
                yield message["data"]
        except RedisError as e:
            if self._closed:
                return
            raise BusUnavailable(self.topic, e) from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._pubsub.unsubscribe(self.topic)
        except RedisError as e:
            logger.debug("Unsubscribe from %s failed: %s", self.topic, e)
        await self._pubsub.aclose()


class RedisCoordinationBus:
    """
    Coordination bus backed by Redis PUBLISH/SUBSCRIBE.

    Uses its own client so long-lived subscriber connections never share
    a socket timeout with flag store commands.
    """

    def __init__(self, client: aioredis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCoordinationBus":
        return cls(aioredis.from_url(url, decode_responses=False))

    @property
    def backend(self) -> str:
        return "redis"

    async def publish(self, topic: str, payload: str) -> None:
        try:
            receivers = await self._client.publish(topic, payload)
        except RedisError as e:
            logger.error("Failed to publish to %s: %s", topic, e)
            raise BusUnavailable(topic, e) from e
        logger.debug("Published to %s (%d receivers)", topic, receivers)

    async def subscribe(self, topic: str) -> RedisSubscription:
        pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        try:
            await pubsub.subscribe(topic)
        except RedisError as e:
            await pubsub.aclose()
            logger.error("Failed to subscribe to %s: %s", topic, e)
            raise BusUnavailable(topic, e) from e
        logger.info("Subscribed to Redis channel %s", topic)
        return RedisSubscription(topic, pubsub)

    async def close(self) -> None:
        await self._client.aclose()
