"""
In-process coordination bus.

Single-instance only. Used when Redis is disabled and in tests.
"""

import asyncio
import logging
from typing import AsyncIterator

logger = logging.getLogger("flagcast.bus.memory")

_CLOSED = object()


class InMemorySubscription:
    """Unbounded FIFO of payloads for one subscriber."""

    def __init__(self, bus: "InMemoryCoordinationBus", topic: str):
        self.topic = topic
        self._bus = bus
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def _put(self, payload: str) -> None:
        if not self._closed:
            self._queue.put_nowait(payload)

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._bus._unsubscribe(self)
        self._queue.put_nowait(_CLOSED)


class InMemoryCoordinationBus:
    """Pub/sub over asyncio queues, FIFO per topic."""

    def __init__(self):
        self._subscribers: dict[str, list[InMemorySubscription]] = {}
        self.published: list[tuple[str, str]] = []

    @property
    def backend(self) -> str:
        return "memory"

    async def publish(self, topic: str, payload: str) -> None:
        self.published.append((topic, payload))
        for subscription in list(self._subscribers.get(topic, ())):
            subscription._put(payload)

    async def subscribe(self, topic: str) -> InMemorySubscription:
        subscription = InMemorySubscription(self, topic)
        self._subscribers.setdefault(topic, []).append(subscription)
        logger.debug("Subscribed to %s (%d subscribers)", topic, len(self._subscribers[topic]))
        return subscription

    def _unsubscribe(self, subscription: InMemorySubscription) -> None:
        subscribers = self._subscribers.get(subscription.topic, [])
        if subscription in subscribers:
            subscribers.remove(subscription)

    async def close(self) -> None:
        for subscribers in list(self._subscribers.values()):
            for subscription in list(subscribers):
                await subscription.close()
        self._subscribers.clear()
