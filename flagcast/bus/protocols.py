"""
Protocol definitions for the coordination bus.

The bus is an ordered publish/subscribe channel shared by every service
instance. Delivery is FIFO per topic with no ordering across topics.
"""

from typing import AsyncIterator, Protocol, Union, runtime_checkable

# Received payloads may be raw bytes (Redis) or text (in-memory)
Payload = Union[str, bytes]


@runtime_checkable
class BusSubscription(Protocol):
    """An established subscription to one topic."""

    topic: str

    def __aiter__(self) -> AsyncIterator[Payload]:
        """Iterate payloads in publish order until closed."""
        ...

    async def close(self) -> None:
        """Stop receiving and release the underlying connection."""
        ...


@runtime_checkable
class CoordinationBus(Protocol):
    """Publish/subscribe channel carrying encoded events."""

    @property
    def backend(self) -> str:
        """Short backend name for health reporting."""
        ...

    async def publish(self, topic: str, payload: str) -> None:
        """
        Publish a payload on a topic.

        Raises:
            BusUnavailable: If the payload could not be published.
        """
        ...

    async def subscribe(self, topic: str) -> BusSubscription:
        """
        Subscribe to a topic.

        The subscription is active when this returns; payloads published
        afterwards are delivered to it.

        Raises:
            BusUnavailable: If the subscription could not be established.
        """
        ...

    async def close(self) -> None:
        """Release bus resources."""
        ...
