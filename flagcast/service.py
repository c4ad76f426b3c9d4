"""
Flagcast service runtime.

Owns the replay buffer, connection registry, flag coordinator and fan-out
engine for one process, and exposes the inbound and query operations the
HTTP layer calls.
"""

import logging
from typing import Any, Optional

from .bus import InMemoryCoordinationBus, RedisCoordinationBus, encode_notification
from .bus.protocols import CoordinationBus
from .config import Settings
from .events import (
    FlagChangeEvent,
    NotificationEvent,
    ReplayBuffer,
    build_notification,
)
from .flags import FlagCoordinator, InMemoryFlagStore, RedisFlagStore
from .flags.store import FlagStore
from .realtime import Connection, ConnectionRegistry, FanoutEngine

logger = logging.getLogger("flagcast.service")


class FlagcastService:
    """
    Event distribution core for one process.

    Lifecycle: start() subscribes the fan-out engine to the bus;
    stop() closes every connection and releases the bus and store.
    """

    def __init__(
        self,
        bus: CoordinationBus,
        store: FlagStore,
        *,
        notifications_topic: str = "notifications",
        flags_topic: str = "flags:updates",
        backlog_limit: int = 20,
        outbound_queue_size: int = 256,
        max_connections: int = 1000,
        reconnect_max_delay: float = 60.0,
    ):
        self.bus = bus
        self.store = store
        self.replay = ReplayBuffer(backlog_limit)
        self.registry = ConnectionRegistry(max_connections)
        self.coordinator = FlagCoordinator(
            store,
            bus,
            flags_topic=flags_topic,
            notifications_topic=notifications_topic,
        )
        self.engine = FanoutEngine(
            bus,
            self.replay,
            self.registry,
            self.coordinator,
            notifications_topic=notifications_topic,
            flags_topic=flags_topic,
            reconnect_max_delay=reconnect_max_delay,
        )
        self._notifications_topic = notifications_topic
        self._outbound_queue_size = outbound_queue_size

    @classmethod
    def from_settings(cls, settings: Settings) -> "FlagcastService":
        """Build the service with the backends selected in settings."""
        if settings.redis.enabled:
            bus = RedisCoordinationBus.from_url(settings.redis.url)
            store = RedisFlagStore.from_url(
                settings.redis.url,
                key_prefix=settings.flags.key_prefix,
                scan_count=settings.flags.scan_count,
                socket_timeout=settings.redis.socket_timeout,
            )
        else:
            logger.warning("Redis disabled, using in-memory bus and flag store (single instance only)")
            bus = InMemoryCoordinationBus()
            store = InMemoryFlagStore()

        return cls(
            bus,
            store,
            notifications_topic=settings.bus.notifications_channel,
            flags_topic=settings.bus.flags_channel,
            backlog_limit=settings.fanout.backlog_limit,
            outbound_queue_size=settings.fanout.outbound_queue_size,
            max_connections=settings.fanout.max_connections,
            reconnect_max_delay=settings.redis.reconnect_max_delay,
        )

    @property
    def is_running(self) -> bool:
        return self.engine.is_running

    async def start(self) -> None:
        await self.engine.start()
        logger.info(
            "Flagcast service started (bus=%s, store=%s, backlog=%d)",
            self.bus.backend, self.store.backend, self.replay.capacity,
        )

    async def stop(self) -> None:
        await self.engine.detach_all()
        await self.engine.stop()
        await self.bus.close()
        await self.store.close()
        logger.info("Flagcast service stopped")

    # --- Inbound ---

    async def publish_notification(
        self,
        kind: Any,
        message: Any,
        source: Optional[str] = "api",
    ) -> NotificationEvent:
        """
        Validate and publish a notification.

        Raises:
            InvalidInput: If kind or message is invalid. Nothing is published.
            BusUnavailable: If the bus publish fails.
        """
        event = build_notification(kind, message, source=source)
        await self.bus.publish(self._notifications_topic, encode_notification(event))
        logger.debug("Published notification %s (%s)", event.id, event.kind.value)
        return event

    async def mutate_flag(self, key: Any, value: Any) -> FlagChangeEvent:
        """Set a flag through the coordinator."""
        return await self.coordinator.set(key, value)

    # --- Connections ---

    def new_connection(self, transport) -> Connection:
        return Connection(transport, queue_size=self._outbound_queue_size)

    async def connect(self, connection: Connection) -> None:
        await self.engine.attach(connection)

    async def disconnect(self, connection: Connection) -> None:
        await self.engine.detach(connection)

    # --- Queries ---

    async def list_flags(self) -> dict[str, bool]:
        return await self.coordinator.list()

    def current_backlog_size(self) -> int:
        return self.replay.size

    def connected_count(self) -> int:
        return len(self.registry)


# Global service instance, set by the application lifespan
_service: Optional[FlagcastService] = None


def get_service() -> Optional[FlagcastService]:
    """Get the running service, or None before startup."""
    return _service


def set_service(service: Optional[FlagcastService]) -> None:
    global _service
    _service = service


def reset_service() -> None:
    """Reset the service handle (mainly for testing)."""
    global _service
    _service = None
