"""
Fan-out engine.

Runs one consumption loop per bus topic and pushes every received event
to all attached connections. Also runs the connect-time handshake that
brings a new client up to date before it sees live traffic.
"""

import asyncio
import logging
from typing import Callable

from ..bus.codec import decode_flag_change, decode_notification
from ..bus.protocols import BusSubscription, CoordinationBus, Payload
from ..events.replay import ReplayBuffer
from ..exceptions import BusUnavailable, ConnectionLimitReached, MalformedBusPayload
from ..flags.coordinator import FlagCoordinator
from . import messages
from .registry import Connection, ConnectionRegistry

logger = logging.getLogger("flagcast.realtime.engine")

PayloadHandler = Callable[[str, Payload], None]


class FanoutEngine:
    """
    Distributes bus events to connected clients.

    Per topic, every connection sees events in bus arrival order. There is
    no ordering between the notification and flag topics.
    """

    def __init__(
        self,
        bus: CoordinationBus,
        replay: ReplayBuffer,
        registry: ConnectionRegistry,
        coordinator: FlagCoordinator,
        notifications_topic: str = "notifications",
        flags_topic: str = "flags:updates",
        reconnect_max_delay: float = 60.0,
    ):
        self._bus = bus
        self._replay = replay
        self._registry = registry
        self._coordinator = coordinator
        self._notifications_topic = notifications_topic
        self._flags_topic = flags_topic
        self._reconnect_max_delay = reconnect_max_delay
        self._subscriptions: dict[str, BusSubscription] = {}
        self._tasks: list[asyncio.Task] = []
        self._running = False
        self.discarded = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Subscribe to both topics and start the consumption loops."""
        if self._running:
            logger.debug("Fan-out engine already running")
            return

        handlers: dict[str, PayloadHandler] = {
            self._notifications_topic: self._handle_notification,
            self._flags_topic: self._handle_flag_change,
        }
        try:
            for topic in handlers:
                self._subscriptions[topic] = await self._bus.subscribe(topic)
        except BusUnavailable:
            await self._close_subscriptions()
            raise

        self._running = True
        for topic, handler in handlers.items():
            self._tasks.append(asyncio.create_task(
                self._consume(topic, handler), name=f"flagcast-consume-{topic}",
            ))
        logger.info(
            "Fan-out engine started (topics: %s, %s)",
            self._notifications_topic, self._flags_topic,
        )

    async def stop(self) -> None:
        """Cancel the consumption loops and release the subscriptions."""
        if not self._running:
            return
        self._running = False
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self._close_subscriptions()
        logger.info("Fan-out engine stopped")

    async def _close_subscriptions(self) -> None:
        subscriptions = list(self._subscriptions.values())
        self._subscriptions.clear()
        for subscription in subscriptions:
            await subscription.close()

    async def _consume(self, topic: str, handler: PayloadHandler) -> None:
        """Consume one topic until stopped, re-subscribing if the bus drops."""
        reconnect_delay = 1.0
        while self._running:
            subscription = self._subscriptions.get(topic)
            if subscription is None:
                logger.info("Re-subscribing to %s in %.0fs...", topic, reconnect_delay)
                await asyncio.sleep(reconnect_delay)
                reconnect_delay = min(reconnect_delay * 2, self._reconnect_max_delay)
                try:
                    subscription = await self._bus.subscribe(topic)
                except BusUnavailable as e:
                    logger.warning("Re-subscribe to %s failed: %s", topic, e)
                    continue
                self._subscriptions[topic] = subscription
                reconnect_delay = 1.0
                logger.info("Re-subscribed to %s", topic)

            try:
                async for payload in subscription:
                    self._dispatch(topic, payload, handler)
            except BusUnavailable as e:
                logger.error("Lost subscription to %s: %s", topic, e)
                self._subscriptions.pop(topic, None)
                await subscription.close()
                continue

            # Subscription closed without error
            if self._running:
                logger.warning("Subscription to %s ended, re-subscribing", topic)
                self._subscriptions.pop(topic, None)

    def _dispatch(self, topic: str, payload: Payload, handler: PayloadHandler) -> None:
        try:
            handler(topic, payload)
        except MalformedBusPayload as e:
            self.discarded += 1
            logger.warning("Discarding bad message: %s", e)
        except Exception:
            self.discarded += 1
            logger.exception("Unexpected error handling message on %s, discarded", topic)

    def _handle_notification(self, topic: str, payload: Payload) -> None:
        event = decode_notification(topic, payload)
        self._replay.append(event)
        delivered = self._registry.broadcast(messages.notification_message(event))
        logger.debug("Notification %s fanned out to %d connections", event.id, delivered)

    def _handle_flag_change(self, topic: str, payload: Payload) -> None:
        event = decode_flag_change(topic, payload)
        delivered = self._registry.broadcast(messages.flags_update_message(event))
        logger.debug("Flag update %s fanned out to %d connections", event.key, delivered)

    async def attach(self, connection: Connection) -> None:
        """
        Register a connection and run the catch-up handshake.

        Sends the replay snapshot as one backlog message, then the full flag
        set as one flags:init message. Broadcasts that arrive meanwhile are
        held and released after flags:init.

        Raises:
            ConnectionLimitReached: If the registry is full. The connection
                is closed without being registered.
            StoreUnavailable: If the flag set cannot be listed. The
                connection is closed and removed.
        """
        try:
            self._registry.add(connection)
        except ConnectionLimitReached:
            await connection.close()
            raise

        try:
            # Snapshot and hold start share one loop step: nothing can slip between
            connection.begin_sync()
            connection.send_direct(messages.backlog_message(self._replay.snapshot()))

            flags = await self._coordinator.list()
        except Exception:
            await self.detach(connection)
            raise

        # Transport failed while the flag set was being listed
        if connection.is_closed:
            await self.detach(connection)
            return
        connection.send_direct(messages.flags_init_message(flags))
        connection.go_live()

    async def detach(self, connection: Connection) -> None:
        """Remove a connection and stop delivering to it."""
        self._registry.remove(connection.id)
        await connection.close()

    async def detach_all(self) -> None:
        await self._registry.close_all()
