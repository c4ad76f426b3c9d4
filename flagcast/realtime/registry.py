"""
Connection registry for attached clients.

Each Connection owns a bounded outbound queue drained by its own writer
task, so a slow or broken client never blocks the shared fan-out loop.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, Protocol
from uuid import uuid4

from ..exceptions import ConnectionLimitReached

logger = logging.getLogger("flagcast.realtime.registry")

# backlog + flags:init, queued ahead of anything held during sync
HANDSHAKE_FRAMES = 2


class ConnectionState(str, Enum):
    """Lifecycle of a client connection."""

    CONNECTING = "connecting"
    SYNCHRONIZING = "synchronizing"
    LIVE = "live"
    CLOSED = "closed"


class Transport(Protocol):
    """Ordered delivery of text frames to one client (e.g. a WebSocket)."""

    async def send_text(self, data: str) -> None:
        ...


class Connection:
    """
    One attached client.

    Broadcasts are offered with deliver():
    - CONNECTING: ignored, the replay snapshot taken at sync start covers them
    - SYNCHRONIZING: held in arrival order until go_live()
    - LIVE: queued for the writer, dropped if the queue is full
    - CLOSED: dropped silently
    """

    def __init__(
        self,
        transport: Transport,
        queue_size: int = 256,
        connection_id: Optional[str] = None,
    ):
        self.transport = transport
        self.id = connection_id or uuid4().hex
        self.state = ConnectionState.CONNECTING
        self.delivered = 0
        self.dropped = 0
        self._queue_size = queue_size
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size + HANDSHAKE_FRAMES)
        self._held: list[str] = []
        self._writer: Optional[asyncio.Task] = None

    @property
    def is_live(self) -> bool:
        return self.state == ConnectionState.LIVE

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    def begin_sync(self) -> None:
        """Enter SYNCHRONIZING and start the writer task."""
        if self.state != ConnectionState.CONNECTING:
            raise RuntimeError(f"Cannot synchronize connection in state {self.state.value}")
        self.state = ConnectionState.SYNCHRONIZING
        self._writer = asyncio.create_task(
            self._write_loop(), name=f"flagcast-writer-{self.id[:8]}"
        )

    def send_direct(self, text: str) -> None:
        """Queue a handshake message ahead of any held broadcast."""
        if self.state != ConnectionState.SYNCHRONIZING:
            raise RuntimeError(f"Handshake message outside synchronization ({self.state.value})")
        self._offer(text)

    def go_live(self) -> None:
        """Release held broadcasts and start receiving live ones."""
        if self.state != ConnectionState.SYNCHRONIZING:
            raise RuntimeError(f"Cannot go live from state {self.state.value}")
        held, self._held = self._held, []
        for text in held:
            self._offer(text)
        self.state = ConnectionState.LIVE
        logger.debug("Connection %s live (%d held messages released)", self.id[:8], len(held))

    def deliver(self, text: str) -> bool:
        """
        Offer a broadcast message without blocking.

        Returns:
            True if the message was queued or held for this connection.
        """
        if self.state == ConnectionState.LIVE:
            return self._offer(text)
        if self.state == ConnectionState.SYNCHRONIZING:
            if len(self._held) >= self._queue_size:
                self._record_drop()
                return False
            self._held.append(text)
            return True
        return False

    def _offer(self, text: str) -> bool:
        try:
            self._queue.put_nowait(text)
        except asyncio.QueueFull:
            self._record_drop()
            return False
        return True

    def _record_drop(self) -> None:
        self.dropped += 1
        if self.dropped == 1 or self.dropped % 100 == 0:
            logger.warning(
                "Connection %s cannot keep up, dropped %d messages",
                self.id[:8], self.dropped,
            )

    async def _write_loop(self) -> None:
        while True:
            text = await self._queue.get()
            try:
                await self.transport.send_text(text)
                self.delivered += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.info("Connection %s send failed, closing: %s", self.id[:8], e)
                self.state = ConnectionState.CLOSED
                self._discard_pending()
                return
            finally:
                self._queue.task_done()

    def _discard_pending(self) -> None:
        self._held.clear()
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    async def flush(self) -> None:
        """Wait until every queued message has been written or discarded."""
        await self._queue.join()

    async def close(self) -> None:
        """Enter CLOSED, stop the writer and drop anything still queued."""
        self.state = ConnectionState.CLOSED
        writer, self._writer = self._writer, None
        if writer is not None and not writer.done():
            writer.cancel()
            await asyncio.gather(writer, return_exceptions=True)
        self._discard_pending()


class ConnectionRegistry:
    """
    Tracks attached connections and broadcasts to them.

    Connections are added while still CONNECTING; Connection.deliver()
    decides whether each one is eligible for a given broadcast.
    """

    def __init__(self, max_connections: int = 1000):
        self._connections: dict[str, Connection] = {}
        self._max_connections = max_connections

    @property
    def is_full(self) -> bool:
        return len(self._connections) >= self._max_connections

    def add(self, connection: Connection) -> None:
        """
        Register a connection.

        Raises:
            ConnectionLimitReached: If max_connections are already registered.
        """
        if self.is_full:
            logger.warning("Rejecting client %s, at %d connections", connection.id[:8], self._max_connections)
            raise ConnectionLimitReached(self._max_connections)
        self._connections[connection.id] = connection
        logger.info("Client connected: %s (total: %d)", connection.id[:8], len(self._connections))

    def remove(self, connection_id: str) -> Optional[Connection]:
        connection = self._connections.pop(connection_id, None)
        if connection is not None:
            logger.info(
                "Client disconnected: %s (total: %d)",
                connection_id[:8], len(self._connections),
            )
        return connection

    def broadcast(self, text: str) -> int:
        """
        Offer a message to every connection without blocking.

        Returns:
            Number of connections that accepted the message.
        """
        accepted = 0
        for connection in list(self._connections.values()):
            if connection.deliver(text):
                accepted += 1
        return accepted

    @property
    def live_count(self) -> int:
        return sum(1 for c in self._connections.values() if c.is_live)

    def __len__(self) -> int:
        return len(self._connections)

    async def close_all(self) -> None:
        """Close and remove every connection (service shutdown)."""
        connections = list(self._connections.values())
        self._connections.clear()
        for connection in connections:
            await connection.close()
        if connections:
            logger.info("Closed %d connections", len(connections))
