"""Real-time fan-out of events to connected clients."""

from .engine import FanoutEngine
from .messages import BACKLOG, FLAGS_INIT, FLAGS_UPDATE, NOTIFICATION
from .registry import Connection, ConnectionRegistry, ConnectionState, Transport

__all__ = [
    "FanoutEngine",
    "Connection",
    "ConnectionRegistry",
    "ConnectionState",
    "Transport",
    "BACKLOG",
    "FLAGS_INIT",
    "FLAGS_UPDATE",
    "NOTIFICATION",
]
