"""
Coordination bus for sharing events between service instances.

Provides:
- Redis pub/sub bus for multi-instance deployments
- In-memory bus for a single instance and tests
- JSON codec for bus payloads
"""

from .codec import (
    decode_flag_change,
    decode_notification,
    encode_flag_change,
    encode_notification,
)
from .memory import InMemoryCoordinationBus, InMemorySubscription
from .protocols import BusSubscription, CoordinationBus
from .redis_bus import RedisCoordinationBus, RedisSubscription

__all__ = [
    "BusSubscription",
    "CoordinationBus",
    "InMemoryCoordinationBus",
    "InMemorySubscription",
    "RedisCoordinationBus",
    "RedisSubscription",
    "decode_flag_change",
    "decode_notification",
    "encode_flag_change",
    "encode_notification",
]
