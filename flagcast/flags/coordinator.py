"""
Flag coordinator.

The only write path to the flag store. Every mutation is a
read-modify-publish under a per-key lock, emitting one flag change and
one derived notification on the coordination bus.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from ..bus.codec import encode_flag_change, encode_notification
from ..bus.protocols import CoordinationBus
from ..events.models import FlagChangeEvent
from ..events.validation import coerce_flag_value, validate_flag_key
from .store import FlagStore

logger = logging.getLogger("flagcast.flags.coordinator")


class FlagCoordinator:
    """
    Serializes flag mutations and announces them on the bus.

    Mutations of the same key run one at a time so the reported old value
    is always the value that was actually overwritten. Different keys
    proceed in parallel.
    """

    def __init__(
        self,
        store: FlagStore,
        bus: CoordinationBus,
        flags_topic: str = "flags:updates",
        notifications_topic: str = "notifications",
    ):
        self._store = store
        self._bus = bus
        self._flags_topic = flags_topic
        self._notifications_topic = notifications_topic
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _key_lock(self, key: str) -> AsyncIterator[None]:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        lock = self._locks[key]
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def get(self, key: str) -> bool:
        """
        Current value of a flag. Unknown flags are False.

        Raises:
            InvalidKey: If the key is malformed.
            StoreUnavailable: If the store cannot be reached.
        """
        value = await self._store.get(validate_flag_key(key))
        return bool(value)

    async def set(self, key: str, value: Any) -> FlagChangeEvent:
        """
        Set a flag and publish the change.

        Args:
            key: Flag key matching [A-Za-z0-9_.-]+.
            value: New value, coerced with coerce_flag_value().

        Returns:
            The published FlagChangeEvent.

        Raises:
            InvalidKey: If the key is malformed. Nothing is written.
            StoreUnavailable: If the store cannot be reached.
            BusUnavailable: If the change was stored but not published.
        """
        key = validate_flag_key(key)
        new_value = coerce_flag_value(value)

        async with self._key_lock(key):
            previous = await self._store.swap(key, new_value)
            event = FlagChangeEvent(key=key, value=new_value, old_value=bool(previous))

            # Published under the lock so bus order matches store order
            await self._bus.publish(self._flags_topic, encode_flag_change(event))
            await self._bus.publish(
                self._notifications_topic,
                encode_notification(event.to_notification()),
            )

        logger.info(
            "Flag %s set to %s (was %s%s)",
            key, new_value, event.old_value, "" if previous is not None else ", unset",
        )
        return event

    async def list(self) -> dict[str, bool]:
        """
        Every stored flag.

        Raises:
            StoreUnavailable: If the store cannot be reached.
        """
        return await self._store.scan()
