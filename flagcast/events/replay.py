"""
Bounded replay buffer for recent notifications.

New clients receive a snapshot of this buffer before any live message.
The buffer lives only in process memory and starts empty on restart.
"""

import logging
from collections import deque

from .models import NotificationEvent

logger = logging.getLogger("flagcast.events.replay")


class ReplayBuffer:
    """
    Ring of the most recently appended notifications.

    Holds at most ``capacity`` events in arrival order; appending beyond
    capacity evicts the oldest.
    """

    def __init__(self, capacity: int = 20):
        if capacity < 1:
            raise ValueError(f"Replay buffer capacity must be >= 1, got {capacity}")
        self._events: deque[NotificationEvent] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._events.maxlen

    def append(self, event: NotificationEvent) -> None:
        """Append an event, evicting the oldest when full."""
        if len(self._events) == self._events.maxlen:
            logger.debug("Replay buffer full, evicting %s", self._events[0].id)
        self._events.append(event)

    def snapshot(self) -> tuple[NotificationEvent, ...]:
        """Immutable copy of the buffer, oldest first."""
        return tuple(self._events)

    @property
    def size(self) -> int:
        """Number of buffered events."""
        return len(self._events)

    def __len__(self) -> int:
        return len(self._events)
