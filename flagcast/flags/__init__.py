"""Feature flag storage and the coordinator that mutates it."""

from .coordinator import FlagCoordinator
from .store import FlagStore, InMemoryFlagStore, RedisFlagStore

__all__ = [
    "FlagCoordinator",
    "FlagStore",
    "InMemoryFlagStore",
    "RedisFlagStore",
]
