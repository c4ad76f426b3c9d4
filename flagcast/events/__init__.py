"""Notification and flag-change events, their validation and replay buffer."""

from .models import FlagChangeEvent, NotificationEvent, NotificationKind
from .replay import ReplayBuffer
from .validation import (
    FLAG_KEY_PATTERN,
    build_notification,
    coerce_flag_value,
    validate_flag_key,
)

__all__ = [
    "NotificationEvent",
    "NotificationKind",
    "FlagChangeEvent",
    "ReplayBuffer",
    "FLAG_KEY_PATTERN",
    "build_notification",
    "coerce_flag_value",
    "validate_flag_key",
]
