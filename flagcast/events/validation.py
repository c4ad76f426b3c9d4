"""
Boundary validation for inbound notifications and flag mutations.

Everything here runs before a payload reaches the coordination bus.
"""

import re
from typing import Any, Optional

from ..exceptions import InvalidInput, InvalidKey
from .models import NotificationEvent, NotificationKind

FLAG_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")

# Exact matches only; "TRUE", "yes" and 2 are all false.
_TRUTHY_STRINGS = frozenset({"true", "1"})


def validate_flag_key(key: Any) -> str:
    """Return the key unchanged or raise InvalidKey."""
    if not isinstance(key, str) or not FLAG_KEY_PATTERN.fullmatch(key):
        raise InvalidKey(key)
    return key


def coerce_flag_value(value: Any) -> bool:
    """
    Coerce a client-supplied flag value to a boolean.

    Accepts True, "true", 1 (or 1.0) and "1" as true. Anything else is false,
    never an error.
    """
    if isinstance(value, bool):
        return value
    # JSON numbers: 1 and 1.0 are the same value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value in _TRUTHY_STRINGS
    return False


def build_notification(
    kind: Any,
    message: Any,
    source: Optional[str] = None,
) -> NotificationEvent:
    """
    Validate producer input and create a new notification.

    Args:
        kind: One of info, success, warning, error.
        message: Non-empty human-readable text.
        source: Producer identity.

    Raises:
        InvalidInput: If kind or message is invalid.
    """
    try:
        parsed_kind = NotificationKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in NotificationKind)
        raise InvalidInput("type", f"Must be one of: {valid}") from None

    if not isinstance(message, str) or not message.strip():
        raise InvalidInput("message", "Must be a non-empty string")

    return NotificationEvent(kind=parsed_kind, message=message, source=source)
