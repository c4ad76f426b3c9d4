"""
Event types distributed to connected clients.

Defines the notification and flag-change events carried on the
coordination bus, plus their dict form used on the bus and the wire.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4


class NotificationKind(str, Enum):
    """Severity of a notification."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing Z."""
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class NotificationEvent:
    """A single append-only notification."""

    kind: NotificationKind
    message: str
    id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=_utcnow)
    source: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for the bus and client messages."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationEvent":
        """
        Rebuild an event from its dict form.

        Raises:
            ValueError: If a field is missing or has the wrong shape.
        """
        try:
            event_id = data["id"]
            kind = NotificationKind(data["kind"])
            message = data["message"]
            created_at = _parse_timestamp(data["created_at"])
        except KeyError as e:
            raise ValueError(f"missing field {e}") from e

        if not isinstance(event_id, str) or not event_id:
            raise ValueError("id must be a non-empty string")
        if not isinstance(message, str) or not message:
            raise ValueError("message must be a non-empty string")

        source = data.get("source")
        if source is not None and not isinstance(source, str):
            raise ValueError("source must be a string")

        return cls(
            kind=kind,
            message=message,
            id=event_id,
            created_at=created_at,
            source=source,
        )


@dataclass(frozen=True)
class FlagChangeEvent:
    """A committed flag mutation."""

    key: str
    value: bool
    old_value: bool
    changed_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for the bus and client messages."""
        return {
            "key": self.key,
            "value": self.value,
            "old_value": self.old_value,
            "changed_at": self.changed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FlagChangeEvent":
        """
        Rebuild an event from its dict form.

        Raises:
            ValueError: If a field is missing or has the wrong shape.
        """
        try:
            key = data["key"]
            value = data["value"]
            old_value = data["old_value"]
            changed_at = _parse_timestamp(data["changed_at"])
        except KeyError as e:
            raise ValueError(f"missing field {e}") from e

        if not isinstance(key, str) or not key:
            raise ValueError("key must be a non-empty string")
        if not isinstance(value, bool) or not isinstance(old_value, bool):
            raise ValueError("value and old_value must be booleans")

        return cls(key=key, value=value, old_value=old_value, changed_at=changed_at)

    def to_notification(self) -> NotificationEvent:
        """Build the notification announcing this change."""
        state = "enabled" if self.value else "disabled"
        return NotificationEvent(
            kind=NotificationKind.SUCCESS if self.value else NotificationKind.WARNING,
            message=f'Feature flag "{self.key}" has been {state}',
            created_at=self.changed_at,
            source="flags",
        )
