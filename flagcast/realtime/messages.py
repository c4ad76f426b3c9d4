"""
Client message kinds and their wire encoding.

Every message is a JSON text frame: {"type": <kind>, "data": <payload>}.
Messages are encoded once per broadcast and the same text is queued on
every connection.
"""

import json
from typing import Iterable

from ..events.models import FlagChangeEvent, NotificationEvent

BACKLOG = "backlog"
FLAGS_INIT = "flags:init"
NOTIFICATION = "notification"
FLAGS_UPDATE = "flags:update"


def encode_message(kind: str, data) -> str:
    return json.dumps({"type": kind, "data": data})


def backlog_message(events: Iterable[NotificationEvent]) -> str:
    return encode_message(BACKLOG, [event.to_dict() for event in events])


def flags_init_message(flags: dict[str, bool]) -> str:
    return encode_message(FLAGS_INIT, flags)


def notification_message(event: NotificationEvent) -> str:
    return encode_message(NOTIFICATION, event.to_dict())


def flags_update_message(event: FlagChangeEvent) -> str:
    return encode_message(FLAGS_UPDATE, event.to_dict())
