"""
JSON encoding of events carried on the coordination bus.
"""

import json
from typing import Any

from ..events.models import FlagChangeEvent, NotificationEvent
from ..exceptions import MalformedBusPayload


def encode_notification(event: NotificationEvent) -> str:
    return json.dumps(event.to_dict())


def encode_flag_change(event: FlagChangeEvent) -> str:
    return json.dumps(event.to_dict())


def _load_object(topic: str, payload: Any) -> dict[str, Any]:
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedBusPayload(topic, f"not UTF-8: {e}") from e
    if not isinstance(payload, str):
        raise MalformedBusPayload(topic, f"unexpected payload type {type(payload).__name__}")
    try:
        data = json.loads(payload)
    except (ValueError, RecursionError) as e:
        raise MalformedBusPayload(topic, f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedBusPayload(topic, "expected a JSON object")
    return data


def decode_notification(topic: str, payload: Any) -> NotificationEvent:
    """
    Decode a notification payload.

    Raises:
        MalformedBusPayload: If the payload is not a valid notification.
    """
    data = _load_object(topic, payload)
    try:
        return NotificationEvent.from_dict(data)
    except ValueError as e:
        raise MalformedBusPayload(topic, str(e)) from e


def decode_flag_change(topic: str, payload: Any) -> FlagChangeEvent:
    """
    Decode a flag change payload.

    Raises:
        MalformedBusPayload: If the payload is not a valid flag change.
    """
    data = _load_object(topic, payload)
    try:
        return FlagChangeEvent.from_dict(data)
    except ValueError as e:
        raise MalformedBusPayload(topic, str(e)) from e
