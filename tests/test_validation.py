"""Tests for boundary validation and the bus codec.

Covers:
- coerce_flag_value() permissive boolean coercion
- validate_flag_key() identifier pattern
- build_notification() kind/message checks
- decode_notification() / decode_flag_change() rejecting malformed payloads
"""

import json

import pytest

from flagcast.bus import (
    decode_flag_change,
    decode_notification,
    encode_flag_change,
    encode_notification,
)
from flagcast.events import (
    FlagChangeEvent,
    NotificationKind,
    build_notification,
    coerce_flag_value,
    validate_flag_key,
)
from flagcast.exceptions import InvalidInput, InvalidKey, MalformedBusPayload


# ---------------------------------------------------------------------------
# Boolean coercion
# ---------------------------------------------------------------------------


class TestCoerceFlagValue:
    @pytest.mark.parametrize("value", [True, "true", 1, "1", 1.0])
    def test_truthy_encodings(self, value):
        assert coerce_flag_value(value) is True

    @pytest.mark.parametrize(
        "value",
        [False, "false", 0, "0", "TRUE", "True", "yes", "on", 2, -1, 0.5, 1.5, None, [], {}, " true"],
    )
    def test_everything_else_is_false(self, value):
        assert coerce_flag_value(value) is False


# ---------------------------------------------------------------------------
# Flag keys
# ---------------------------------------------------------------------------


class TestValidateFlagKey:
    @pytest.mark.parametrize("key", ["beta_feature", "A.b-c_9", "x", "v1.2.3"])
    def test_valid(self, key):
        assert validate_flag_key(key) == key

    @pytest.mark.parametrize("key", ["bad key!", "", "a/b", "flag*", "naïve", None, 42])
    def test_invalid(self, key):
        with pytest.raises(InvalidKey):
            validate_flag_key(key)

    def test_invalid_key_is_invalid_input(self):
        with pytest.raises(InvalidInput):
            validate_flag_key("bad key!")


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class TestBuildNotification:
    @pytest.mark.parametrize("kind", ["info", "success", "warning", "error"])
    def test_valid_kinds(self, kind):
        event = build_notification(kind, "hello", source="api")
        assert event.kind == NotificationKind(kind)
        assert event.message == "hello"
        assert event.source == "api"
        assert event.id

    def test_ids_are_unique(self):
        first = build_notification("info", "a")
        second = build_notification("info", "a")
        assert first.id != second.id

    @pytest.mark.parametrize("kind", ["debug", "", None, "INFO"])
    def test_invalid_kind(self, kind):
        with pytest.raises(InvalidInput) as exc:
            build_notification(kind, "hello")
        assert exc.value.field == "type"

    @pytest.mark.parametrize("message", ["", "   ", None, 5])
    def test_invalid_message(self, message):
        with pytest.raises(InvalidInput) as exc:
            build_notification("info", message)
        assert exc.value.field == "message"


class TestFlagChangeNotification:
    def test_enabled_is_success(self):
        event = FlagChangeEvent(key="beta", value=True, old_value=False)
        note = event.to_notification()
        assert note.kind == NotificationKind.SUCCESS
        assert note.source == "flags"
        assert note.message == 'Feature flag "beta" has been enabled'

    def test_disabled_is_warning(self):
        note = FlagChangeEvent(key="beta", value=False, old_value=True).to_notification()
        assert note.kind == NotificationKind.WARNING
        assert note.message == 'Feature flag "beta" has been disabled'


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


class TestDecodeNotification:
    def test_decodes_encoded_event(self):
        event = build_notification("warning", "disk almost full", source="ops")
        decoded = decode_notification("notifications", encode_notification(event))
        assert decoded == event

    def test_accepts_bytes(self):
        event = build_notification("info", "hi")
        payload = encode_notification(event).encode("utf-8")
        assert decode_notification("notifications", payload).id == event.id

    @pytest.mark.parametrize(
        "payload",
        [
            '{"id": "1", "kind": "info", "mess',
            "[]",
            "null",
            json.dumps({"kind": "info", "message": "x", "created_at": "2026-01-01T00:00:00Z"}),
            json.dumps({"id": "1", "kind": "loud", "message": "x", "created_at": "2026-01-01T00:00:00Z"}),
            json.dumps({"id": "1", "kind": "info", "message": "", "created_at": "2026-01-01T00:00:00Z"}),
            json.dumps({"id": "1", "kind": "info", "message": "x", "created_at": "yesterday"}),
            b"\xff\xfe",
            "[" * 200000,
        ],
    )
    def test_malformed(self, payload):
        with pytest.raises(MalformedBusPayload):
            decode_notification("notifications", payload)


class TestDecodeFlagChange:
    def test_decodes_encoded_event(self):
        event = FlagChangeEvent(key="beta", value=True, old_value=False)
        assert decode_flag_change("flags:updates", encode_flag_change(event)) == event

    @pytest.mark.parametrize(
        "data",
        [
            {"key": "beta", "value": "true", "old_value": False, "changed_at": "2026-01-01T00:00:00Z"},
            {"key": "beta", "value": True, "changed_at": "2026-01-01T00:00:00Z"},
            {"key": "", "value": True, "old_value": False, "changed_at": "2026-01-01T00:00:00Z"},
        ],
    )
    def test_malformed(self, data):
        with pytest.raises(MalformedBusPayload):
            decode_flag_change("flags:updates", json.dumps(data))
