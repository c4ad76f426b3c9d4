"""Tests for the HTTP and WebSocket surface.

Runs the full application with in-memory backends through FastAPI's
TestClient (lifespan included):
- POST /notify accept / reject
- GET and POST /flags
- GET /status and /health
- /ws catch-up handshake followed by live events
- 503 / close codes when the service is unavailable
"""

import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from flagcast.bus import InMemoryCoordinationBus
from flagcast.exceptions import StoreUnavailable
from flagcast.flags import InMemoryFlagStore
from flagcast.main import create_app
from flagcast.service import FlagcastService, reset_service


class _FailingScanStore(InMemoryFlagStore):
    async def scan(self):
        raise StoreUnavailable("scan")


def _make_service(store=None, **kwargs) -> FlagcastService:
    return FlagcastService(
        InMemoryCoordinationBus(),
        store if store is not None else InMemoryFlagStore(),
        **kwargs,
    )


def _wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.01)


@pytest.fixture(autouse=True)
def _clean_service():
    reset_service()
    yield
    reset_service()


@pytest.fixture
def service() -> FlagcastService:
    return _make_service(InMemoryFlagStore({"dark_mode": True}))


@pytest.fixture
def client(service):
    with TestClient(create_app(service=service)) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_ping(self, client):
        response = client.get("/ping")
        assert response.status_code == 200
        assert response.json()["message"] == "pong"

    def test_health_reports_backends(self, client):
        body = client.get("/health").json()
        assert body["ok"] is True
        assert body["services"]["bus"]["backend"] == "memory"
        assert body["services"]["store"]["backend"] == "memory"
        assert body["services"]["fanout"]["running"] is True


# ---------------------------------------------------------------------------
# POST /notify
# ---------------------------------------------------------------------------


class TestNotify:
    def test_accepts_valid_notification(self, client, service):
        response = client.post("/notify", json={"type": "info", "message": "hello"})

        assert response.status_code == 202
        body = response.json()
        assert body["accepted"] is True
        assert body["event"]["kind"] == "info"
        assert body["event"]["message"] == "hello"
        assert body["event"]["source"] == "api"

        _wait_until(lambda: service.current_backlog_size() == 1)
        assert service.replay.snapshot()[0].id == body["event"]["id"]

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "debug", "message": "hello"},
            {"message": "hello"},
            {"type": "info", "message": ""},
            {"type": "info", "message": "   "},
            {"type": "info"},
        ],
    )
    def test_rejects_invalid_notification(self, client, service, payload):
        response = client.post("/notify", json=payload)

        assert response.status_code == 400
        assert service.bus.published == []


# ---------------------------------------------------------------------------
# /flags
# ---------------------------------------------------------------------------


class TestFlags:
    def test_list_flags(self, client):
        response = client.get("/flags")
        assert response.status_code == 200
        assert response.json() == {"dark_mode": True}

    def test_set_flag(self, client):
        response = client.post("/flags", json={"key": "beta_feature", "value": "1"})

        assert response.status_code == 202
        event = response.json()["event"]
        assert event["key"] == "beta_feature"
        assert event["value"] is True
        assert event["old_value"] is False
        assert client.get("/flags").json() == {"dark_mode": True, "beta_feature": True}

    def test_json_float_one_enables_flag(self, client):
        response = client.post(
            "/flags",
            content=b'{"key": "beta_feature", "value": 1.0}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 202
        assert response.json()["event"]["value"] is True

    def test_set_flag_reports_previous_value(self, client):
        event = client.post("/flags", json={"key": "dark_mode", "value": False}).json()["event"]
        assert event["old_value"] is True
        assert event["value"] is False

    @pytest.mark.parametrize("key", ["bad key!", "", None])
    def test_rejects_invalid_key(self, client, service, key):
        response = client.post("/flags", json={"key": key, "value": True})

        assert response.status_code == 400
        assert service.bus.published == []
        assert client.get("/flags").json() == {"dark_mode": True}

    def test_store_failure_is_503(self):
        with TestClient(create_app(service=_make_service(_FailingScanStore()))) as client:
            assert client.get("/flags").status_code == 503


# ---------------------------------------------------------------------------
# /status
# ---------------------------------------------------------------------------


class TestStatus:
    def test_reports_backlog_clients_and_flags(self, client, service):
        client.post("/notify", json={"type": "success", "message": "deployed"})
        _wait_until(lambda: service.current_backlog_size() == 1)

        body = client.get("/status").json()

        assert body["notifications"] == {"backlog_size": 1, "connected_clients": 0}
        assert body["flags"] == {"count": 1, "values": {"dark_mode": True}}

    def test_unavailable_before_startup(self):
        client = TestClient(create_app(service=_make_service()))
        assert client.get("/status").status_code == 503


# ---------------------------------------------------------------------------
# /ws
# ---------------------------------------------------------------------------


class TestWebSocket:
    def test_handshake_then_live_events(self, client, service):
        client.post("/notify", json={"type": "info", "message": "earlier"})
        _wait_until(lambda: service.current_backlog_size() == 1)

        with client.websocket_connect("/ws") as ws:
            backlog = ws.receive_json()
            assert backlog["type"] == "backlog"
            assert [e["message"] for e in backlog["data"]] == ["earlier"]

            init = ws.receive_json()
            assert init == {"type": "flags:init", "data": {"dark_mode": True}}

            client.post("/notify", json={"type": "info", "message": "hello"})
            live = ws.receive_json()
            assert live["type"] == "notification"
            assert live["data"]["message"] == "hello"

    def test_flag_change_is_pushed(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.receive_json()

            client.post("/flags", json={"key": "dark_mode", "value": "0"})

            frames = [ws.receive_json(), ws.receive_json()]
            by_type = {f["type"]: f["data"] for f in frames}
            assert by_type["flags:update"]["key"] == "dark_mode"
            assert by_type["flags:update"]["value"] is False
            assert by_type["notification"]["kind"] == "warning"

    def test_connected_clients_counted(self, client, service):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.receive_json()
            assert client.get("/status").json()["notifications"]["connected_clients"] == 1

        _wait_until(lambda: service.connected_count() == 0)

    def test_rejects_when_full(self):
        service = _make_service(max_connections=1)
        with TestClient(create_app(service=service)) as client:
            with client.websocket_connect("/ws") as ws:
                ws.receive_json()
                with pytest.raises(WebSocketDisconnect) as exc:
                    with client.websocket_connect("/ws"):
                        pass
                assert exc.value.code == 1013

    def test_store_failure_closes_socket(self):
        with TestClient(create_app(service=_make_service(_FailingScanStore()))) as client:
            with client.websocket_connect("/ws") as ws:
                with pytest.raises(WebSocketDisconnect) as exc:
                    ws.receive_json()
                assert exc.value.code == 1011
