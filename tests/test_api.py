import asyncio
import re
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from jointstream.api.main import create_app
from jointstream.common.config import AppConfig
from jointstream.common.exceptions import CommunicationError, ConfigError, ReadError


@pytest.fixture
def config(endpoint):
    return AppConfig(device=endpoint)


@pytest.fixture
def app(config, plc):
    return create_app(config, transport_factory=plc.factory)


ISO_MS_UTC = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z")


def receive_event(ws, event, limit=50):
    for _ in range(limit):
        message = ws.receive_json()
        if message["event"] == event:
            return message
    raise AssertionError(f"no {event} event received")


def test_health_reports_link_state(app, plc):
    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["plcConnected"] is True
    assert body["connectionAttempts"] == 0
    datetime.fromisoformat(body["serverTime"].replace("Z", "+00:00"))


def test_health_has_no_side_effects(app, plc):
    plc.connect_error = CommunicationError("refused")

    with TestClient(app) as client:
        for _ in range(3):
            body = client.get("/health").json()

    assert body["plcConnected"] is False
    assert body["connectionAttempts"] == 1
    assert plc.connect_calls == 1
    assert plc.read_calls == []


def test_read_data_success(app, joints):
    with TestClient(app) as client:
        body = client.get("/read-data").json()

    assert body["success"] is True
    assert "message" not in body
    data = body["data"]
    assert [data[f"joint{i}"] for i in range(1, 7)] == joints
    assert data["isMockData"] is False
    assert ISO_MS_UTC.fullmatch(data["timestamp"])


def test_read_data_failure_is_reported(app, plc):
    with TestClient(app) as client:
        plc.read_error = ReadError("illegal data address")
        body = client.get("/read-data").json()

    assert body["success"] is False
    assert "illegal data address" in body["message"]
    assert "data" not in body


def test_read_data_when_attempts_exhausted(config, plc):
    config.sampling.max_connect_attempts = 1
    plc.connect_error = CommunicationError("refused")
    app = create_app(config, transport_factory=plc.factory)

    with TestClient(app) as client:
        body = client.get("/read-data").json()

    assert body["success"] is False
    assert "exhausted" in body["message"]
    assert plc.connect_calls == 1


def test_reconnect_resets_counter(app, plc):
    plc.connect_error = CommunicationError("refused")

    with TestClient(app) as client:
        failed = client.post("/reconnect").json()
        plc.connect_error = None
        ok = client.post("/reconnect").json()
        health = client.get("/health").json()

    assert failed["success"] is False
    assert failed["connectionAttempts"] == 2
    assert ok == {
        "success": True,
        "message": "PLC connected",
        "plcConnected": True,
        "connectionAttempts": 0,
    }
    assert health["plcConnected"] is True


def test_status_endpoint(app):
    with TestClient(app) as client:
        body = client.get("/status").json()

    assert body["link"]["connected"] is True
    assert body["link"]["endpoint"] == "127.0.0.1:5020"
    assert body["subscribers"] == 0


def test_shutdown_closes_session(app, plc):
    with TestClient(app):
        pass

    assert plc.transports[0].is_connected is False
    assert app.state.runtime.link.connected is False


def test_no_reads_after_shutdown(app, plc):
    with TestClient(app):
        pass

    sample = asyncio.run(app.state.runtime.sampler.sample())

    assert sample is None
    assert plc.connect_calls == 1
    assert plc.read_calls == []


def test_websocket_stream(app, joints):
    with TestClient(app) as client:
        with client.websocket_connect("/ws?interval_ms=50") as ws:
            status = ws.receive_json()
            data = receive_event(ws, "robotData")

    assert status == {
        "event": "connectionStatus",
        "data": {"connected": True, "message": "PLC connected"},
    }
    assert [data["data"][f"joint{i}"] for i in range(1, 7)] == joints
    assert data["data"]["isMockData"] is False
    assert ISO_MS_UTC.fullmatch(data["data"]["timestamp"])


def test_websocket_request_data(app, plc):
    with TestClient(app) as client:
        with client.websocket_connect("/ws?interval_ms=60000") as ws:
            ws.receive_json()
            ws.send_json({"event": "requestData"})
            message = receive_event(ws, "robotData")

    assert message["data"]["joint1"] == 10.0
    assert len(plc.read_calls) >= 1


def test_websocket_reports_link_drop(app, plc):
    with TestClient(app) as client:
        with client.websocket_connect("/ws?interval_ms=50") as ws:
            assert ws.receive_json()["data"]["connected"] is True
            plc.read_error = ReadError("no response")
            message = receive_event(ws, "connectionStatus")

    assert message["data"]["connected"] is False
    assert "no response" in message["data"]["message"]


def test_websocket_detaches_on_close(app):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            assert len(app.state.runtime.registry) == 1
        # Next request runs after the server-side handler cleaned up
        client.get("/health")

    assert len(app.state.runtime.registry) == 0


def test_websocket_rejects_invalid_interval(app):
    with TestClient(app) as client:
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws?interval_ms=0") as ws:
                ws.receive_json()


def test_app_rejects_short_register_block(plc):
    config = AppConfig()
    config.sampling.word_count = 4

    with pytest.raises(ConfigError):
        create_app(config, transport_factory=plc.factory)
