"""
Service Tests
=============

HTTP endpoints with the link left disconnected.
"""

import pytest
from fastapi.testclient import TestClient

from mavlink_reader.main import app, get_client
from mavlink_reader.stream.transport import UdpTransport

from conftest import attitude_frame


@pytest.fixture
def api():
    with TestClient(app) as client:
        yield client


class TestEndpoints:
    def test_root(self, api):
        response = api.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "MAVLink Reader"

    def test_health(self, api):
        response = api.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready_when_disconnected(self, api):
        response = api.get("/ready")

        assert response.status_code == 503
        assert response.json()["link_connected"] is False

    def test_attitude_before_samples(self, api):
        body = api.get("/attitude").json()

        assert body["connected"] is False
        assert body["mode"] == "NORMAL"
        assert body["rate_hz"] == 0
        assert body["attitude"] is None

    def test_metrics(self, api):
        body = api.get("/metrics").json()

        assert body["client"]["connected"] is False
        assert "datagrams_received" in body["transport"]

    def test_stream_request_while_disconnected(self, api):
        response = api.post("/streams/request")

        assert response.status_code == 200
        assert response.json()["frames_sent"] == 0

    def test_reset_while_disconnected(self, api):
        body = api.post("/streams/reset").json()

        assert body["frames_sent"] == 0
        assert body["mode"] == "NORMAL"

    def test_disconnect_is_idempotent(self, api):
        assert api.post("/disconnect").status_code == 200
        assert api.post("/disconnect").json()["connected"] is False

    def test_connect_bind_failure(self, api, monkeypatch):
        async def fail_connect(self, host, port):
            self._set_status("UDP bind failed: address in use")
            return False

        monkeypatch.setattr(UdpTransport, "connect", fail_connect)

        response = api.post("/connect", json={"host": "192.168.1.1", "port": 14550})

        assert response.status_code == 503
        assert response.json()["status"].startswith("UDP bind failed")

    def test_connect_validates_body(self, api):
        response = api.post("/connect", json={"host": "", "port": 14550})

        assert response.status_code == 422


class TestRawData:
    """Datagram hex preview and clearing."""

    def test_raw_before_data(self, api):
        body = api.get("/raw").json()

        assert body == {"raw_data": "", "preview_bytes": 64}

    def test_raw_after_datagram(self, api):
        frame = attitude_frame(timestamp_ms=1000)
        get_client().feed(frame)

        body = api.get("/raw").json()

        assert body["raw_data"] == frame.hex(" ")

    def test_clear_data(self, api):
        get_client().feed(attitude_frame(timestamp_ms=1000))

        response = api.post("/data/clear")

        assert response.status_code == 200
        assert response.json() == {"raw_data": ""}
        assert api.get("/raw").json()["raw_data"] == ""
