"""
Test suite for the HTTP control surface.

Uses FastAPI TestClient against create_app() with the global link service
replaced by one bound to loopback.
"""

import socket

import pytest
from fastapi.testclient import TestClient

from src.crtp_link.core import dependencies
from src.crtp_link.core.app import create_app
from src.crtp_link.services.drone_link_service import DroneLinkService


@pytest.fixture
def link_service(loopback_config):
    """Install a loopback link service as the global dependency."""
    service = DroneLinkService(loopback_config)
    dependencies._link_service = service
    return service


@pytest.fixture
def client(link_service):
    """Create test client; the context keeps one event loop for all requests."""
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def open_client(client):
    response = client.post("/api/link/open")
    assert response.status_code == 200
    return client


class TestHealthRoutes:
    """Test health endpoint."""

    def test_health_with_closed_link(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["link"]["open"] is False
        assert data["app"] == "CRTP-Link"


class TestLinkRoutes:
    """Test link session endpoints."""

    def test_get_link_summary(self, client):
        response = client.get("/api/link")

        assert response.status_code == 200
        data = response.json()
        assert data["open"] is False
        assert data["connection_state"] == "disconnected"
        assert data["peer"] == "127.0.0.1:9"

    def test_open_and_close(self, client):
        response = client.post("/api/link/open")
        assert response.status_code == 200
        assert response.json()["open"] is True

        response = client.post("/api/link/close")
        assert response.status_code == 200
        assert response.json()["open"] is False

    def test_open_bind_failure_returns_503(self, loopback_config):
        blocker = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        blocker.bind(("127.0.0.1", 0))
        loopback_config.link.LINK_LOCAL_PORT = blocker.getsockname()[1]
        dependencies._link_service = DroneLinkService(loopback_config)
        try:
            with TestClient(create_app()) as client:
                response = client.post("/api/link/open")
                summary = client.get("/api/link").json()

            assert response.status_code == 503
            assert response.json()["detail"].startswith("Cannot bind 127.0.0.1:")
            assert summary["open"] is False
        finally:
            blocker.close()

    def test_detailed_status(self, open_client):
        response = open_client.get("/api/link/status")

        assert response.status_code == 200
        data = response.json()
        assert data["transport"]["state"] == "active"
        assert data["heartbeat"]["is_running"] is True

    def test_operations_require_open_link(self, client):
        assert client.post("/api/link/voltage/sample").status_code == 409
        assert client.post("/api/link/height-sensor/detect").status_code == 409
        assert client.post("/api/link/commander", json={}).status_code == 409

    def test_send_commander(self, open_client):
        response = open_client.post(
            "/api/link/commander", json={"roll": 5.0, "pitch": 0.0, "yaw": 0.0, "thrust": 1000}
        )
        assert response.status_code == 200
        assert response.json() == {"sent": True}

    def test_send_commander_validates_thrust(self, open_client):
        response = open_client.post("/api/link/commander", json={"thrust": 70000})
        assert response.status_code == 422

    def test_sample_voltage_is_accepted(self, open_client):
        response = open_client.post("/api/link/voltage/sample")
        assert response.status_code == 202
        assert response.json()["status"] == "sampling"

    def test_voltage_monitoring_toggle(self, open_client):
        response = open_client.put(
            "/api/link/voltage/monitoring", json={"enabled": True, "period_s": 2.0}
        )
        assert response.status_code == 200
        assert response.json()["sampling"] is True
        assert response.json()["period_s"] == 2.0

        response = open_client.put("/api/link/voltage/monitoring", json={"enabled": False})
        assert response.json()["sampling"] is False

    def test_height_sensor_detection_without_drone(self, open_client):
        response = open_client.post("/api/link/height-sensor/detect")

        assert response.status_code == 200
        assert response.json() == {"has_height_sensor": False}


class TestFlightRoutes:
    """Test flight command endpoints."""

    def test_start_requires_open_link(self, client):
        assert client.post("/api/flight/start").status_code == 409

    def test_start_and_stop(self, open_client):
        response = open_client.post("/api/flight/start")
        assert response.status_code == 200
        assert response.json()["mode"] == "arming"
        assert response.json()["is_running"] is True

        response = open_client.post("/api/flight/stop")
        assert response.status_code == 200
        assert response.json()["mode"] == "idle"

    def test_set_sticks(self, client, link_service):
        response = client.put(
            "/api/flight/sticks", json={"roll": 0.5, "thrust": 0.25, "yaw_enabled": True}
        )

        assert response.status_code == 200
        assert link_service.flight.sticks.roll == 0.5
        assert link_service.flight.sticks.thrust == 0.25
        assert link_service.flight.sticks.yaw_enabled is True

    def test_set_sticks_validates_range(self, client):
        assert client.put("/api/flight/sticks", json={"thrust": 1.5}).status_code == 422

    def test_set_trim(self, client, link_service):
        response = client.put("/api/flight/trim", json={"roll": 0.1, "pitch": -0.05})

        assert response.status_code == 200
        assert link_service.flight.trim.roll == 0.1
        assert link_service.flight.trim.pitch == -0.05

    def test_height_hold_requires_armed_vehicle(self, open_client):
        response = open_client.post("/api/flight/height-hold", json={"height_m": 0.5})

        assert response.status_code == 409
        assert "Cannot enable height hold in mode idle" in response.json()["detail"]

    def test_height_hold_requires_open_link(self, client):
        response = client.post("/api/flight/height-hold", json={"height_m": 0.5})
        assert response.status_code == 409

    def test_height_hold_validates_height(self, open_client):
        response = open_client.post("/api/flight/height-hold", json={"height_m": 0.0})
        assert response.status_code == 422

    def test_land_without_height_hold_conflicts(self, open_client):
        assert open_client.post("/api/flight/land").status_code == 409

    def test_emergency_stop(self, open_client):
        open_client.post("/api/flight/start")

        response = open_client.post("/api/flight/emergency-stop")

        assert response.status_code == 200
        assert response.json()["stop_frames_sent"] == 5
        assert response.json()["mode"] == "arming"

    def test_get_flight_status(self, client):
        response = client.get("/api/flight")
        assert response.status_code == 200
        assert response.json()["mode"] == "idle"
