"""Tests for the metrics API."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from salesmon.apps.dashboard import create_app, status_payload
from salesmon.monitoring.events import MonitorEvent


@pytest.fixture
def collected(monitor, fake_system):
    """Monitor with one persisted cycle and an open CPU alert."""
    fake_system.cpu = 95.0
    monitor.store.ensure_directory()
    monitor.track_message(response_time=200, queue_size=3, active_chats=2)
    asyncio.run(monitor.collect_metrics())
    return monitor


@pytest.fixture
def client(collected):
    with TestClient(create_app(collected)) as client:
        yield client


def test_status_payload_shape(collected):
    """Test status matches the admin panel payload."""
    payload = status_payload(collected)
    assert payload["success"] is True
    data = payload["data"]
    assert set(data) == {"system", "application", "services", "alerts"}
    assert data["application"] == {"messageCount": 1, "errorCount": 0, "queueSize": 3, "activeChats": 2}
    assert data["services"]["monitoring"] == "stopped"
    assert [a["id"] for a in data["alerts"]] == ["threshold_cpu"]


def test_status_endpoint(client):
    """Test GET /api/status."""
    response = client.get("/api/status")
    assert response.status_code == 200
    assert response.json()["data"]["system"]["cpu"] == 95.0


def test_metrics_endpoint(client):
    """Test GET /api/metrics returns the camelCase snapshot."""
    body = client.get("/api/metrics").json()
    assert body["application"]["messageCount"] == 1
    assert body["application"]["responseTime"]["avg"] == 200
    assert "tokenCount" in body["ai"]


def test_alerts_endpoint(client):
    """Test GET /api/alerts lists open alerts."""
    alerts = client.get("/api/alerts").json()
    assert len(alerts) == 1
    assert alerts[0]["type"] == "threshold"
    assert alerts[0]["metric"] == "cpu"
    assert alerts[0]["resolved"] is False


def test_history_endpoint(client, collected):
    """Test GET /api/metrics/history returns persisted snapshots."""
    body = client.get("/api/metrics/history", params={"period": "1h"}).json()
    assert body["success"] is True
    metrics = body["data"]["metrics"]
    assert len(metrics) == 1
    assert metrics[0]["timestamp"] == collected.get_metrics().timestamp


def test_history_endpoint_excludes_old_snapshots(client, collected, clock):
    """Test snapshots older than the period are left out."""
    clock.advance(2 * 60 * 60 * 1000)
    body = client.get("/api/metrics/history", params={"period": "1h"}).json()
    assert body["data"]["metrics"] == []


def test_history_endpoint_rejects_bad_limit(client):
    """Test limit is validated."""
    assert client.get("/api/metrics/history", params={"limit": 0}).status_code == 422


def test_websocket_initial_update_and_ping(client):
    """Test the socket sends current state and answers ping."""
    with client.websocket_connect("/ws") as ws:
        initial = ws.receive_json()
        assert initial["type"] == "update"
        assert initial["data"]["application"]["messageCount"] == 1

        ws.send_text("ping")
        assert ws.receive_json() == {"type": "pong"}


def test_websocket_pushes_metrics_and_alerts(monitor, fake_system):
    """Test a collection cycle pushes alert and metrics frames to clients."""
    fake_system.cpu = 97.0
    with TestClient(create_app(monitor)) as client:
        with client.websocket_connect("/ws") as ws:
            assert ws.receive_json()["type"] == "update"

            snapshot = client.portal.call(monitor.collect_metrics)
            frames = {}
            for _ in range(2):
                frame = ws.receive_json()
                frames[frame["type"]] = frame["data"]

    assert set(frames) == {"alert", "metrics"}
    assert frames["alert"]["id"] == "threshold_cpu"
    assert frames["metrics"]["timestamp"] == snapshot.timestamp


def test_websocket_pushes_alert_resolution(monitor, fake_system):
    """Test a recovered metric pushes an alertResolved frame."""
    fake_system.cpu = 97.0
    with TestClient(create_app(monitor)) as client:
        client.portal.call(monitor.collect_metrics)
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()

            fake_system.cpu = 5.0
            client.portal.call(monitor.collect_metrics)
            types = [ws.receive_json()["type"] for _ in range(2)]

    assert sorted(types) == ["alertResolved", "metrics"]


def test_event_pushes_unsubscribed_on_shutdown(monitor):
    """Test the app only listens to the monitor while it is running."""
    app = create_app(monitor)
    assert monitor.events.handler_count(MonitorEvent.METRICS) == 0

    with TestClient(app):
        for event in (MonitorEvent.METRICS, MonitorEvent.ALERT, MonitorEvent.ALERT_RESOLVED):
            assert monitor.events.handler_count(event) == 1

    for event in (MonitorEvent.METRICS, MonitorEvent.ALERT, MonitorEvent.ALERT_RESOLVED):
        assert monitor.events.handler_count(event) == 0
