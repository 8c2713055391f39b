"""Tests for the FastAPI status routes."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.server import create_app
from src.health.record import HealthRecordError
from src.health.reporter import FileHealthReporter, MemoryHealthReporter
from src.monitor.heartbeat import HeartbeatService


def _app_for(record_path: Path, service: HeartbeatService) -> FastAPI:
    app = create_app(service=service)
    app.state.health_path = record_path
    app.state.probe_max_age = None
    return app


@pytest.fixture
def service(file_reporter: FileHealthReporter) -> HeartbeatService:
    return HeartbeatService(file_reporter, interval=60)


@pytest.fixture
def client(record_path: Path, service: HeartbeatService) -> TestClient:
    """Client without lifespan: nothing writes the record unless asked."""
    return TestClient(_app_for(record_path, service))


class TestHealthRoute:
    def test_missing_record_is_503(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "unhealthy"
        assert "not found" in data["message"]

    def test_healthy_record_is_200(self, client: TestClient, writer) -> None:
        writer.write(True)
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    def test_unhealthy_record_is_503(self, client: TestClient, writer) -> None:
        writer.write(False, "event-loop error")
        resp = client.get("/health")
        assert resp.status_code == 503
        assert "OK: false" in resp.json()["message"]


class TestHeartbeatRoutes:
    def test_status(self, client: TestClient) -> None:
        resp = client.get("/api/heartbeat")
        assert resp.status_code == 200
        data = resp.json()
        assert data["running"] is False
        assert data["beats"] == 0
        assert data["interval"] == 60

    def test_manual_beat(self, client: TestClient, record_path: Path) -> None:
        resp = client.post("/api/heartbeat/beat")
        assert resp.status_code == 200
        data = resp.json()
        assert data["beat"]["healthy"] is True
        assert data["record"]["status"] == "healthy"
        assert record_path.read_text() == "OK: true\n"

    def test_manual_beat_sink_error(self, record_path: Path) -> None:
        class Broken(MemoryHealthReporter):
            def report(self, healthy: bool, detail: str = "") -> None:
                raise HealthRecordError("read-only filesystem")

        client = TestClient(_app_for(record_path, HeartbeatService(Broken())))
        resp = client.post("/api/heartbeat/beat")
        assert resp.status_code == 500
        assert "read-only" in resp.json()["detail"]


class TestLifespan:
    def test_heartbeat_runs_with_app(
        self, record_path: Path, service: HeartbeatService,
    ) -> None:
        app = _app_for(record_path, service)
        with TestClient(app) as client:
            assert service.running
            assert "event-loop" in service.checks
            client.post("/api/heartbeat/beat")
            assert client.get("/health").status_code == 200

        assert not service.running
        assert not record_path.exists()
