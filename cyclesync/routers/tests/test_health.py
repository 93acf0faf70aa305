"""Tests for the /health endpoint with the database call mocked."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cyclesync.config import get_settings
from cyclesync.routers import health


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    app.include_router(health.router)
    return TestClient(app)


class TestHealth:
    def test_healthy_when_database_answers(self, client: TestClient, monkeypatch) -> None:
        mock = AsyncMock(return_value=1)
        monkeypatch.setattr("cyclesync.routers.health.fetchval", mock)

        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["version"] == get_settings().app_version
        assert body["cycle_engine"] == {
            "config_version": "1.0",
            "default_cycle_length": 28,
            "default_period_length": 5,
        }
        mock.assert_awaited_once_with("SELECT 1")

    def test_degraded_when_database_fails(self, client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(
            "cyclesync.routers.health.fetchval",
            AsyncMock(side_effect=RuntimeError("Database pool not initialized")),
        )

        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "degraded"
        assert body["database"] == "unreachable"
        assert "timestamp" in body
