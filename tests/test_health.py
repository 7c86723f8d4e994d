"""
tests/test_health.py -- Integration tests for GET /api/v1/health.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok' against a live store, 'error' when ping fails
  - No authentication required
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from api.main import __version__


def test_health_returns_200_with_components(api_client: TestClient) -> None:
    resp = api_client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["version"] == __version__
    assert data["components"] == {"app": "ok", "database": "ok"}


def test_health_no_auth_required(api_client: TestClient) -> None:
    resp = api_client.get("/api/v1/health", headers={})
    assert resp.status_code == 200
    assert "Cache-Control" not in resp.headers


def test_health_reports_database_error(api_client: TestClient, store) -> None:
    """An unreachable database degrades the component, not the endpoint."""

    async def broken_ping() -> bool:
        return False

    store.ping = broken_ping
    data = api_client.get("/api/v1/health").json()
    assert data["components"]["database"] == "error"
