"""Integration tests for the health, metrics and root endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from leavedesk.app.config import Settings
from leavedesk.app.main import create_app


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(Settings(store_backend="memory")))


def test_health_is_always_ok(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_healthz_on_memory_backend_without_redis(client: TestClient) -> None:
    """Test that components that are not configured do not degrade readiness."""
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "components": {"db": "not_configured", "redis": "not_configured"},
    }


@pytest.mark.parametrize(
    ("db", "redis", "status_code", "status"),
    [
        ((True, "ok"), (True, "ok"), 200, "ok"),
        ((False, "error: OperationalError"), (True, "ok"), 503, "degraded"),
        ((True, "ok"), (False, "error: TimeoutError"), 503, "degraded"),
    ],
)
def test_healthz_reports_each_component(
    client: TestClient,
    db: tuple[bool, str],
    redis: tuple[bool, str],
    status_code: int,
    status: str,
) -> None:
    with (
        patch("leavedesk.app.api.routes.health.check_db", AsyncMock(return_value=db)),
        patch("leavedesk.app.api.routes.health.check_redis", AsyncMock(return_value=redis)),
    ):
        response = client.get("/healthz")

    assert response.status_code == status_code
    body = response.json()
    assert body["status"] == status
    assert body["components"] == {"db": db[1], "redis": redis[1]}


def test_metrics_scrape_includes_request_counters(client: TestClient) -> None:
    """Test that handled and denied requests show up in the scrape."""
    client.get("/api/leaves", headers={"Authorization": "Bearer t-metrics:u-1:admin"})
    client.delete("/api/leaves/x", headers={"Authorization": "Bearer t-metrics:u-2:employee"})

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]
    for name in ("crud_requests_total", "crud_latency_ms", "access_denied_total"):
        assert name in response.text
    assert 'resource="leaves"' in response.text


def test_root_reports_name_and_version(client: TestClient) -> None:
    assert client.get("/").json() == {"message": "Leavedesk API", "version": "0.1.0"}
