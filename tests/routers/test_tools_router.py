"""Tests for the HTTP surface (tools and health routers)."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ha_gateway.routers import health, tools
from ha_gateway.routers.dependencies import get_caller_id
from ha_gateway.services.tools import build_registry


def make_app(gateway=None) -> FastAPI:
    """Application without lifespan; state is injected directly."""
    app = FastAPI()
    app.include_router(health.router)
    app.include_router(tools.router)
    if gateway is not None:
        app.state.gateway = gateway
        app.state.tool_registry = build_registry(gateway)
    return app


@pytest.fixture
def client(build_gateway, ha_api) -> TestClient:
    return TestClient(make_app(build_gateway(ha_api)))


class TestToolsRouter:
    """Test suite for /tools endpoints."""

    def test_list_tools(self, client):
        response = client.get("/tools")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 10
        assert "create_todo_list" in data["tools"]
        assert len(data["schemas"]) == 10
        assert data["schemas"][0]["inputSchema"]["type"] == "object"

    def test_execute_tool(self, client):
        response = client.post(
            "/tools/get_state", json={"arguments": {"entity_id": "light.living_room"}}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["metadata"] == {"entity_id": "light.living_room"}

    def test_failure_reported_in_body(self, client):
        """Test tool failures are 200 responses with success=false."""
        response = client.post("/tools/get_state", json={"arguments": {"entity_id": "Kitchen"}})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["metadata"]["error"] == "invalid_argument"
        assert data["metadata"]["field"] == "entity_id"

    def test_rate_limited_per_client(self, build_gateway, ha_api):
        """Test a caller_id in the body neither evades the limit nor adds windows."""
        gateway = build_gateway(ha_api, max_requests=1)
        client = TestClient(make_app(gateway))

        first = client.post("/tools/list_entities", json={"caller_id": "agent-1"})
        second = client.post("/tools/list_entities", json={"caller_id": "agent-2"})
        third = client.post("/tools/list_entities", json={"caller_id": "agent-3"})

        assert first.json()["success"] is True
        assert second.json()["metadata"]["error"] == "rate_limited"
        assert third.json()["metadata"]["error"] == "rate_limited"
        assert gateway.rate_limiter.get_entry("testclient").count == 1
        assert gateway.rate_limiter.get_entry("agent-2") is None

    @pytest.mark.parametrize(
        "client_address,expected",
        [(None, "default"), (("10.0.0.7", 51234), "10.0.0.7")],
    )
    def test_caller_id_from_client_address(self, client_address, expected):
        request = MagicMock()
        request.client = None if client_address is None else MagicMock(host=client_address[0])

        assert get_caller_id(request) == expected

    def test_metrics_and_reset(self, client):
        client.post("/tools/list_entities", json={})

        metrics = client.get("/tools/metrics", params={"tool_name": "list_entities"}).json()
        assert metrics["metrics"]["total_executions"] == 1

        reset = client.post("/tools/metrics/reset").json()
        assert reset == {"status": "success", "message": "Metrics reset for all tools"}
        assert client.get("/tools/metrics").json()["metrics"][1]["total_executions"] == 0

    def test_not_ready_without_state(self):
        client = TestClient(make_app())

        assert client.get("/tools").status_code == 503


class TestHealthRouter:
    """Test suite for health endpoints."""

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_ready(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "checks": {"api": "ok", "home_assistant": "ok"},
        }

    def test_not_ready_when_home_assistant_down(self, build_gateway):
        gateway = build_gateway(lambda request: httpx.Response(503))
        client = TestClient(make_app(gateway))

        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["checks"]["home_assistant"] == "error: upstream_unavailable"
