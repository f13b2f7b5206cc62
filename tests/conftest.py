"""Pytest configuration and shared fixtures for HA Gateway tests."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from websockets.exceptions import ConnectionClosed

from ha_gateway.models import Config
from ha_gateway.services.flow_negotiator import FlowNegotiator
from ha_gateway.services.gateway import RequestGateway
from ha_gateway.services.ha_client import HomeAssistantClient
from ha_gateway.services.rate_limiter import FixedWindowRateLimiter
from ha_gateway.services.retry import RetryExecutor, RetryPolicy


@pytest.fixture
def mock_config() -> Config:
    """Fixture providing mock configuration.

    Returns:
        Mock Config instance with test values
    """
    return Config(
        ha_token="test_token_123",
        ha_base_url="http://test-ha:8123",
        rate_limit_window=60.0,
        rate_limit_max_requests=100,
        ha_timeout=10.0,
        retry_attempts=3,
        retry_delay=0.5,
        negotiation_timeout=0.2,
        log_level="DEBUG",
    )


@pytest.fixture
def mock_ha_states() -> list[dict[str, Any]]:
    """Mock Home Assistant states."""
    return [
        {
            "entity_id": "light.living_room",
            "state": "off",
            "attributes": {
                "friendly_name": "Living Room Light",
                "supported_features": 63,
            },
        },
        {
            "entity_id": "sensor.temperature",
            "state": "22.5",
            "attributes": {
                "unit_of_measurement": "°C",
                "friendly_name": "Temperature",
            },
        },
        {
            "entity_id": "automation.morning_routine",
            "state": "on",
            "attributes": {"friendly_name": "Morning Routine"},
        },
    ]


class FakeConnection:
    """Scripted stand-in for a websockets client connection.

    Inbound messages (dicts, or raw strings sent as-is) are returned by
    recv() in order. Once drained, recv() either raises ConnectionClosed
    or blocks forever (to exercise deadlines).
    """

    def __init__(self, messages: list[Any], on_drained: str = "close") -> None:
        self._inbound = [m if isinstance(m, str) else json.dumps(m) for m in messages]
        self._on_drained = on_drained
        self.sent: list[dict[str, Any]] = []
        self.close_calls = 0

    async def send(self, message: str) -> None:
        self.sent.append(json.loads(message))

    async def recv(self) -> str:
        if self._inbound:
            return self._inbound.pop(0)
        if self._on_drained == "hang":
            await asyncio.Event().wait()
        raise ConnectionClosed(None, None)

    async def close(self) -> None:
        self.close_calls += 1


def make_connect(connection: FakeConnection) -> Callable[[str], Any]:
    """Connection factory returning the given fake."""

    async def connect(url: str) -> FakeConnection:
        return connection

    return connect


class RecordingSleep:
    """Async sleep replacement recording requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_connection() -> type[FakeConnection]:
    """The FakeConnection class, for tests outside this directory."""
    return FakeConnection


@pytest.fixture
def connect_to() -> Callable[[FakeConnection], Callable[[str], Any]]:
    return make_connect


@pytest.fixture
def build_gateway(
    mock_config: Config, recording_sleep: RecordingSleep
) -> Callable[..., RequestGateway]:
    """Factory building a gateway around an httpx mock handler.

    Usage:
        gateway = build_gateway(handler, connection=FakeConnection([...]))
    """

    def factory(
        handler: Callable[[httpx.Request], httpx.Response],
        connection: FakeConnection | None = None,
        max_requests: int = 100,
        policy: RetryPolicy | None = None,
    ) -> RequestGateway:
        client = HomeAssistantClient(mock_config, transport=httpx.MockTransport(handler))
        negotiator = FlowNegotiator(
            mock_config,
            connect=make_connect(connection or FakeConnection([], on_drained="hang")),
        )
        return RequestGateway(
            client=client,
            rate_limiter=FixedWindowRateLimiter(max_requests=max_requests, window_seconds=60.0),
            retry_executor=RetryExecutor(
                policy or RetryPolicy(attempts=3, delay=0.5), sleep=recording_sleep
            ),
            negotiator=negotiator,
        )

    return factory


@pytest.fixture
def ha_api(mock_ha_states: list[dict[str, Any]]) -> FakeHomeAssistantAPI:
    return FakeHomeAssistantAPI(mock_ha_states)


class FakeHomeAssistantAPI:
    """Minimal in-memory Home Assistant REST API for httpx.MockTransport."""

    def __init__(self, states: list[dict[str, Any]]) -> None:
        self.states = {s["entity_id"]: s for s in states}
        self.requests: list[httpx.Request] = []
        self.service_calls: list[tuple[str, str, dict[str, Any]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path == "/api/":
            return httpx.Response(200, json={"message": "API running."})
        if request.method == "GET" and path == "/api/states":
            return httpx.Response(200, json=list(self.states.values()))
        if request.method == "GET" and path.startswith("/api/states/"):
            entity_id = path.rsplit("/", 1)[-1]
            if entity_id not in self.states:
                return httpx.Response(404, json={"message": "Entity not found."})
            return httpx.Response(200, json=self.states[entity_id])
        if request.method == "POST" and path.startswith("/api/services/"):
            _, _, _, domain, service = path.split("/")
            data = json.loads(request.content or b"{}")
            self.service_calls.append((domain, service, data))
            return httpx.Response(200, json=[])
        return httpx.Response(404, json={"message": "Not found"})


@pytest.fixture
def restore_root_logger():
    """Undo handlers and level changes made by setup_logging()."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
