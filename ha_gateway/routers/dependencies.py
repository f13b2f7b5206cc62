"""Shared dependencies for API routers.

The gateway and tool registry are built once in the application lifespan
and stored on app.state; routers reach them through these functions.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from ha_gateway.services.gateway import RequestGateway
from ha_gateway.services.rate_limiter import DEFAULT_CALLER
from ha_gateway.services.tools.registry import ToolRegistry


def get_gateway(request: Request) -> RequestGateway:
    """Dependency to get the request gateway.

    Raises:
        HTTPException: 503 if the application has not started
    """
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Gateway not ready")
    return gateway


def get_tool_registry(request: Request) -> ToolRegistry:
    """Dependency to get the tool registry.

    Raises:
        HTTPException: 503 if the application has not started
    """
    registry = getattr(request.app.state, "tool_registry", None)
    if registry is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Tools not ready")
    return registry


def get_caller_id(request: Request) -> str:
    """Rate limit key for an HTTP caller: the client's address.

    Request bodies never choose it, so one client cannot spread its
    traffic over many windows.
    """
    if request.client is None or not request.client.host:
        return DEFAULT_CALLER
    return request.client.host
