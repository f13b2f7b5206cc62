"""API router for tool listing, execution and metrics endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ha_gateway.routers.dependencies import get_caller_id, get_tool_registry
from ha_gateway.services.tools.base import ToolResult
from ha_gateway.services.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)
router = APIRouter()


class ToolCallRequest(BaseModel):
    """Request schema for tool execution."""

    arguments: dict[str, Any] = Field(default_factory=dict, description="Tool arguments")


class ToolMetricsResponse(BaseModel):
    """Response schema for tool metrics."""

    metrics: list[dict[str, Any]] | dict[str, Any] = Field(
        ..., description="Tool execution metrics"
    )


class MetricsResetResponse(BaseModel):
    """Response schema for metrics reset."""

    status: str = Field(..., description="Operation status")
    message: str = Field(..., description="Status message")


@router.get("/tools")
async def list_tools(registry: ToolRegistry = Depends(get_tool_registry)) -> dict[str, Any]:
    """Get list of all registered tools with their schemas.

    Returns:
        Dictionary with:
        - count: Number of registered tools
        - tools: List of tool names
        - schemas: Tool definitions with their input schemas
    """
    return {
        "count": len(registry),
        "tools": registry.list_tools(),
        "schemas": registry.get_schemas(),
    }


@router.post("/tools/{tool_name}", response_model=ToolResult)
async def execute_tool(
    tool_name: str,
    request: ToolCallRequest,
    caller_id: str = Depends(get_caller_id),
    registry: ToolRegistry = Depends(get_tool_registry),
) -> ToolResult:
    """Execute a tool.

    Failures are reported in the body (success=false, metadata.error)
    rather than as HTTP errors, mirroring what the MCP surface returns.
    Calls are rate limited per client address.

    Example:
        POST /tools/get_state {"arguments": {"entity_id": "light.kitchen"}}
    """
    return await registry.execute(tool_name, request.arguments, caller_id)


@router.get("/tools/metrics", response_model=ToolMetricsResponse)
async def get_tool_metrics(
    tool_name: str | None = None,
    registry: ToolRegistry = Depends(get_tool_registry),
) -> ToolMetricsResponse:
    """Get execution metrics for all tools or specific tool.

    Args:
        tool_name: Optional tool name. If omitted, returns metrics for all tools.

    Example:
        GET /tools/metrics
        GET /tools/metrics?tool_name=get_state
    """
    return ToolMetricsResponse(metrics=registry.get_metrics(tool_name))


@router.post("/tools/metrics/reset", response_model=MetricsResetResponse)
async def reset_tool_metrics(
    tool_name: str | None = None,
    registry: ToolRegistry = Depends(get_tool_registry),
) -> MetricsResetResponse:
    """Reset execution metrics for all tools or specific tool."""
    registry.reset_metrics(tool_name)

    if tool_name:
        message = f"Metrics reset for tool: {tool_name}"
    else:
        message = "Metrics reset for all tools"

    return MetricsResetResponse(status="success", message=message)
