"""Tool system for HA Gateway.

This package provides the tools an agent can call. Every tool goes
through the RequestGateway, so validation, rate limiting and retries
apply uniformly.
"""

from __future__ import annotations

from ha_gateway.services.gateway import RequestGateway
from ha_gateway.services.tools.base import BaseTool, ToolResult
from ha_gateway.services.tools.control_tools import (
    CallServiceTool,
    ClimateTool,
    ControlLightTool,
    MediaPlayerTool,
    ToggleEntityTool,
    TriggerAutomationTool,
)
from ha_gateway.services.tools.entity_tool import GetStateTool, ListEntitiesTool
from ha_gateway.services.tools.registry import ToolRegistry
from ha_gateway.services.tools.todo_tool import AddTodoItemTool, CreateTodoListTool

TOOL_CLASSES: tuple[type[BaseTool], ...] = (
    GetStateTool,
    ListEntitiesTool,
    ToggleEntityTool,
    TriggerAutomationTool,
    ControlLightTool,
    MediaPlayerTool,
    ClimateTool,
    CallServiceTool,
    CreateTodoListTool,
    AddTodoItemTool,
)


def build_registry(gateway: RequestGateway) -> ToolRegistry:
    """Create a registry with every tool bound to the gateway."""
    registry = ToolRegistry()
    for tool_class in TOOL_CLASSES:
        registry.register(tool_class(gateway))
    return registry


__all__ = ["BaseTool", "ToolResult", "ToolRegistry", "TOOL_CLASSES", "build_registry"]
