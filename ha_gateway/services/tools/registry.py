"""Tool registry for dynamic tool management.

Provides centralized registration and execution of tools, and turns
classified gateway errors into tool results.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from ha_gateway.errors import GatewayError
from ha_gateway.services.rate_limiter import DEFAULT_CALLER
from ha_gateway.services.tools.base import BaseTool, ToolResult

logger = logging.getLogger(__name__)


@dataclass
class ToolMetrics:
    """Metrics for a single tool."""

    tool_name: str
    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    total_latency_ms: float = 0.0
    min_latency_ms: float = float("inf")
    max_latency_ms: float = 0.0
    last_execution_time: float | None = None
    error_counts: dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        """Calculate success rate as percentage."""
        if self.total_executions == 0:
            return 0.0
        return (self.successful_executions / self.total_executions) * 100

    @property
    def avg_latency_ms(self) -> float:
        """Calculate average latency in milliseconds."""
        if self.total_executions == 0:
            return 0.0
        return self.total_latency_ms / self.total_executions

    def record(self, latency_ms: float, error: str | None = None) -> None:
        self.total_executions += 1
        self.last_execution_time = time.time()
        self.total_latency_ms += latency_ms
        self.min_latency_ms = min(self.min_latency_ms, latency_ms)
        self.max_latency_ms = max(self.max_latency_ms, latency_ms)
        if error is None:
            self.successful_executions += 1
        else:
            self.failed_executions += 1
            self.error_counts[error] = self.error_counts.get(error, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        """Convert metrics to dictionary for JSON serialization."""
        return {
            "tool_name": self.tool_name,
            "total_executions": self.total_executions,
            "successful_executions": self.successful_executions,
            "failed_executions": self.failed_executions,
            "success_rate": round(self.success_rate, 2),
            "avg_latency_ms": round(self.avg_latency_ms, 2),
            "min_latency_ms": self.min_latency_ms if self.min_latency_ms != float("inf") else 0,
            "max_latency_ms": round(self.max_latency_ms, 2),
            "last_execution_time": self.last_execution_time,
            "error_counts": self.error_counts,
        }


class ToolRegistry:
    """Dynamic tool registration and management.

    Maintains a registry of available tools and provides:
    - Tool registration
    - Schema listing for the MCP and HTTP surfaces
    - Unified tool execution with error classification
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._tools: dict[str, BaseTool] = {}
        self._metrics: dict[str, ToolMetrics] = {}

    def register(self, tool: BaseTool) -> None:
        """Register a tool in the registry.

        Args:
            tool: Tool instance to register
        """
        if tool.name in self._tools:
            logger.warning(f"Tool '{tool.name}' already registered, replacing")

        self._tools[tool.name] = tool
        self._metrics[tool.name] = ToolMetrics(tool_name=tool.name)
        logger.info(f"Registered tool: {tool.name}")

    def get_tool(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def get_tools(self) -> list[BaseTool]:
        return list(self._tools.values())

    def get_schemas(self) -> list[dict[str, Any]]:
        """Get all tool definitions (name, description, inputSchema)."""
        return [tool.schema for tool in self._tools.values()]

    def list_tools(self) -> list[str]:
        return list(self._tools.keys())

    async def execute(
        self,
        tool_name: str,
        arguments: dict[str, Any] | None,
        caller_id: str = DEFAULT_CALLER,
    ) -> ToolResult:
        """Execute tool by name and track metrics.

        Args:
            tool_name: Name of tool to execute
            arguments: Tool arguments from the agent
            caller_id: Rate limit key of the caller

        Returns:
            ToolResult with execution outcome. Failures carry the error
            kind in metadata["error"].
        """
        tool = self.get_tool(tool_name)

        if not tool:
            logger.error(f"Tool '{tool_name}' not found in registry")
            return ToolResult(
                success=False,
                content=f"Unknown tool: {tool_name}. Available tools: {', '.join(self.list_tools())}",
                metadata={"error": "unknown_tool", "tool_name": tool_name},
            )

        start_time = time.time()
        metrics = self._metrics[tool_name]

        try:
            logger.info(f"Executing tool '{tool_name}' with arguments: {arguments}")
            result = await tool.execute(arguments or {}, caller_id)
        except GatewayError as e:
            logger.warning(f"Tool '{tool_name}' failed ({e.kind}): {e.message}")
            result = ToolResult(success=False, content=e.message, metadata=e.to_metadata())
        except Exception as e:
            logger.error(f"Error executing tool '{tool_name}': {e}", exc_info=True)
            result = ToolResult(
                success=False,
                content=f"Error executing {tool_name}: {type(e).__name__}",
                metadata={"error": "execution_failed", "tool_name": tool_name},
            )

        latency_ms = (time.time() - start_time) * 1000
        metrics.record(latency_ms, None if result.success else result.metadata.get("error", "unknown_error"))

        logger.info(
            f"Tool '{tool_name}' completed: success={result.success}, latency={latency_ms:.2f}ms"
        )
        return result

    def get_metrics(self, tool_name: str | None = None) -> dict[str, Any] | list[dict[str, Any]]:
        """Get metrics for specific tool or all tools.

        Args:
            tool_name: Optional tool name. If None, returns all metrics.

        Returns:
            Metrics dictionary for specific tool, or list of all metrics
        """
        if tool_name:
            metrics = self._metrics.get(tool_name)
            if not metrics:
                return {"error": f"Tool '{tool_name}' not found"}
            return metrics.to_dict()

        return [metrics.to_dict() for metrics in self._metrics.values()]

    def reset_metrics(self, tool_name: str | None = None) -> None:
        """Reset metrics for specific tool or all tools."""
        if tool_name:
            if tool_name in self._metrics:
                self._metrics[tool_name] = ToolMetrics(tool_name=tool_name)
                logger.info(f"Reset metrics for tool: {tool_name}")
        else:
            for name in self._metrics:
                self._metrics[name] = ToolMetrics(tool_name=name)
            logger.info("Reset metrics for all tools")

    def __len__(self) -> int:
        return len(self._tools)

    def __repr__(self) -> str:
        tools = ", ".join(self.list_tools())
        return f"<ToolRegistry({len(self)} tools: {tools})>"
