"""Base classes for HA Gateway tools.

Defines the abstract base class and result model for all tools.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field

from ha_gateway.security.validator import ValidationRule
from ha_gateway.services.gateway import RequestGateway
from ha_gateway.services.rate_limiter import DEFAULT_CALLER

Rule = ValidationRule | Callable[[Mapping[str, Any]], None]


class ToolResult(BaseModel):
    """Standardized result format for all tools.

    Attributes:
        success: Whether the tool execution succeeded
        content: Text content returned to the agent
        metadata: Additional metadata (error kind, field, status code)
    """

    success: bool = Field(..., description="Whether execution succeeded")
    content: str = Field(..., description="Text content for the agent")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional execution metadata"
    )


class BaseTool(ABC):
    """Abstract base class for all tools.

    Subclasses declare:
    - name: Tool identifier
    - description: What the tool does, shown to the agent
    - input_schema: JSON schema of the arguments
    - rules: Validation rules run before anything else
    - run: The operation itself, receiving validated arguments

    execute() validates the arguments and then calls run(). Gateway errors
    propagate to the registry, which reports them.
    """

    rules: Sequence[Rule] = ()

    def __init__(self, gateway: RequestGateway) -> None:
        self.gateway = gateway

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    @abstractmethod
    def input_schema(self) -> dict[str, Any]:
        pass

    @property
    def schema(self) -> dict[str, Any]:
        """Tool listing entry, shaped like an MCP tool definition."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    async def execute(
        self,
        arguments: Mapping[str, Any],
        caller_id: str = DEFAULT_CALLER,
    ) -> ToolResult:
        """Validate arguments and run the tool.

        Args:
            arguments: Raw arguments from the agent
            caller_id: Rate limit key of the caller

        Returns:
            ToolResult with execution outcome

        Raises:
            GatewayError: Classified validation, rate limit or upstream failure
        """
        cleaned = self.gateway.validate(arguments, self.rules)
        return await self.run(cleaned, caller_id)

    @abstractmethod
    async def run(self, arguments: dict[str, Any], caller_id: str) -> ToolResult:
        pass

    @staticmethod
    def as_json(data: Any) -> str:
        return json.dumps(data, indent=2, ensure_ascii=False)

    def __repr__(self) -> str:
        """String representation."""
        return f"<{self.__class__.__name__}(name='{self.name}')>"
