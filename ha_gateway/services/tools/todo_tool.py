"""To-do list tools.

Lists are created through the local_todo config flow over WebSocket;
items are added through the regular todo.add_item service.
"""

from __future__ import annotations

import logging
from typing import Any

from ha_gateway.security.validator import free_text, identifier, required
from ha_gateway.services.tools.base import BaseTool, ToolResult

logger = logging.getLogger(__name__)

TODO_HANDLER = "local_todo"


class CreateTodoListTool(BaseTool):
    """Tool for creating a new local to-do list."""

    rules = (required("name"), free_text("name", max_length=100))

    @property
    def name(self) -> str:
        return "create_todo_list"

    @property
    def description(self) -> str:
        return "Create a new to-do list in Home Assistant"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Name of the new list (e.g., Groceries)"},
            },
            "required": ["name"],
        }

    async def run(self, arguments: dict[str, Any], caller_id: str) -> ToolResult:
        list_name = arguments["name"]
        outcome = await self.gateway.negotiate_create(TODO_HANDLER, list_name, caller_id=caller_id)

        # A refusal is still a completed exchange, so the call succeeds
        if not outcome.created:
            return ToolResult(
                success=True,
                content=f"List '{list_name}' was not created: {outcome.detail.get('reason')}",
                metadata={"created": False, **outcome.detail},
            )

        return ToolResult(
            success=True,
            content=f"Created to-do list '{outcome.detail.get('title') or list_name}'",
            metadata={"created": True, **outcome.detail},
        )


class AddTodoItemTool(BaseTool):
    """Tool for adding an item to an existing to-do list."""

    rules = (
        required("entity_id"),
        identifier("entity_id", domain="todo"),
        required("item"),
        free_text("item", max_length=255),
    )

    @property
    def name(self) -> str:
        return "add_todo_item"

    @property
    def description(self) -> str:
        return "Add an item to a Home Assistant to-do list"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "entity_id": {"type": "string", "description": "To-do list entity (e.g., todo.groceries)"},
                "item": {"type": "string", "description": "Item text"},
            },
            "required": ["entity_id", "item"],
        }

    async def run(self, arguments: dict[str, Any], caller_id: str) -> ToolResult:
        entity_id = arguments["entity_id"]
        item = arguments["item"]
        await self.gateway.call_service(
            "todo", "add_item", {"entity_id": entity_id, "item": item}, caller_id=caller_id
        )
        return ToolResult(
            success=True,
            content=f"Added '{item}' to {entity_id}",
            metadata={"entity_id": entity_id, "item": item},
        )
