"""Read-only entity tools: single entity state and entity listing."""

from __future__ import annotations

import logging
from typing import Any

from ha_gateway.security.validator import identifier, required, slug
from ha_gateway.services.tools.base import BaseTool, ToolResult

logger = logging.getLogger(__name__)


class GetStateTool(BaseTool):
    """Tool for getting the state of one entity."""

    rules = (required("entity_id"), identifier("entity_id"))

    @property
    def name(self) -> str:
        return "get_state"

    @property
    def description(self) -> str:
        return "Get the current state of a Home Assistant entity"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "entity_id": {
                    "type": "string",
                    "description": "The entity ID to get state for (e.g., light.living_room)",
                },
            },
            "required": ["entity_id"],
        }

    async def run(self, arguments: dict[str, Any], caller_id: str) -> ToolResult:
        entity_id = arguments["entity_id"]
        state = await self.gateway.request("GET", f"/api/states/{entity_id}", caller_id=caller_id)
        return ToolResult(
            success=True,
            content=self.as_json(state),
            metadata={"entity_id": entity_id},
        )


class ListEntitiesTool(BaseTool):
    """Tool for listing entities, optionally filtered by domain."""

    rules = (slug("domain", optional=True),)

    @property
    def name(self) -> str:
        return "list_entities"

    @property
    def description(self) -> str:
        return "List all available entities in Home Assistant"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "domain": {
                    "type": "string",
                    "description": "Optional domain filter (e.g., light, switch, automation)",
                },
            },
        }

    async def run(self, arguments: dict[str, Any], caller_id: str) -> ToolResult:
        domain = arguments.get("domain")
        states = await self.gateway.request("GET", "/api/states", caller_id=caller_id) or []

        if domain:
            states = [s for s in states if s.get("entity_id", "").startswith(f"{domain}.")]

        entities = [
            {
                "entity_id": s.get("entity_id"),
                "state": s.get("state"),
                "attributes": s.get("attributes", {}),
            }
            for s in states
        ]
        logger.debug(f"Listed {len(entities)} entities (domain={domain})")
        return ToolResult(
            success=True,
            content=self.as_json(entities),
            metadata={"domain": domain, "entity_count": len(entities)},
        )
