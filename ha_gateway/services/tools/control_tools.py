"""Device control tools.

Each tool maps validated arguments onto one Home Assistant service call.
"""

from __future__ import annotations

from typing import Any

from ha_gateway.security.validator import (
    allowed_service,
    any_of,
    identifier,
    one_of,
    required,
    service_data,
    slug,
    within_range,
)
from ha_gateway.services.tools.base import BaseTool, ToolResult

BRIGHTNESS_RANGE = (0, 255)
COLOR_TEMP_RANGE = (153, 500)  # mireds
VOLUME_RANGE = (0.0, 1.0)
TEMPERATURE_RANGE = (7.0, 35.0)  # Celsius

MEDIA_ACTIONS = {
    "play": "media_play",
    "pause": "media_pause",
    "stop": "media_stop",
    "next": "media_next_track",
    "previous": "media_previous_track",
    "volume_set": "volume_set",
    "turn_on": "turn_on",
    "turn_off": "turn_off",
}
HVAC_MODES = ("off", "heat", "cool", "heat_cool", "auto", "dry", "fan_only")


class ToggleEntityTool(BaseTool):
    """Tool for switching any entity on or off."""

    rules = (
        required("entity_id"),
        identifier("entity_id"),
        one_of("state", ("on", "off")),
    )

    @property
    def name(self) -> str:
        return "toggle_entity"

    @property
    def description(self) -> str:
        return "Toggle a Home Assistant entity on/off"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "entity_id": {
                    "type": "string",
                    "description": "The entity ID to toggle (e.g., switch.bedroom)",
                },
                "state": {
                    "type": "string",
                    "description": "The desired state (on/off)",
                    "enum": ["on", "off"],
                },
            },
            "required": ["entity_id", "state"],
        }

    async def run(self, arguments: dict[str, Any], caller_id: str) -> ToolResult:
        entity_id = arguments["entity_id"]
        state = arguments["state"]
        await self.gateway.call_service(
            "homeassistant", f"turn_{state}", {"entity_id": entity_id}, caller_id=caller_id
        )
        return ToolResult(
            success=True,
            content=f"Successfully turned {state} {entity_id}",
            metadata={"entity_id": entity_id, "state": state},
        )


class TriggerAutomationTool(BaseTool):
    """Tool for triggering an automation."""

    rules = (required("automation_id"), identifier("automation_id", domain="automation"))

    @property
    def name(self) -> str:
        return "trigger_automation"

    @property
    def description(self) -> str:
        return "Trigger a Home Assistant automation"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "automation_id": {
                    "type": "string",
                    "description": "The automation ID to trigger (e.g., automation.morning_routine)",
                },
            },
            "required": ["automation_id"],
        }

    async def run(self, arguments: dict[str, Any], caller_id: str) -> ToolResult:
        automation_id = arguments["automation_id"]
        await self.gateway.call_service(
            "automation", "trigger", {"entity_id": automation_id}, caller_id=caller_id
        )
        return ToolResult(
            success=True,
            content=f"Successfully triggered {automation_id}",
            metadata={"entity_id": automation_id},
        )


class ControlLightTool(BaseTool):
    """Tool for switching lights and setting brightness or color temperature."""

    rules = (
        required("entity_id"),
        identifier("entity_id", domain="light"),
        one_of("state", ("on", "off")),
        within_range("brightness", *BRIGHTNESS_RANGE),
        within_range("color_temp", *COLOR_TEMP_RANGE),
    )

    @property
    def name(self) -> str:
        return "control_light"

    @property
    def description(self) -> str:
        return (
            "Turn a light on or off, optionally setting brightness (0-255) "
            "or color temperature (153-500 mireds)"
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "entity_id": {"type": "string", "description": "Light entity (e.g., light.kitchen)"},
                "state": {"type": "string", "enum": ["on", "off"]},
                "brightness": {
                    "type": "integer",
                    "minimum": BRIGHTNESS_RANGE[0],
                    "maximum": BRIGHTNESS_RANGE[1],
                },
                "color_temp": {
                    "type": "integer",
                    "minimum": COLOR_TEMP_RANGE[0],
                    "maximum": COLOR_TEMP_RANGE[1],
                },
            },
            "required": ["entity_id", "state"],
        }

    async def run(self, arguments: dict[str, Any], caller_id: str) -> ToolResult:
        entity_id = arguments["entity_id"]
        state = arguments["state"]
        data: dict[str, Any] = {"entity_id": entity_id}
        if state == "on":
            for key in ("brightness", "color_temp"):
                if arguments.get(key) is not None:
                    data[key] = arguments[key]

        await self.gateway.call_service("light", f"turn_{state}", data, caller_id=caller_id)
        return ToolResult(
            success=True,
            content=f"Light {entity_id} turned {state}",
            metadata=dict(data),
        )


class MediaPlayerTool(BaseTool):
    """Tool for playback control and volume of media players."""

    rules = (
        required("entity_id"),
        identifier("entity_id", domain="media_player"),
        one_of("action", tuple(MEDIA_ACTIONS)),
        within_range("volume_level", *VOLUME_RANGE),
    )

    @property
    def name(self) -> str:
        return "control_media_player"

    @property
    def description(self) -> str:
        return "Control a media player: play, pause, stop, skip tracks or set volume (0.0-1.0)"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "entity_id": {"type": "string", "description": "Media player entity"},
                "action": {"type": "string", "enum": list(MEDIA_ACTIONS)},
                "volume_level": {
                    "type": "number",
                    "minimum": VOLUME_RANGE[0],
                    "maximum": VOLUME_RANGE[1],
                    "description": "Required for volume_set",
                },
            },
            "required": ["entity_id", "action"],
        }

    async def run(self, arguments: dict[str, Any], caller_id: str) -> ToolResult:
        entity_id = arguments["entity_id"]
        action = arguments["action"]
        data: dict[str, Any] = {"entity_id": entity_id}
        if action == "volume_set":
            # Range is checked by the rules; presence only matters for this action
            self.gateway.validate(arguments, (required("volume_level"),))
            data["volume_level"] = arguments["volume_level"]

        await self.gateway.call_service(
            "media_player", MEDIA_ACTIONS[action], data, caller_id=caller_id
        )
        return ToolResult(
            success=True,
            content=f"Media player {entity_id}: {action} done",
            metadata={"entity_id": entity_id, "action": action},
        )


class ClimateTool(BaseTool):
    """Tool for thermostat temperature and HVAC mode."""

    rules = (
        required("entity_id"),
        identifier("entity_id", domain="climate"),
        within_range("temperature", *TEMPERATURE_RANGE),
        one_of("hvac_mode", HVAC_MODES, optional=True),
        any_of("temperature", "hvac_mode"),
    )

    @property
    def name(self) -> str:
        return "set_climate"

    @property
    def description(self) -> str:
        return "Set a thermostat's target temperature (7-35 C) and/or HVAC mode"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "entity_id": {"type": "string", "description": "Climate entity"},
                "temperature": {
                    "type": "number",
                    "minimum": TEMPERATURE_RANGE[0],
                    "maximum": TEMPERATURE_RANGE[1],
                },
                "hvac_mode": {"type": "string", "enum": list(HVAC_MODES)},
            },
            "required": ["entity_id"],
        }

    async def run(self, arguments: dict[str, Any], caller_id: str) -> ToolResult:
        entity_id = arguments["entity_id"]
        temperature = arguments.get("temperature")
        hvac_mode = arguments.get("hvac_mode")

        calls = []
        if hvac_mode is not None:
            calls.append(("climate", "set_hvac_mode", {"entity_id": entity_id, "hvac_mode": hvac_mode}))
        if temperature is not None:
            calls.append(
                ("climate", "set_temperature", {"entity_id": entity_id, "temperature": temperature})
            )
        # One rate-limit slot; if set_temperature fails, the mode change stays applied
        await self.gateway.call_services(calls, caller_id=caller_id)

        return ToolResult(
            success=True,
            content=f"Climate {entity_id} updated",
            metadata={"entity_id": entity_id, "temperature": temperature, "hvac_mode": hvac_mode},
        )


class CallServiceTool(BaseTool):
    """Generic service call, guarded by the service deny-list."""

    rules = (
        required("domain"),
        slug("domain"),
        required("service"),
        slug("service"),
        identifier("entity_id", optional=True),
        service_data("data"),
        allowed_service(),
    )

    @property
    def name(self) -> str:
        return "call_service"

    @property
    def description(self) -> str:
        return "Call any Home Assistant service (dangerous services such as restart are blocked)"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "domain": {"type": "string", "description": "Service domain (e.g., light)"},
                "service": {"type": "string", "description": "Service name (e.g., turn_on)"},
                "entity_id": {"type": "string", "description": "Optional target entity"},
                "data": {"type": "object", "description": "Optional service data"},
            },
            "required": ["domain", "service"],
        }

    async def run(self, arguments: dict[str, Any], caller_id: str) -> ToolResult:
        domain = arguments["domain"]
        service = arguments["service"]
        data = dict(arguments.get("data") or {})
        if arguments.get("entity_id"):
            data["entity_id"] = arguments["entity_id"]

        changed = await self.gateway.call_service(domain, service, data, caller_id=caller_id)
        return ToolResult(
            success=True,
            content=f"Called {domain}.{service}",
            metadata={"service": f"{domain}.{service}", "changed_states": len(changed)},
        )
