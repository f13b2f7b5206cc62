"""MCP stdio server exposing the Home Assistant tools.

stdout carries the protocol, so logging goes to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any

import mcp.types as types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from ha_gateway.logging_setup import setup_logging
from ha_gateway.models import Config
from ha_gateway.services.gateway import RequestGateway
from ha_gateway.services.tools import build_registry
from ha_gateway.services.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

SERVER_NAME = "homeassistant-server"


async def list_mcp_tools(registry: ToolRegistry) -> list[types.Tool]:
    return [types.Tool(**tool.schema) for tool in registry.get_tools()]


async def call_mcp_tool(
    registry: ToolRegistry, name: str, arguments: dict[str, Any] | None
) -> types.CallToolResult:
    """Run a tool and convert its result to an MCP tool result.

    A failed tool comes back with isError set and the result metadata
    (error kind, field, bounds) as structured content.
    """
    result = await registry.execute(name, arguments or {})
    content = [types.TextContent(type="text", text=result.content)]
    if not result.success:
        return types.CallToolResult(
            content=content, structuredContent=result.metadata, isError=True
        )
    return types.CallToolResult(content=content, isError=False)


def create_server(registry: ToolRegistry) -> Server:
    server: Server = Server(SERVER_NAME)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return await list_mcp_tools(registry)

    @server.call_tool()
    async def handle_call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        return await call_mcp_tool(registry, name, arguments)

    return server


async def serve(config: Config) -> None:
    gateway = RequestGateway.from_config(config)
    server = create_server(build_registry(gateway))
    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info("Home Assistant MCP server running on stdio")
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await gateway.close()


def run_application() -> None:
    parser = argparse.ArgumentParser(description="Run the HA Gateway MCP server.")
    parser.add_argument(
        "--transport",
        default="stdio",
        choices=["stdio"],
        help="MCP transport type.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR).",
    )
    arguments = parser.parse_args()

    try:
        config = Config.from_env()
    except ValueError as e:
        parser.exit(status=1, message=f"{e}\n")

    setup_logging(arguments.log_level or config.log_level, stream=sys.stderr)
    config.log_status()
    asyncio.run(serve(config))


if __name__ == "__main__":
    run_application()
