"""HA Gateway FastAPI application.

HTTP entry point exposing the Home Assistant tool registry. The same
registry is served over MCP by ha_gateway.mcp_server.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ha_gateway import __version__
from ha_gateway.logging_setup import setup_logging
from ha_gateway.models import Config
from ha_gateway.routers import health, tools
from ha_gateway.services.gateway import RequestGateway
from ha_gateway.services.tools import build_registry


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager.

    Builds the gateway (and with it the rate-limit map and HTTP client)
    once per process and closes the client on shutdown.

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    config = Config.from_env()
    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)

    logger.info("HA Gateway starting up")
    config.log_status()

    gateway = RequestGateway.from_config(config)
    app.state.gateway = gateway
    app.state.tool_registry = build_registry(gateway)
    logger.info(f"Registered tools: {', '.join(app.state.tool_registry.list_tools())}")

    yield

    logger.info("HA Gateway shutting down")
    await gateway.close()


app = FastAPI(
    title="HA Gateway",
    description="Resilient Home Assistant tool execution for agents",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(tools.router, tags=["tools"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint.

    Returns:
        Welcome message with API info
    """
    return {
        "message": "HA Gateway for Home Assistant",
        "version": __version__,
        "docs": "/docs",
    }
