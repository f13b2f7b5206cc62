"""Health check endpoints.

Liveness and readiness checks. Readiness calls Home Assistant directly,
bypassing the rate limiter and retries so health checks never consume a
caller's window.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ha_gateway.errors import GatewayError
from ha_gateway.routers.dependencies import get_gateway
from ha_gateway.services.gateway import RequestGateway

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Basic liveness health check.

    Returns:
        Status message (always returns 200 OK if service is running)
    """
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(gateway: RequestGateway = Depends(get_gateway)) -> JSONResponse:
    """Readiness check against the Home Assistant API.

    Returns:
        HTTP 200 if Home Assistant answers, HTTP 503 otherwise
    """
    checks = {
        "api": "ok",
        "home_assistant": await _check_ha(gateway),
    }

    all_ok = all(v == "ok" for v in checks.values())
    status_code = status.HTTP_200_OK if all_ok else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ok" if all_ok else "degraded",
            "checks": checks,
        },
    )


async def _check_ha(gateway: RequestGateway) -> str:
    """Check Home Assistant API connectivity.

    Returns:
        "ok" if the API answers, the error kind otherwise
    """
    try:
        await gateway.client.get_api_status()
        return "ok"
    except GatewayError as e:
        logger.error(f"Home Assistant health check failed: {e.message}")
        return f"error: {e.kind}"
