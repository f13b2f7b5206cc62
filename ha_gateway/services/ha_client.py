"""Home Assistant REST API client.

Thin async wrapper around httpx. Each method performs exactly one HTTP
request and either returns decoded JSON or raises a classified error;
retries and rate limiting happen in the layers above.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ha_gateway.errors import UpstreamRejected, UpstreamUnavailable
from ha_gateway.models import Config

logger = logging.getLogger(__name__)


class HomeAssistantClient:
    """Client for the Home Assistant REST API."""

    def __init__(
        self,
        config: Config,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize client.

        Args:
            config: Application configuration (base URL, token, timeout)
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = config.ha_base_url.rstrip("/")
        self.token = config.ha_token
        self.timeout = config.ha_timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._get_headers(),
            timeout=self.timeout,
            transport=transport,
        )

    def _get_headers(self) -> dict[str, str]:
        """Build request headers with bearer authentication."""
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    async def request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """Perform one request against the REST API.

        Args:
            method: HTTP method
            path: API path (e.g. '/api/states')
            payload: Optional JSON body

        Returns:
            Decoded JSON body, or None for an empty body

        Raises:
            UpstreamRejected: On 4xx responses
            UpstreamUnavailable: On transport errors, timeouts and 5xx responses
        """
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.TimeoutException as e:
            logger.warning(f"Home Assistant request timed out: {method} {path}")
            raise UpstreamUnavailable(
                f"Home Assistant did not respond within {self.timeout}s"
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Home Assistant request failed: {method} {path}: {e}")
            raise UpstreamUnavailable(f"Home Assistant unreachable: {e}") from e

        if response.status_code >= 500:
            raise UpstreamUnavailable(
                f"Home Assistant server error ({response.status_code})",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise UpstreamRejected(response.status_code, self._error_message(response))

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extract Home Assistant's error message from a response."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        if response.text:
            return response.text[:200]
        return response.reason_phrase or "request rejected"

    async def get_api_status(self) -> dict[str, Any]:
        """GET /api/ (returns {"message": "API running."} when healthy)."""
        return await self.request("GET", "/api/")

    async def get_states(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/states")

    async def get_state(self, entity_id: str) -> dict[str, Any]:
        return await self.request("GET", f"/api/states/{entity_id}")

    async def call_service(
        self, domain: str, service: str, data: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Call a service.

        Returns:
            List of states changed by the call
        """
        result = await self.request("POST", f"/api/services/{domain}/{service}", data or {})
        return result if isinstance(result, list) else []

    async def close(self) -> None:
        await self._client.aclose()
