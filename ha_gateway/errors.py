"""Error taxonomy for the request-execution layer.

Every failure a tool can surface maps to exactly one of these classes.
The ``kind`` attribute is the machine-readable classification reported
to callers (tool metadata, MCP error mapping, HTTP responses).

Classes:
- InvalidArgument: argument failed validation, never reaches the network
- RateLimited: caller exhausted its window, never reaches the network
- UpstreamRejected: Home Assistant answered with a 4xx status
- UpstreamUnavailable: transport error, timeout or 5xx status
- NegotiationFailed: WebSocket config flow broke down (transport/timeout)
"""

from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base class for classified gateway failures."""

    kind = "gateway_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_metadata(self) -> dict[str, Any]:
        """Structured details for tool results.

        Returns:
            Dict with the error kind and any subclass-specific fields
        """
        return {"error": self.kind}


class InvalidArgument(GatewayError):
    """Raised when a tool argument fails validation."""

    kind = "invalid_argument"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"Invalid argument '{field}': {message}")
        self.field = field
        self.reason = message

    def to_metadata(self) -> dict[str, Any]:
        return {"error": self.kind, "field": self.field, "reason": self.reason}


class RateLimited(GatewayError):
    """Raised when a caller exceeds its request window."""

    kind = "rate_limited"

    def __init__(self, caller_id: str, limit: int, retry_after: float) -> None:
        super().__init__(
            f"Rate limit exceeded for '{caller_id}' "
            f"({limit} requests per window, retry in {retry_after:.0f}s)"
        )
        self.caller_id = caller_id
        self.limit = limit
        self.retry_after = retry_after

    def to_metadata(self) -> dict[str, Any]:
        return {
            "error": self.kind,
            "limit": self.limit,
            "retry_after": round(self.retry_after, 2),
        }


class UpstreamRejected(GatewayError):
    """Raised when Home Assistant rejects a request with a 4xx status."""

    kind = "upstream_rejected"

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"Home Assistant API error ({status_code}): {message}")
        self.status_code = status_code
        self.detail = message

    def to_metadata(self) -> dict[str, Any]:
        return {"error": self.kind, "status_code": self.status_code}


class UpstreamUnavailable(GatewayError):
    """Raised on transport failures, timeouts and 5xx responses."""

    kind = "upstream_unavailable"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    def to_metadata(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {"error": self.kind}
        if self.status_code is not None:
            metadata["status_code"] = self.status_code
        return metadata


class NegotiationFailed(GatewayError):
    """Raised when a config-flow negotiation fails operationally."""

    kind = "negotiation_failed"
