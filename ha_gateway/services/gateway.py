"""Request gateway: the single entry point tools use to reach Home Assistant.

Order of checks for every operation:
    validate -> acquire (rate limit) -> execute (retry + HTTP)
                                     \\-> negotiate_create (config flow)

Validation and rate-limit failures are raised before any network I/O and
are never retried.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, TypeVar

from ha_gateway.errors import RateLimited
from ha_gateway.models import Config
from ha_gateway.security.validator import ValidationRule, validate
from ha_gateway.services.flow_negotiator import FlowNegotiator, FlowOutcome
from ha_gateway.services.ha_client import HomeAssistantClient
from ha_gateway.services.rate_limiter import DEFAULT_CALLER, FixedWindowRateLimiter
from ha_gateway.services.retry import RetryExecutor, RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestGateway:
    """Validation, rate limiting, retries and config flows behind one facade."""

    def __init__(
        self,
        client: HomeAssistantClient,
        rate_limiter: FixedWindowRateLimiter,
        retry_executor: RetryExecutor,
        negotiator: FlowNegotiator,
    ) -> None:
        self.client = client
        self.rate_limiter = rate_limiter
        self.retry_executor = retry_executor
        self.negotiator = negotiator

    @classmethod
    def from_config(cls, config: Config) -> RequestGateway:
        """Build a gateway with components wired from configuration.

        Args:
            config: Application configuration

        Returns:
            RequestGateway owning a fresh rate-limit map and HTTP client
        """
        return cls(
            client=HomeAssistantClient(config),
            rate_limiter=FixedWindowRateLimiter(
                max_requests=config.rate_limit_max_requests,
                window_seconds=config.rate_limit_window,
            ),
            retry_executor=RetryExecutor(
                RetryPolicy(attempts=config.retry_attempts, delay=config.retry_delay)
            ),
            negotiator=FlowNegotiator(config),
        )

    def validate(
        self,
        arguments: Mapping[str, Any],
        rules: Iterable[ValidationRule | Callable[[Mapping[str, Any]], None]],
    ) -> dict[str, Any]:
        """Validate tool arguments. Raises InvalidArgument on failure."""
        return validate(arguments, rules)

    def acquire(self, caller_id: str = DEFAULT_CALLER) -> None:
        """Consume one operation from the caller's window.

        Raises:
            RateLimited: If the caller's window is exhausted
        """
        if not self.rate_limiter.try_acquire(caller_id):
            raise RateLimited(
                caller_id,
                limit=self.rate_limiter.max_requests,
                retry_after=self.rate_limiter.retry_after(caller_id),
            )

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy | None = None,
    ) -> T:
        """Run a remote operation under the retry policy.

        Raises:
            UpstreamRejected: Last attempt got a 4xx response
            UpstreamUnavailable: Last attempt failed in transport or with 5xx
        """
        return await self.retry_executor.run(operation, policy)

    async def request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        caller_id: str = DEFAULT_CALLER,
    ) -> Any:
        """Rate-limited, retried REST call."""
        self.acquire(caller_id)
        return await self.execute(lambda: self.client.request(method, path, payload))

    async def call_service(
        self,
        domain: str,
        service: str,
        data: dict[str, Any] | None = None,
        caller_id: str = DEFAULT_CALLER,
    ) -> list[dict[str, Any]]:
        self.acquire(caller_id)
        return await self.execute(lambda: self.client.call_service(domain, service, data))

    async def call_services(
        self,
        calls: Iterable[tuple[str, str, dict[str, Any]]],
        caller_id: str = DEFAULT_CALLER,
    ) -> list[dict[str, Any]]:
        """Several service calls counted as one operation against the rate limit.

        Calls run in order, each under the retry policy. A failure stops the
        sequence; calls that already succeeded stay applied in Home Assistant.

        Returns:
            Changed states of all calls, concatenated
        """
        self.acquire(caller_id)
        changed: list[dict[str, Any]] = []
        for domain, service, data in calls:
            changed.extend(
                await self.execute(functools.partial(self.client.call_service, domain, service, data))
            )
        return changed

    async def negotiate_create(
        self, handler: str, name: str, caller_id: str = DEFAULT_CALLER
    ) -> FlowOutcome:
        """Create a resource through a config flow (rate limited, not retried).

        Returns:
            FlowOutcome with created=False when Home Assistant declined

        Raises:
            RateLimited: If the caller's window is exhausted
            NegotiationFailed: On transport failure or timeout
        """
        self.acquire(caller_id)
        return await self.negotiator.negotiate_create(handler, name)

    async def close(self) -> None:
        await self.client.close()
