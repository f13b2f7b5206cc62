"""Bounded retry for outbound Home Assistant calls.

Every remote call is retried uniformly, including 4xx rejections from
Home Assistant itself. Retrying a deterministic rejection only delays
the error, so consumers may set ``RetryPolicy.retry_rejected=False`` to
surface UpstreamRejected after the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from ha_gateway.errors import UpstreamRejected

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for one remote call.

    Attributes:
        attempts: Maximum number of invocations (>= 1)
        delay: Fixed pause between attempts in seconds (>= 0)
        retry_rejected: Also retry UpstreamRejected (4xx) failures
    """

    attempts: int = 3
    delay: float = 1.0
    retry_rejected: bool = True

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.delay < 0:
            raise ValueError("delay must be >= 0")


class RetryExecutor:
    """Run a coroutine factory up to ``attempts`` times.

    Usage:
        executor = RetryExecutor(RetryPolicy(attempts=3, delay=1.0))
        state = await executor.run(lambda: client.get_state("light.kitchen"))
    """

    def __init__(self, policy: RetryPolicy | None = None, sleep: SleepFn = asyncio.sleep) -> None:
        """Initialize executor.

        Args:
            policy: Default policy used when run() gets none
            sleep: Awaitable sleep used between attempts
        """
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy | None = None,
    ) -> T:
        """Invoke operation until it succeeds or attempts run out.

        Args:
            operation: Zero-argument callable returning a fresh awaitable
                (a coroutine function, a lambda or a functools.partial)
            policy: Optional override of the default policy

        Returns:
            Result of the first successful attempt

        Raises:
            Exception: The last attempt's exception, unchanged
        """
        policy = policy or self.policy
        retry_condition = (
            retry_if_exception_type()
            if policy.retry_rejected
            else retry_if_not_exception_type(UpstreamRejected)
        )
        retrying = AsyncRetrying(
            stop=stop_after_attempt(policy.attempts),
            wait=wait_fixed(policy.delay),
            retry=retry_condition,
            sleep=self._sleep,
            before_sleep=_log_retry,
            reraise=True,
        )
        # Iterator form: the result of operation() is always awaited here,
        # whether or not tenacity recognises it as a coroutine function
        async for attempt in retrying:
            with attempt:
                return await operation()
        raise RuntimeError("retry loop ended without an outcome")


def _log_retry(retry_state: RetryCallState) -> None:
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Attempt {retry_state.attempt_number} failed: {exception}; retrying"
    )
