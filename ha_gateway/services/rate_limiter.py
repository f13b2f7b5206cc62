"""Fixed-window rate limiter keyed by caller identity.

The window resets completely once it expires rather than sliding, so a
caller can fit up to ``2 * max_requests - 1`` operations into a short
burst straddling a window boundary. This matches the gateway's historic
behaviour; switching to a sliding window would change which requests
are rejected.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_CALLER = "default"

TimeFn = Callable[[], float]


@dataclass
class RateWindowEntry:
    """Usage of one caller within its current window."""

    count: int
    reset_time: float


class FixedWindowRateLimiter:
    """Count accepted operations per caller within fixed windows.

    The entry map is owned by this instance; construct one per running
    gateway. try_acquire never awaits, so a read-modify-write on the map
    cannot interleave with another task.
    """

    def __init__(
        self,
        *,
        max_requests: int,
        window_seconds: float,
        now_fn: TimeFn | None = None,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._now = now_fn or time.monotonic
        self._entries: dict[str, RateWindowEntry] = {}

    def try_acquire(self, caller_id: str = DEFAULT_CALLER) -> bool:
        """Record an operation for the caller if the window allows it.

        Args:
            caller_id: Key under which usage is tracked

        Returns:
            True if the operation may proceed, False if the window is full
        """
        now = self._now()
        entry = self._entries.get(caller_id)

        if entry is None or now >= entry.reset_time:
            self._entries[caller_id] = RateWindowEntry(
                count=1, reset_time=now + self.window_seconds
            )
            return True

        if entry.count < self.max_requests:
            entry.count += 1
            return True

        logger.warning(
            f"Rate limit reached for '{caller_id}' "
            f"({entry.count}/{self.max_requests})"
        )
        return False

    def retry_after(self, caller_id: str = DEFAULT_CALLER) -> float:
        """Seconds until the caller's current window resets (0 if none)."""
        entry = self._entries.get(caller_id)
        if entry is None:
            return 0.0
        return max(0.0, entry.reset_time - self._now())

    def get_entry(self, caller_id: str = DEFAULT_CALLER) -> RateWindowEntry | None:
        return self._entries.get(caller_id)
