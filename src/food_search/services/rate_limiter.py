"""Sliding-window rate limiting for outbound API calls."""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

_logger = logging.getLogger(__name__)


class RateLimiter(Protocol):
    """Admission control for calls against a quota-limited service."""

    async def admit(self) -> None:
        """Wait until a request may be sent and record it."""


@dataclass(frozen=True)
class RateLimiterStats:
    """Snapshot of the limiter's current window."""

    current_requests: int
    max_requests: int
    remaining_requests: int
    window_ms: int
    utilization_percent: float


class SlidingWindowRateLimiter(RateLimiter):
    """Sliding-window log limiter.

    At most ``max_requests`` admissions are recorded within any trailing
    ``window_ms`` interval. Callers over the limit are delayed, never
    rejected. The window slides with every check instead of resetting on
    fixed boundaries.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_ms: int = 60000,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._window_seconds = window_ms / 1000
        self._clock = clock
        self._sleep = sleep
        self._timestamps: deque[float] = deque()
        self._lock = asyncio.Lock()
        _logger.info(
            "Rate limiter initialized: %s requests per %sms", max_requests, window_ms
        )

    async def admit(self) -> None:
        """Block until the window has capacity, then record the request."""
        waited = False
        while True:
            async with self._lock:
                now = self._clock()
                self._prune(now)
                if len(self._timestamps) < self.max_requests:
                    self._timestamps.append(now)
                    _logger.debug(
                        "Request admitted%s (%s/%s)",
                        " after waiting" if waited else "",
                        len(self._timestamps),
                        self.max_requests,
                    )
                    return
                wait = max(0.0, self._timestamps[0] + self._window_seconds - now)
            # Sleep outside the lock so other callers can inspect the window.
            _logger.warning(
                "Rate limit reached (%s/%s), waiting %.0fms",
                self.max_requests,
                self.max_requests,
                wait * 1000,
            )
            waited = True
            await self._sleep(wait)

    def requests_in_window(self) -> int:
        """Return the number of requests recorded in the current window."""
        self._prune(self._clock())
        return len(self._timestamps)

    def remaining_capacity(self) -> int:
        """Return how many requests may be admitted right now."""
        return max(0, self.max_requests - self.requests_in_window())

    def is_admittable_now(self) -> bool:
        """Return whether admit() would return without waiting."""
        return self.requests_in_window() < self.max_requests

    def stats(self) -> RateLimiterStats:
        """Return a snapshot of window usage."""
        current = self.requests_in_window()
        return RateLimiterStats(
            current_requests=current,
            max_requests=self.max_requests,
            remaining_requests=max(0, self.max_requests - current),
            window_ms=self.window_ms,
            utilization_percent=current / self.max_requests * 100,
        )

    def reset(self) -> None:
        """Forget every recorded request."""
        self._timestamps.clear()
        _logger.info("Rate limiter reset")

    def _prune(self, now: float) -> None:
        cutoff = now - self._window_seconds
        removed = 0
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()
            removed += 1
        if removed:
            _logger.debug("Pruned %s expired timestamps", removed)
