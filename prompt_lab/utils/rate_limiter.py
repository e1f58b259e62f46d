"""
Rate Limiter - Client-side throttling for provider API calls.

Provides sliding-window rate limiting with configurable:
- Requests per minute (RPM)
- Requests per second (RPS)
- Minimum delay between requests

Usage:
    limiter = RateLimiter(requests_per_minute=30, min_request_delay=0.5)

    # Suspend before making an LLM call (waits if the limit is exceeded)
    await limiter.acquire()
"""

import asyncio
import time
from collections import deque
from typing import Callable, Deque, Optional

from prompt_lab.utils.logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Sliding-window rate limiter for async provider calls.

    One instance is owned by each ``LLMClient``; nothing is shared
    process-wide.
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        requests_per_second: int = 0,
        min_request_delay: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize rate limiter.

        Args:
            requests_per_minute: Max requests per minute (0 = unlimited)
            requests_per_second: Max requests per second (0 = unlimited, overrides RPM if set)
            min_request_delay: Minimum seconds between requests (0 = no delay)
            clock: Monotonic time source
        """
        self._lock = asyncio.Lock()
        self._request_times: Deque[float] = deque()
        self._last_request_time: Optional[float] = None
        self._clock = clock

        self.requests_per_minute = requests_per_minute
        self.requests_per_second = requests_per_second
        self.min_request_delay = min_request_delay

        if requests_per_second > 0:
            self._window_seconds = 1.0
            self._max_requests = requests_per_second
        elif requests_per_minute > 0:
            self._window_seconds = 60.0
            self._max_requests = requests_per_minute
        else:
            self._window_seconds = 0.0
            self._max_requests = 0

        logger.debug(
            f"Rate limiter initialized: RPM={requests_per_minute}, "
            f"RPS={requests_per_second}, min_delay={min_request_delay}s"
        )

    @classmethod
    def from_config(cls, config) -> "RateLimiter":
        """Build a limiter from a ``RateLimitConfig``."""
        return cls(
            requests_per_minute=config.requests_per_minute,
            requests_per_second=config.requests_per_second,
            min_request_delay=config.min_request_delay,
        )

    def _cleanup_old_requests(self, current_time: float) -> None:
        """Remove request timestamps outside the current window."""
        if self._window_seconds <= 0:
            return

        cutoff = current_time - self._window_seconds
        while self._request_times and self._request_times[0] <= cutoff:
            self._request_times.popleft()

    def _compute_wait(self, current_time: float) -> float:
        total_wait = 0.0

        if self.min_request_delay > 0 and self._last_request_time is not None:
            since_last = current_time - self._last_request_time
            if since_last < self.min_request_delay:
                total_wait = self.min_request_delay - since_last

        if self._max_requests > 0:
            self._cleanup_old_requests(current_time + total_wait)
            if len(self._request_times) >= self._max_requests:
                oldest = self._request_times[0]
                window_wait = oldest + self._window_seconds - current_time
                total_wait = max(total_wait, window_wait)

        return max(total_wait, 0.0)

    async def acquire(self) -> float:
        """
        Wait until a request can be made within rate limits.

        Returns:
            Actual wait time in seconds (0 if no wait needed)
        """
        async with self._lock:
            total_wait = 0.0
            while True:
                wait = self._compute_wait(self._clock())
                if wait <= 0:
                    break
                logger.debug(f"Rate limiter: waiting {wait:.2f}s")
                await asyncio.sleep(wait)
                total_wait += wait

            now = self._clock()
            self._request_times.append(now)
            self._last_request_time = now
            return total_wait

    def get_stats(self) -> dict:
        """Get current rate limiter statistics."""
        self._cleanup_old_requests(self._clock())
        return {
            "requests_in_window": len(self._request_times),
            "max_requests": self._max_requests,
            "window_seconds": self._window_seconds,
            "min_request_delay": self.min_request_delay,
            "requests_per_minute": self.requests_per_minute,
            "requests_per_second": self.requests_per_second,
        }

    def reset(self) -> None:
        """Reset rate limiter state (clear all tracked requests)."""
        self._request_times.clear()
        self._last_request_time = None
        logger.debug("Rate limiter reset")
