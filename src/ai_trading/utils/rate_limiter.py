"""
Rate limiter for Yahoo Finance calls.

Yahoo answers bursts with 429 "Too Many Requests". Requests are spaced
by a minimum delay, capped per minute and per hour, and rate-limit
errors are retried with exponential backoff.
"""

import asyncio
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from ai_trading.config.settings import Settings


@dataclass
class RateLimiterConfig:
    """Configuration for rate limiter."""

    requests_per_minute: int = 60
    requests_per_hour: int = 2000  # yfinance allows ~2000/hour

    min_delay_between_requests: float = 0.2

    initial_backoff: float = 5.0
    max_backoff: float = 120.0
    backoff_multiplier: float = 2.0

    max_retries: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimiterConfig":
        return cls(
            requests_per_minute=settings.yf_requests_per_minute,
            min_delay_between_requests=settings.yf_min_request_delay,
            initial_backoff=settings.yf_initial_backoff,
            max_backoff=settings.yf_max_backoff,
            max_retries=settings.yf_max_retries,
        )


def is_rate_limit_error(error: Exception) -> bool:
    """True when the provider rejected the request for exceeding its limits."""
    message = str(error).lower()
    return "rate limit" in message or "too many requests" in message


@dataclass
class RateLimiter:
    """
    Sliding-window rate limiter with exponential backoff.

    Request timestamps are kept for the last minute and hour; ``acquire``
    sleeps until another request fits in both windows.
    """

    config: RateLimiterConfig = field(default_factory=RateLimiterConfig)

    _minute_requests: deque = field(default_factory=deque)
    _hour_requests: deque = field(default_factory=deque)
    _last_request_time: float = 0.0

    _current_backoff: float = 0.0
    _consecutive_errors: int = 0

    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def _clean_old_requests(self, now: float) -> None:
        while self._minute_requests and now - self._minute_requests[0] > 60:
            self._minute_requests.popleft()
        while self._hour_requests and now - self._hour_requests[0] > 3600:
            self._hour_requests.popleft()

    def _get_wait_time(self) -> float:
        """Seconds to wait before the next request may go out."""
        now = time.monotonic()
        self._clean_old_requests(now)

        wait_times = []

        time_since_last = now - self._last_request_time
        if time_since_last < self.config.min_delay_between_requests:
            wait_times.append(self.config.min_delay_between_requests - time_since_last)

        if len(self._minute_requests) >= self.config.requests_per_minute:
            wait_times.append(60 - (now - self._minute_requests[0]) + 1)

        if len(self._hour_requests) >= self.config.requests_per_hour:
            wait_times.append(3600 - (now - self._hour_requests[0]) + 1)

        return max(wait_times) if wait_times else 0.0

    async def acquire(self) -> None:
        """Wait until a request can be made within the limits, then record it."""
        async with self._lock:
            wait_time = self._get_wait_time()
            if wait_time > 0:
                logger.debug(f"Rate limiter: waiting {wait_time:.1f}s")
                await asyncio.sleep(wait_time)

            now = time.monotonic()
            self._minute_requests.append(now)
            self._hour_requests.append(now)
            self._last_request_time = now

    def record_success(self) -> None:
        """Reset backoff after a successful request."""
        self._consecutive_errors = 0
        self._current_backoff = 0.0

    def record_rate_limit_error(self) -> float:
        """Grow the backoff and return the seconds to wait."""
        self._consecutive_errors += 1

        if self._current_backoff == 0:
            self._current_backoff = self.config.initial_backoff
        else:
            self._current_backoff = min(
                self._current_backoff * self.config.backoff_multiplier,
                self.config.max_backoff,
            )

        logger.warning(
            f"Rate limit hit! Backoff: {self._current_backoff:.1f}s "
            f"(error #{self._consecutive_errors})"
        )
        return self._current_backoff


async def rate_limited_call(
    func: Callable,
    *args,
    rate_limiter: RateLimiter,
    **kwargs,
) -> Any:
    """
    Run a blocking call in the default executor under the rate limiter.

    Rate-limit errors are retried up to ``max_retries`` times; any other
    error, or the last rate-limit error, is raised to the caller.
    """
    loop = asyncio.get_running_loop()
    retries = 0

    while True:
        await rate_limiter.acquire()
        try:
            result = await loop.run_in_executor(None, lambda: func(*args, **kwargs))
        except Exception as e:
            if not is_rate_limit_error(e) or retries >= rate_limiter.config.max_retries:
                raise
            retries += 1
            backoff = rate_limiter.record_rate_limit_error()
            await asyncio.sleep(backoff)
            continue

        rate_limiter.record_success()
        return result
