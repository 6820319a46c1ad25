"""Rolling-window rate limiter for per-site request pacing."""

import asyncio
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RateLimiter:
    """Admits at most ``max_requests`` task starts in any rolling window.

    Tasks are admitted strictly in submission order. A task that would exceed
    the limit waits until the oldest start inside the window ages out; it is
    never rejected. Errors raised by a task propagate to whoever scheduled it.
    """

    def __init__(
        self,
        max_requests: int,
        period_seconds: float,
        min_interval_seconds: float = 0.0,
        name: str = "default",
    ):
        """Initialize rate limiter.

        Args:
            max_requests: Maximum task starts per window
            period_seconds: Length of the rolling window in seconds
            min_interval_seconds: Minimum spacing between two consecutive starts
            name: Site key, used for logging only
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if period_seconds <= 0:
            raise ValueError("period_seconds must be positive")

        self.max_requests = max_requests
        self.period_seconds = period_seconds
        self.min_interval_seconds = max(0.0, min_interval_seconds)
        self.name = name

        self._starts: Deque[float] = deque()
        # asyncio.Lock wakes waiters in FIFO order, which gives us queue order
        self._admission = asyncio.Lock()
        self._queued = 0
        self._running = 0
        self._done = 0

    @classmethod
    def for_site(
        cls,
        site_name: str,
        requests_per_minute: int,
        min_interval_seconds: float = 0.0,
    ) -> "RateLimiter":
        """Create a limiter allowing ``requests_per_minute`` starts per 60 seconds."""
        return cls(
            max_requests=requests_per_minute,
            period_seconds=60.0,
            min_interval_seconds=min_interval_seconds,
            name=site_name,
        )

    def _prune(self, now: float) -> None:
        while self._starts and now - self._starts[0] >= self.period_seconds:
            self._starts.popleft()

    def _wait_time(self, now: float) -> float:
        """Seconds until another start is allowed (0 if allowed now)."""
        self._prune(now)
        wait = 0.0
        if len(self._starts) >= self.max_requests:
            wait = self._starts[0] + self.period_seconds - now
        if self.min_interval_seconds and self._starts:
            wait = max(wait, self._starts[-1] + self.min_interval_seconds - now)
        return max(0.0, wait)

    async def acquire(self) -> None:
        """Wait for an admission slot and record the start."""
        self._queued += 1
        try:
            async with self._admission:
                while True:
                    now = time.monotonic()
                    wait = self._wait_time(now)
                    if wait <= 0:
                        self._starts.append(now)
                        return
                    logger.debug(
                        "rate_limit_wait",
                        limiter=self.name,
                        wait_seconds=round(wait, 3),
                        queued=self._queued,
                    )
                    await asyncio.sleep(wait)
        finally:
            self._queued -= 1

    async def schedule(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run ``task`` once the window permits and return its result.

        Args:
            task: Zero-argument callable returning an awaitable

        Returns:
            Whatever the task returns
        """
        await self.acquire()
        self._running += 1
        try:
            return await task()
        finally:
            self._running -= 1
            self._done += 1

    def get_stats(self) -> Dict[str, Any]:
        """Return queue statistics for monitoring."""
        return {
            "name": self.name,
            "queued": self._queued,
            "running": self._running,
            "done": self._done,
            "max_requests": self.max_requests,
            "period_seconds": self.period_seconds,
        }


class SiteRateLimiters:
    """Caller-owned registry holding one independent limiter per site key.

    Limiters for different sites never interact, so scans against different
    sites can run concurrently without additional locking.
    """

    # Requests per minute for known travel sites
    SITE_LIMITS_RPM = {
        "tripadvisor": 20,
        "booking.com": 15,
        "getyourguide": 18,
        "peruforless": 30,
        "tour_operator": 30,
    }

    # Default rate limit for unknown sites
    DEFAULT_RPM = 30

    def __init__(self, overrides: Optional[Dict[str, int]] = None):
        """Initialize with an empty limiter dictionary.

        Args:
            overrides: Optional site key -> requests-per-minute overrides
        """
        self._limits = dict(self.SITE_LIMITS_RPM)
        if overrides:
            self._limits.update(overrides)
        self._limiters: Dict[str, RateLimiter] = {}

    def get(self, site_key: str) -> RateLimiter:
        """Get or create the limiter for a site.

        Args:
            site_key: Site key (scraper type or hostname)

        Returns:
            RateLimiter instance for this site
        """
        if site_key not in self._limiters:
            rpm = self._limits.get(site_key, self.DEFAULT_RPM)
            self._limiters[site_key] = RateLimiter.for_site(site_key, rpm)
            logger.info("rate_limiter_created", site=site_key, requests_per_minute=rpm)
        return self._limiters[site_key]

    def set_custom_limit(self, site_key: str, rpm: int) -> None:
        """Replace the limiter for a site with a new requests-per-minute limit."""
        self._limits[site_key] = rpm
        self._limiters[site_key] = RateLimiter.for_site(site_key, rpm)

    def get_current_rate(self, site_key: str) -> int:
        """Get the configured requests-per-minute for a site."""
        return self.get(site_key).max_requests
