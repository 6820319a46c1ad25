"""Tests for the rolling-window rate limiter."""

import asyncio
import time

import pytest

from tourscout.scrapers.utils.rate_limiter import RateLimiter, SiteRateLimiters


class TestRateLimiter:
    """Tests for RateLimiter."""

    async def test_third_task_waits_for_window(self):
        """Two per second: the third start is at least a window after the first."""
        limiter = RateLimiter(max_requests=2, period_seconds=1.0)
        starts = []

        async def task():
            starts.append(time.monotonic())
            return len(starts)

        t0 = time.monotonic()
        results = await asyncio.gather(*(limiter.schedule(task) for _ in range(3)))

        assert sorted(results) == [1, 2, 3]
        assert starts[1] - t0 < 0.5
        assert starts[2] - starts[0] >= 0.99

    async def test_fifo_admission_order(self):
        limiter = RateLimiter(max_requests=1, period_seconds=0.05)
        order = []

        def make_task(i):
            async def task():
                order.append(i)
            return task

        await asyncio.gather(*(limiter.schedule(make_task(i)) for i in range(5)))

        assert order == [0, 1, 2, 3, 4]

    async def test_min_interval_spaces_starts(self):
        limiter = RateLimiter(max_requests=10, period_seconds=1.0, min_interval_seconds=0.1)
        starts = []

        async def task():
            starts.append(time.monotonic())

        await asyncio.gather(*(limiter.schedule(task) for _ in range(3)))

        assert starts[1] - starts[0] >= 0.09
        assert starts[2] - starts[1] >= 0.09

    async def test_task_error_propagates_without_retry(self):
        limiter = RateLimiter(max_requests=5, period_seconds=1.0)
        calls = []

        async def failing():
            calls.append(1)
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await limiter.schedule(failing)

        assert len(calls) == 1
        stats = limiter.get_stats()
        assert stats["done"] == 1
        assert stats["running"] == 0
        assert stats["queued"] == 0

    def test_for_site_uses_one_minute_window(self):
        limiter = RateLimiter.for_site("tripadvisor", 20)

        assert limiter.max_requests == 20
        assert limiter.period_seconds == 60.0
        assert limiter.name == "tripadvisor"

    def test_invalid_limits_rejected(self):
        with pytest.raises(ValueError):
            RateLimiter(max_requests=0, period_seconds=1.0)
        with pytest.raises(ValueError):
            RateLimiter(max_requests=1, period_seconds=0)


class TestSiteRateLimiters:
    """Tests for the per-site limiter registry."""

    def test_same_site_shares_limiter(self):
        limiters = SiteRateLimiters()

        assert limiters.get("tripadvisor") is limiters.get("tripadvisor")
        assert limiters.get("tripadvisor") is not limiters.get("booking.com")

    def test_known_and_default_rates(self):
        limiters = SiteRateLimiters()

        assert limiters.get_current_rate("booking.com") == 15
        assert limiters.get_current_rate("unknown-site") == SiteRateLimiters.DEFAULT_RPM

    def test_registries_are_independent(self):
        first = SiteRateLimiters()
        second = SiteRateLimiters()

        assert first.get("tripadvisor") is not second.get("tripadvisor")

    def test_custom_limit_replaces_limiter(self):
        limiters = SiteRateLimiters(overrides={"getyourguide": 5})
        original = limiters.get("getyourguide")

        assert original.max_requests == 5

        limiters.set_custom_limit("getyourguide", 50)

        assert limiters.get("getyourguide") is not original
        assert limiters.get_current_rate("getyourguide") == 50
