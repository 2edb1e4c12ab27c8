"""Tests for the rate limiters."""

import pytest

from review_dashboard.core.config import RateLimitSettings, RedisSettings
from review_dashboard.core.rate_limiting import (
    InMemoryFixedWindowLimiter,
    InMemoryTokenBucketLimiter,
    RateLimit,
    RateLimitAlgorithm,
    RateLimiter,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestTokenBucket:

    async def test_allows_up_to_limit_then_blocks(self):
        limiter = InMemoryTokenBucketLimiter(clock=FakeClock())
        results = [await limiter.check_limit("ip", limit=3, period=60) for _ in range(4)]

        assert [r.allowed for r in results] == [True, True, True, False]
        assert results[-1].retry_after >= 1

    async def test_refills_over_time(self):
        clock = FakeClock()
        limiter = InMemoryTokenBucketLimiter(clock=clock)
        for _ in range(2):
            await limiter.check_limit("ip", limit=2, period=60)
        assert not (await limiter.check_limit("ip", limit=2, period=60)).allowed

        clock.now += 30
        assert (await limiter.check_limit("ip", limit=2, period=60)).allowed

    async def test_refilled_buckets_are_swept(self):
        clock = FakeClock()
        limiter = InMemoryTokenBucketLimiter(clock=clock, sweep_interval=60)
        for n in range(50):
            await limiter.check_limit(f"10.0.0.{n}", limit=10, period=60)

        clock.now += 61
        await limiter.check_limit("10.0.1.1", limit=10, period=60)

        assert len(limiter) == 1

    async def test_key_count_is_bounded(self):
        clock = FakeClock()
        limiter = InMemoryTokenBucketLimiter(clock=clock, max_keys=100)
        for n in range(500):
            await limiter.check_limit(f"client-{n}", limit=10, period=60)

        assert len(limiter) <= 100
        # the most recent client keeps its partly drained bucket
        assert (await limiter.check_limit("client-499", limit=10, period=60)).remaining == 8


class TestFixedWindow:

    async def test_counter_resets_each_window(self):
        clock = FakeClock(now=600.0)
        limiter = InMemoryFixedWindowLimiter(clock=clock)
        assert (await limiter.check_limit("ip", limit=1, period=60)).allowed
        assert not (await limiter.check_limit("ip", limit=1, period=60)).allowed

        clock.now += 60
        assert (await limiter.check_limit("ip", limit=1, period=60)).allowed

    async def test_closed_windows_are_swept(self):
        clock = FakeClock(now=600.0)
        limiter = InMemoryFixedWindowLimiter(clock=clock, sweep_interval=60)
        for n in range(50):
            await limiter.check_limit(f"10.0.0.{n}", limit=5, period=60)

        clock.now += 60
        await limiter.check_limit("10.0.1.1", limit=5, period=60)

        assert len(limiter) == 1

    async def test_key_count_is_bounded(self):
        limiter = InMemoryFixedWindowLimiter(clock=FakeClock(now=600.0), max_keys=10)
        for n in range(100):
            await limiter.check_limit(f"client-{n}", limit=5, period=60)

        assert len(limiter) <= 10


class TestRateLimiter:

    @pytest.fixture
    def limiter(self) -> RateLimiter:
        return RateLimiter.from_settings(
            RateLimitSettings(PUBLIC_REVIEWS_RATE_LIMIT=2, PUBLIC_REVIEWS_RATE_PERIOD=900),
            RedisSettings(),
        )

    def test_named_limits_are_registered(self, limiter: RateLimiter):
        assert set(limiter.rate_limits) >= {"public_reviews", "hostaway_ingestion"}

    async def test_identifiers_are_limited_separately(self, limiter: RateLimiter):
        for _ in range(2):
            assert (await limiter.check_rate_limit("public_reviews", "10.0.0.1")).allowed
        assert not (await limiter.check_rate_limit("public_reviews", "10.0.0.1")).allowed
        assert (await limiter.check_rate_limit("public_reviews", "10.0.0.2")).allowed

    async def test_reset(self, limiter: RateLimiter):
        for _ in range(3):
            await limiter.check_rate_limit("public_reviews", "10.0.0.1")
        await limiter.reset_rate_limit("public_reviews", "10.0.0.1")
        assert (await limiter.check_rate_limit("public_reviews", "10.0.0.1")).allowed

    async def test_unknown_limit_is_permissive(self, limiter: RateLimiter):
        assert (await limiter.check_rate_limit("no_such_limit", "10.0.0.1")).allowed

    async def test_disabled_limiter_allows_everything(self):
        limiter = RateLimiter(enabled=False)
        limiter.add_rate_limit("tight", RateLimit(key="tight", limit=1, period=60, algorithm=RateLimitAlgorithm.FIXED_WINDOW))
        for _ in range(5):
            assert (await limiter.check_rate_limit("tight", "10.0.0.1")).allowed
