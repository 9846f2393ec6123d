"""Unit tests for per-user admission and the token bucket."""

import pytest

from medassist.services.rate_limiter import RateLimiter, RateLimitSettings
from medassist.utils.token_bucket import TokenBucket


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestTokenBucket:
    def test_starts_full(self, clock):
        bucket = TokenBucket(capacity=2, rate=1.0, clock=clock)
        assert bucket.try_take()
        assert bucket.try_take()
        assert not bucket.try_take()

    def test_refills_at_rate(self, clock):
        bucket = TokenBucket(capacity=1, rate=0.5, clock=clock)
        assert bucket.try_take()
        assert bucket.seconds_until_token() == pytest.approx(2.0)

        clock.advance(2.0)
        assert bucket.try_take()

    def test_never_exceeds_capacity(self, clock):
        bucket = TokenBucket(capacity=2, rate=10.0, clock=clock)
        clock.advance(100)
        assert [bucket.try_take() for _ in range(3)] == [True, True, False]


class TestRateLimiter:
    def test_burst_then_deny(self, clock):
        """With burst B, B back-to-back calls pass and call B+1 is denied."""
        limiter = RateLimiter(RateLimitSettings(burst_capacity=5), clock=clock)

        results = [limiter.admit("alice") for _ in range(6)]

        assert results == [True] * 5 + [False]

    def test_refill_is_rpm_over_3600_per_second(self, clock):
        settings = RateLimitSettings(requests_per_minute=60, burst_capacity=1)
        limiter = RateLimiter(settings, clock=clock)
        assert settings.refill_per_second == pytest.approx(60 / 3600)

        assert limiter.admit("alice")
        clock.advance(59)
        assert not limiter.admit("alice")
        clock.advance(2)
        assert limiter.admit("alice")

    def test_users_are_independent(self, clock):
        limiter = RateLimiter(RateLimitSettings(burst_capacity=1), clock=clock)

        assert limiter.admit("alice")
        assert not limiter.admit("alice")
        assert limiter.admit("bob")
        assert len(limiter) == 2

    def test_hourly_ceiling(self, clock):
        settings = RateLimitSettings(
            requests_per_minute=3600 * 60, requests_per_hour=3, burst_capacity=100
        )
        limiter = RateLimiter(settings, clock=clock)

        assert [limiter.admit("alice") for _ in range(4)] == [True, True, True, False]

        clock.advance(3600)
        assert limiter.admit("alice")

    def test_disabled_admits_everything(self, clock):
        limiter = RateLimiter(RateLimitSettings(enabled=False, burst_capacity=1), clock=clock)

        assert all(limiter.admit("alice") for _ in range(50))
        assert len(limiter) == 0
