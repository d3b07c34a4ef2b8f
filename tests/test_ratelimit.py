"""Tests for token-bucket rate limiting."""

import pytest

from conftest import FakeClock
from treasury_aggregator.config import RateLimitConfig
from treasury_aggregator.transport.ratelimit import RateLimiter, TokenBucket


def test_bucket_spaces_calls():
    clock = FakeClock()
    bucket = TokenBucket(rate=0.5, clock=clock, sleep=clock.sleep)

    assert bucket.acquire() == 0.0
    assert bucket.acquire() == pytest.approx(2.0)
    assert clock.sleeps == [pytest.approx(2.0)]


def test_bucket_refills_with_time():
    clock = FakeClock()
    bucket = TokenBucket(rate=4.0, clock=clock, sleep=clock.sleep)
    bucket.acquire()

    clock.now += 10

    assert bucket.acquire() == 0.0
    assert clock.sleeps == []


def test_bucket_burst():
    clock = FakeClock()
    bucket = TokenBucket(rate=1.0, burst=2, clock=clock, sleep=clock.sleep)

    assert [bucket.acquire() for _ in range(3)] == [0.0, 0.0, pytest.approx(1.0)]


def test_bucket_rejects_non_positive_rate():
    with pytest.raises(ValueError, match="rate must be positive"):
        TokenBucket(rate=0)


def test_limiter_lanes_are_independent():
    clock = FakeClock()
    limiter = RateLimiter(
        {"spacescan": RateLimitConfig(rate=4.0), "mintgarden": RateLimitConfig(rate=5.0)},
        clock=clock,
        sleep=clock.sleep,
    )

    limiter.acquire("spacescan")
    limiter.acquire("mintgarden")

    assert clock.sleeps == []
    assert limiter.acquire("spacescan") == pytest.approx(0.25)
    assert sorted(limiter.lanes) == ["mintgarden", "spacescan"]


def test_unconfigured_lane_never_blocks():
    clock = FakeClock()
    limiter = RateLimiter({}, clock=clock, sleep=clock.sleep)

    assert limiter.acquire("unknown") == 0.0
    assert limiter.acquire("unknown") == 0.0
    assert limiter.acquire(None) == 0.0
    assert clock.sleeps == []
