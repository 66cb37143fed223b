from __future__ import annotations

import pytest

from core.rate_limiter import RateLimiter, RateLimitExceeded


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_rate_limiter_allows_after_window_passes() -> None:
    clock = FakeClock()
    limiter = RateLimiter(max_per_minute=2, clock=clock)
    limiter.check("actor")
    limiter.check("actor")

    clock.now += 60
    limiter.check("actor")


def test_rate_limiter_raises_when_exceeded() -> None:
    clock = FakeClock()
    limiter = RateLimiter(max_per_minute=1, clock=clock)
    limiter.check("actor")

    clock.now += 15
    with pytest.raises(RateLimitExceeded) as exc_info:
        limiter.check("actor")

    assert exc_info.value.actor == "actor"
    assert exc_info.value.retry_after == pytest.approx(45.0)
    assert "rate_limit_exceeded" in str(exc_info.value)


def test_rate_limiter_tracks_actors_separately() -> None:
    limiter = RateLimiter(max_per_minute=1, clock=FakeClock())
    limiter.check("mcp")
    limiter.check("http")

    assert limiter.remaining("mcp") == 0
    assert limiter.remaining("other") == 1


def test_rejected_calls_do_not_consume_budget() -> None:
    clock = FakeClock()
    limiter = RateLimiter(max_per_minute=1, clock=clock)
    limiter.check("actor")
    with pytest.raises(RateLimitExceeded):
        limiter.check("actor")

    clock.now += 61
    assert limiter.remaining("actor") == 1


def test_rate_limiter_rejects_non_positive_limit() -> None:
    with pytest.raises(ValueError):
        RateLimiter(max_per_minute=0)
