import pytest

from portfolio.security import RateLimiter, RateLimitExceeded


def test_limit_counts_per_identifier():
    limiter = RateLimiter()

    for _ in range(3):
        limiter.hit("10.0.0.1", limit=3, window_seconds=60)
    limiter.hit("10.0.0.2", limit=3, window_seconds=60)

    with pytest.raises(RateLimitExceeded) as exc_info:
        limiter.hit("10.0.0.1", limit=3, window_seconds=60)
    assert 1 <= exc_info.value.retry_after_seconds <= 60


def test_reset_clears_counters():
    limiter = RateLimiter()
    limiter.hit("ip", limit=1, window_seconds=60)

    limiter.reset()

    limiter.hit("ip", limit=1, window_seconds=60)


def test_expired_windows_are_swept():
    limiter = RateLimiter(sweep_threshold=10)

    for i in range(500):
        limiter.hit(f"10.0.{i // 256}.{i % 256}", limit=5, window_seconds=0)

    assert len(limiter) <= 10


def test_sweep_keeps_open_windows():
    limiter = RateLimiter(sweep_threshold=2)
    limiter.hit("a", limit=1, window_seconds=60)
    limiter.hit("b", limit=1, window_seconds=60)

    limiter.hit("c", limit=1, window_seconds=60)

    assert len(limiter) == 3
    with pytest.raises(RateLimitExceeded):
        limiter.hit("a", limit=1, window_seconds=60)
