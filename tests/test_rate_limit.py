"""Tests for rate limiter."""

from mlbuild.api.rate_limit import RateLimiter


def test_allows_within_limit():
    """Uploads within the limit should be allowed."""
    limiter = RateLimiter(max_requests=3, window_seconds=60)
    assert limiter.is_allowed("7") is True
    assert limiter.is_allowed("7") is True
    assert limiter.is_allowed("7") is True


def test_blocks_over_limit():
    limiter = RateLimiter(max_requests=2, window_seconds=60)
    assert limiter.is_allowed("7") is True
    assert limiter.is_allowed("7") is True
    assert limiter.is_allowed("7") is False


def test_separate_keys():
    """Different users have independent limits."""
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    assert limiter.is_allowed("7") is True
    assert limiter.is_allowed("8") is True
    assert limiter.is_allowed("7") is False


def test_window_expiry():
    """Uploads are allowed again after the window expires."""
    import time

    limiter = RateLimiter(max_requests=1, window_seconds=0.1)
    assert limiter.is_allowed("7") is True
    assert limiter.is_allowed("7") is False
    time.sleep(0.15)
    assert limiter.is_allowed("7") is True


def test_reset_forgets_keys():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    assert limiter.is_allowed("7") is True
    limiter.reset()
    assert limiter.is_allowed("7") is True
