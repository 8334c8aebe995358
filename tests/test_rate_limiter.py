from app.utils.rate_limiter import RateLimiter


def test_requests_within_limit_are_allowed():
    limiter = RateLimiter(window_size=60, max_requests=3)

    assert [limiter.is_rate_limited("read:1.2.3.4") for _ in range(3)] == [(False, 0)] * 3


def test_request_over_limit_gets_retry_after():
    limiter = RateLimiter(window_size=60, max_requests=2)
    limiter.is_rate_limited("write:1.2.3.4")
    limiter.is_rate_limited("write:1.2.3.4")

    limited, retry_after = limiter.is_rate_limited("write:1.2.3.4")

    assert limited is True
    assert 1 <= retry_after <= 61


def test_keys_are_counted_separately_and_reset_clears_them():
    limiter = RateLimiter(window_size=60, max_requests=1)
    limiter.is_rate_limited("a")

    assert limiter.is_rate_limited("b") == (False, 0)
    assert limiter.is_rate_limited("a")[0] is True

    limiter.reset()
    assert limiter.is_rate_limited("a") == (False, 0)
