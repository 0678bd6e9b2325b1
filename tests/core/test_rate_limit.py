"""
Tests for the sliding-window rate limiter.
"""
from patient_api.core.rate_limit import SlidingWindowRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def make_limiter(clock, limit=3, window=60):
    return SlidingWindowRateLimiter("test", limit=limit, window_seconds=window, message="slow down", clock=clock)


def test_blocks_after_limit_within_window():
    clock = FakeClock()
    limiter = make_limiter(clock)

    assert all(limiter.hit("1.2.3.4") for _ in range(3))
    assert limiter.hit("1.2.3.4") is False
    assert limiter.remaining("1.2.3.4") == 0


def test_clients_are_counted_separately():
    limiter = make_limiter(FakeClock(), limit=1)
    assert limiter.hit("1.1.1.1")
    assert limiter.hit("2.2.2.2")
    assert limiter.hit("1.1.1.1") is False


def test_old_requests_slide_out_of_window():
    clock = FakeClock()
    limiter = make_limiter(clock, limit=2, window=60)
    limiter.hit("ip")
    clock.now += 30
    limiter.hit("ip")
    assert limiter.hit("ip") is False

    clock.now += 31
    assert limiter.hit("ip")
    assert limiter.remaining("ip") == 0


def test_reset_forgets_client():
    limiter = make_limiter(FakeClock(), limit=1)
    limiter.hit("ip")
    limiter.reset("ip")
    assert limiter.hit("ip")
