from waitlist.middleware.rate_limit import RateLimiter
from tests.helpers import FakeClock


def test_burst_over_the_limit_is_rejected() -> None:
    limiter = RateLimiter(clock=FakeClock(0))

    results = [limiter.hit("10.0.0.1", max_requests=2, window_sec=60) for _ in range(3)]

    assert results == [True, True, False]


def test_window_slides() -> None:
    clock = FakeClock(0)
    limiter = RateLimiter(clock=clock)
    limiter.hit("10.0.0.1", max_requests=1, window_sec=60)

    clock.advance(60)

    assert limiter.hit("10.0.0.1", max_requests=1, window_sec=60)


def test_idle_clients_are_evicted() -> None:
    clock = FakeClock(0)
    limiter = RateLimiter(clock=clock)
    for n in range(100):
        limiter.hit(f"10.0.0.{n}", max_requests=5, window_sec=60)
    assert len(limiter) == 100

    clock.advance(61)
    limiter.hit("10.0.1.1", max_requests=5, window_sec=60)

    assert len(limiter) == 1


def test_active_clients_survive_eviction() -> None:
    clock = FakeClock(0)
    limiter = RateLimiter(clock=clock)
    limiter.hit("idle", max_requests=5, window_sec=60)
    clock.advance(30)
    limiter.hit("active", max_requests=5, window_sec=60)

    clock.advance(40)
    limiter.hit("new", max_requests=5, window_sec=60)

    assert len(limiter) == 2
