from trademaster.services.rate_limiter import SlidingWindowRateLimiter


class Ticker:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_allows_up_to_limit_within_window():
    limiter = SlidingWindowRateLimiter(clock=Ticker())
    assert [limiter.allow("k", 2, 60) for _ in range(3)] == [True, True, False]


def test_window_slides():
    ticker = Ticker()
    limiter = SlidingWindowRateLimiter(clock=ticker)
    assert limiter.allow("k", 1, 60)
    ticker.now += 59
    assert not limiter.allow("k", 1, 60)
    ticker.now += 1
    assert limiter.allow("k", 1, 60)


def test_keys_are_independent_and_resettable():
    limiter = SlidingWindowRateLimiter(clock=Ticker())
    assert limiter.allow("a", 1, 60)
    assert limiter.allow("b", 1, 60)
    assert not limiter.allow("a", 1, 60)
    limiter.reset("a")
    assert limiter.allow("a", 1, 60)


def test_idle_keys_are_dropped():
    ticker = Ticker()
    limiter = SlidingWindowRateLimiter(clock=ticker)
    for ip in ("10.0.0.1", "10.0.0.2", "10.0.0.3"):
        assert limiter.allow(f"signin:min:{ip}", 5, 60)
    assert len(limiter) == 3

    ticker.now += 61
    assert limiter.allow("signin:min:10.0.0.4", 5, 60)
    assert len(limiter) == 1


def test_keys_inside_their_window_survive_a_sweep():
    ticker = Ticker()
    limiter = SlidingWindowRateLimiter(clock=ticker)
    assert limiter.allow("forgot:hour:a", 1, 3600)
    assert limiter.allow("signin:min:b", 1, 60)

    ticker.now += 120
    assert limiter.allow("signin:min:c", 1, 60)
    assert len(limiter) == 2
    assert not limiter.allow("forgot:hour:a", 1, 3600)
