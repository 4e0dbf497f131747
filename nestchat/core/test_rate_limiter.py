import threading

from nestchat.core.rate_limiter import RateLimiter, TokenBucket, WebSocketLimiter


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def test_bucket_allows_burst_then_refills():
    clock = FakeClock()
    bucket = TokenBucket(rate=1.0, burst=2, clock=clock)

    assert bucket.allow()
    assert bucket.allow()
    assert not bucket.allow()

    clock.advance(1.0)
    assert bucket.allow()
    assert not bucket.allow()


def test_bucket_never_exceeds_burst():
    clock = FakeClock()
    bucket = TokenBucket(rate=10.0, burst=3, clock=clock)
    clock.advance(100)
    assert bucket.tokens == 3


def test_limiter_keys_are_independent():
    limiter = RateLimiter(rate_per_second=1, burst=1, clock=FakeClock(), start_sweeper=False)

    assert limiter.is_allowed("10.0.0.1") == (True, 0)
    assert limiter.is_allowed("10.0.0.1")[0] is False
    assert limiter.is_allowed("10.0.0.2")[0] is True


def test_retry_after_reports_wait():
    limiter = RateLimiter(rate_per_second=0.5, burst=1, clock=FakeClock(), start_sweeper=False)
    limiter.is_allowed("user-1")
    assert limiter.get_retry_after("user-1") == 2


def test_sweep_evicts_idle_buckets():
    clock = FakeClock()
    limiter = RateLimiter(
        rate_per_second=1, burst=1, idle_ttl_seconds=300, clock=clock, start_sweeper=False
    )
    limiter.is_allowed("old")
    clock.advance(200)
    limiter.is_allowed("fresh")
    clock.advance(150)

    assert limiter.sweep() == 1
    assert limiter.active_identifiers == 1


def test_concurrent_burst_does_not_double_spend():
    limiter = RateLimiter(rate_per_second=0, burst=5, clock=FakeClock(), start_sweeper=False)
    results = []
    lock = threading.Lock()

    def hit():
        allowed, _ = limiter.is_allowed("shared")
        with lock:
            results.append(allowed)

    threads = [threading.Thread(target=hit) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 5


def test_websocket_limiter_allow_n():
    clock = FakeClock()
    limiter = WebSocketLimiter(messages_per_minute=6, clock=clock)

    assert limiter.allow_n(5)
    assert not limiter.allow_n(2)
    assert limiter.allow()
    assert not limiter.allow()

    clock.advance(10)
    assert limiter.allow()


def test_background_sweeper_stops():
    limiter = RateLimiter(rate_per_second=1, burst=1, idle_ttl_seconds=0.01)
    limiter.stop()
    assert limiter._stop_event.is_set()
