import pytest

from nestchat.core.circuit_breaker import BreakerState, CircuitBreaker
from nestchat.core.exceptions import CircuitOpenError, StreamCancelled, TooManyRequestsError


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def _fail():
    raise RuntimeError("provider down")


def _trip(breaker, times):
    for _ in range(times):
        with pytest.raises(RuntimeError):
            breaker.call(_fail)


def test_opens_after_max_failures():
    breaker = CircuitBreaker(max_failures=3, reset_timeout_seconds=60, clock=FakeClock())
    _trip(breaker, 2)
    assert breaker.state == BreakerState.CLOSED
    _trip(breaker, 1)
    assert breaker.state == BreakerState.OPEN


def test_open_circuit_rejects_without_invoking():
    breaker = CircuitBreaker(max_failures=3, reset_timeout_seconds=60, clock=FakeClock())
    _trip(breaker, 3)

    calls = []
    with pytest.raises(CircuitOpenError):
        breaker.call(lambda: calls.append("called"))
    assert calls == []


def test_half_open_success_closes_and_resets():
    clock = FakeClock()
    breaker = CircuitBreaker(max_failures=3, reset_timeout_seconds=60, clock=clock)
    _trip(breaker, 3)

    clock.advance(61)
    assert breaker.call(lambda: "ok") == "ok"
    assert breaker.state == BreakerState.CLOSED
    assert breaker.stats()["failures"] == 0


def test_half_open_failure_reopens():
    clock = FakeClock()
    breaker = CircuitBreaker(max_failures=3, reset_timeout_seconds=60, clock=clock)
    _trip(breaker, 3)

    clock.advance(61)
    _trip(breaker, 1)
    assert breaker.state == BreakerState.OPEN

    with pytest.raises(CircuitOpenError):
        breaker.call(lambda: "ok")


def test_half_open_admits_single_trial():
    clock = FakeClock()
    breaker = CircuitBreaker(max_failures=1, reset_timeout_seconds=10, clock=clock)
    _trip(breaker, 1)
    clock.advance(11)

    breaker.before_call()
    assert breaker.state == BreakerState.HALF_OPEN
    with pytest.raises(TooManyRequestsError):
        breaker.before_call()

    breaker.after_call(None)
    assert breaker.state == BreakerState.CLOSED


def test_cancellation_is_not_a_failure():
    breaker = CircuitBreaker(max_failures=1, reset_timeout_seconds=10, clock=FakeClock())

    def cancelled():
        raise StreamCancelled()

    with pytest.raises(StreamCancelled):
        breaker.call(cancelled)

    assert breaker.state == BreakerState.CLOSED
    assert breaker.stats()["failures"] == 0


def test_cancelled_trial_frees_half_open_slot():
    clock = FakeClock()
    breaker = CircuitBreaker(max_failures=1, reset_timeout_seconds=10, clock=clock)
    _trip(breaker, 1)
    clock.advance(11)

    def cancelled():
        raise StreamCancelled()

    with pytest.raises(StreamCancelled):
        breaker.call(cancelled)

    assert breaker.state == BreakerState.HALF_OPEN
    assert breaker.call(lambda: 42) == 42
    assert breaker.state == BreakerState.CLOSED


def test_reset_forces_closed():
    breaker = CircuitBreaker(max_failures=1, reset_timeout_seconds=60, clock=FakeClock())
    _trip(breaker, 1)
    breaker.reset()
    assert breaker.state == BreakerState.CLOSED
    assert breaker.call(lambda: "ok") == "ok"


class Interrupted(BaseException):
    pass


def test_interrupted_half_open_trial_frees_the_slot():
    clock = FakeClock()
    breaker = CircuitBreaker(max_failures=1, reset_timeout_seconds=60, clock=clock)
    _trip(breaker, 1)
    clock.advance(61)

    def interrupted():
        raise Interrupted()

    with pytest.raises(Interrupted):
        breaker.call(interrupted)

    assert breaker.stats()["failures"] == 1
    assert breaker.call(lambda: "ok") == "ok"
    assert breaker.state == BreakerState.CLOSED
