"""
Circuit Breaker - Stop calling a failing dependency for a cooldown period.

One breaker instance guards one dependency (the LLM provider) and is
shared by every request in the process.

States:
- closed:    calls pass; failures are counted
- open:      calls are rejected with CircuitOpenError until the reset
             timeout has elapsed since the last failure
- half-open: exactly one trial call is admitted; success closes the
             circuit, failure opens it again

Bookkeeping happens in two short critical sections (before_call and
after_call); the guarded function itself runs outside the lock.
"""
import threading
import time
from enum import Enum
from typing import Callable, Dict, Optional, TypeVar

from nestchat.core.exceptions import CircuitOpenError, StreamCancelled, TooManyRequestsError
from nestchat.core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class BreakerState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    HALF_OPEN = "half-open"
    OPEN = "open"


class CircuitBreaker:
    """
    Thread-safe circuit breaker.

    Example:
        >>> breaker = CircuitBreaker(max_failures=3, reset_timeout_seconds=60)
        >>> breaker.call(lambda: llm.chat_completion(request))
    """

    def __init__(
        self,
        max_failures: int = 5,
        reset_timeout_seconds: float = 300,
        name: str = "llm",
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the breaker in the closed state.

        Args:
            max_failures: Failures that trip the breaker open
            reset_timeout_seconds: Cooldown before a half-open trial
            name: Dependency name used in log lines
            clock: Monotonic time source (injectable for tests)
        """
        self.max_failures = max_failures
        self.reset_timeout = reset_timeout_seconds
        self.name = name
        self._clock = clock

        self._lock = threading.Lock()
        self._state = BreakerState.CLOSED
        self._failures = 0
        self._successes = 0
        self._trial_in_flight = False
        self._last_failure_time: Optional[float] = None
        self._last_state_change = clock()

        logger.info(
            f"CircuitBreaker[{name}] initialized: max_failures={max_failures}, "
            f"reset_timeout={reset_timeout_seconds}s"
        )

    def call(self, fn: Callable[[], T]) -> T:
        """
        Execute fn under breaker protection.

        Raises:
            CircuitOpenError: The circuit is open; fn was not invoked
            TooManyRequestsError: A half-open trial is already running
            Exception: Whatever fn raised (after it is recorded as a failure)
        """
        self.before_call()

        try:
            result = fn()
        except StreamCancelled:
            # The caller went away; that says nothing about the dependency
            self.release()
            raise
        except Exception as e:
            self.after_call(e)
            raise
        except BaseException:
            # Interrupts and generator teardown free the trial slot uncounted
            self.release()
            raise

        self.after_call(None)
        return result

    def before_call(self) -> None:
        """Admit or reject a call; moves open -> half-open once cooled down."""
        with self._lock:
            now = self._clock()

            if self._state == BreakerState.CLOSED:
                return

            if self._state == BreakerState.OPEN:
                if self._last_failure_time is not None and now - self._last_failure_time < self.reset_timeout:
                    raise CircuitOpenError(f"circuit breaker '{self.name}' is open")
                self._transition(BreakerState.HALF_OPEN, now)
                self._successes = 0
                self._trial_in_flight = True
                return

            # Half-open admits a single trial
            if self._trial_in_flight:
                raise TooManyRequestsError()
            self._trial_in_flight = True

    def after_call(self, error: Optional[BaseException]) -> None:
        """Record the outcome of an admitted call."""
        with self._lock:
            now = self._clock()
            self._trial_in_flight = False

            if error is not None:
                self._failures += 1
                self._last_failure_time = now

                if self._state == BreakerState.CLOSED and self._failures >= self.max_failures:
                    self._transition(BreakerState.OPEN, now)
                    logger.warning(
                        f"CircuitBreaker[{self.name}] opened after {self._failures} failures: {error}"
                    )
                elif self._state == BreakerState.HALF_OPEN:
                    self._transition(BreakerState.OPEN, now)
                    logger.warning(f"CircuitBreaker[{self.name}] trial call failed, re-opening: {error}")
                return

            self._successes += 1

            if self._state == BreakerState.HALF_OPEN:
                self._transition(BreakerState.CLOSED, now)
                self._failures = 0
                self._successes = 0
                logger.info(f"CircuitBreaker[{self.name}] closed after successful trial")
            elif self._last_failure_time is not None and now - self._last_failure_time > self.reset_timeout:
                # Old failures no longer count against a healthy dependency
                self._failures = 0

    def release(self) -> None:
        """Give back an admitted call without recording success or failure."""
        with self._lock:
            self._trial_in_flight = False

    @property
    def state(self) -> BreakerState:
        """Current state."""
        with self._lock:
            return self._state

    def stats(self) -> Dict[str, object]:
        """Breaker statistics for health endpoints."""
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "failures": self._failures,
                "successes": self._successes,
            }

    def reset(self) -> None:
        """Force the breaker back to closed."""
        with self._lock:
            self._transition(BreakerState.CLOSED, self._clock())
            self._failures = 0
            self._successes = 0
            self._trial_in_flight = False

    def _transition(self, state: BreakerState, now: float) -> None:
        self._state = state
        self._last_state_change = now


# Global breaker guarding the LLM provider
_llm_breaker: Optional[CircuitBreaker] = None


def get_llm_circuit_breaker() -> CircuitBreaker:
    """Get or create the process-wide breaker for LLM calls."""
    global _llm_breaker
    if _llm_breaker is None:
        from nestchat.core.config import get_settings
        settings = get_settings()
        _llm_breaker = CircuitBreaker(
            max_failures=settings.breaker_max_failures,
            reset_timeout_seconds=settings.breaker_reset_timeout_seconds,
            name="llm"
        )
    return _llm_breaker


def reset_llm_circuit_breaker() -> None:
    """Drop the global breaker (useful for testing)."""
    global _llm_breaker
    _llm_breaker = None
