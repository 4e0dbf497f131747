"""
Rate Limiter - Control request frequency per identifier.

This module provides in-memory token-bucket rate limiting to:
- Prevent abuse
- Control LLM API costs
- Ensure fair resource usage

Buckets are keyed by IP address, user ID, or WebSocket connection.
A background sweeper evicts buckets that have been idle for longer than
the configured TTL so memory stays bounded.

For production with multiple instances, upgrade to Redis-backed limiter.
"""
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from nestchat.core.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_IDLE_TTL_SECONDS = 300.0


class TokenBucket:
    """
    Classic token bucket.

    Tokens refill continuously at `rate` per second up to `burst`.
    Each allowed event consumes tokens; consumption is serialized by
    an internal lock so concurrent bursts never double-spend.

    Example:
        >>> bucket = TokenBucket(rate=1.0, burst=2)
        >>> bucket.allow(), bucket.allow(), bucket.allow()
        (True, True, False)
    """

    def __init__(
        self,
        rate: float,
        burst: int,
        clock: Callable[[], float] = time.monotonic
    ):
        self.rate = rate
        self.burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last_refill = clock()
        self._lock = threading.Lock()

    def _refill(self, now: float) -> None:
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
        self._last_refill = now

    def allow_n(self, n: int) -> bool:
        """Consume n tokens if available; never consumes a partial amount."""
        with self._lock:
            self._refill(self._clock())
            if self._tokens >= n:
                self._tokens -= n
                return True
            return False

    def allow(self) -> bool:
        """Consume a single token if available."""
        return self.allow_n(1)

    @property
    def tokens(self) -> float:
        """Tokens currently available."""
        with self._lock:
            self._refill(self._clock())
            return self._tokens

    def retry_after(self, n: int = 1) -> float:
        """Seconds until n tokens will be available (0 if available now)."""
        with self._lock:
            self._refill(self._clock())
            missing = n - self._tokens
            if missing <= 0:
                return 0.0
            if self.rate <= 0:
                return math.inf
            return missing / self.rate


@dataclass
class _BucketEntry:
    bucket: TokenBucket
    last_seen: float


class RateLimiter:
    """
    Token-bucket rate limiter keyed per identifier.

    Example:
        >>> limiter = RateLimiter(rate_per_second=2, burst=5)
        >>> limiter.is_allowed("203.0.113.7")
        (True, 4)
    """

    def __init__(
        self,
        rate_per_second: float,
        burst: int,
        idle_ttl_seconds: float = DEFAULT_IDLE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        start_sweeper: bool = True
    ):
        """
        Initialize the rate limiter.

        Args:
            rate_per_second: Token refill rate for every bucket
            burst: Bucket capacity (maximum burst size)
            idle_ttl_seconds: Idle time after which a bucket is evicted
            clock: Monotonic time source (injectable for tests)
            start_sweeper: Run the eviction sweep on a daemon thread
        """
        self.rate = rate_per_second
        self.burst = burst
        self.idle_ttl = idle_ttl_seconds
        self._clock = clock

        self._buckets: Dict[str, _BucketEntry] = {}
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

        if start_sweeper:
            self._sweeper = threading.Thread(
                target=self._sweep_loop,
                name="rate-limiter-sweeper",
                daemon=True
            )
            self._sweeper.start()

        logger.info(
            f"RateLimiter initialized: {rate_per_second} tokens/s, burst={burst}, "
            f"idle_ttl={idle_ttl_seconds}s"
        )

    def get_limiter(self, identifier: str) -> TokenBucket:
        """
        Get (or lazily create) the bucket for an identifier.

        Every lookup refreshes the identifier's last-seen time.
        """
        with self._lock:
            now = self._clock()
            entry = self._buckets.get(identifier)
            if entry is None:
                entry = _BucketEntry(
                    bucket=TokenBucket(self.rate, self.burst, clock=self._clock),
                    last_seen=now
                )
                self._buckets[identifier] = entry
            else:
                entry.last_seen = now
            return entry.bucket

    def is_allowed(self, identifier: str) -> Tuple[bool, int]:
        """
        Check if a request is allowed for the given identifier.

        Args:
            identifier: IP address, user ID or connection ID

        Returns:
            Tuple of (is_allowed, remaining_requests)
        """
        bucket = self.get_limiter(identifier)
        allowed = bucket.allow()
        remaining = int(bucket.tokens)

        if not allowed:
            logger.warning(f"Rate limit exceeded for: {identifier[:8]}...")

        return allowed, remaining

    def get_retry_after(self, identifier: str) -> int:
        """Whole seconds until the identifier may send again (at least 1)."""
        wait = self.get_limiter(identifier).retry_after()
        if math.isinf(wait):
            return 60
        return max(1, math.ceil(wait))

    def sweep(self) -> int:
        """
        Evict buckets idle for longer than the TTL.

        Returns:
            Number of buckets removed
        """
        with self._lock:
            now = self._clock()
            stale = [
                identifier for identifier, entry in self._buckets.items()
                if now - entry.last_seen > self.idle_ttl
            ]
            for identifier in stale:
                del self._buckets[identifier]

        if stale:
            logger.debug(f"Rate limiter sweep: removed {len(stale)}, active={len(self._buckets)}")
        return len(stale)

    @property
    def active_identifiers(self) -> int:
        with self._lock:
            return len(self._buckets)

    def stop(self) -> None:
        """Stop the background sweeper."""
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1)

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.idle_ttl):
            self.sweep()


class WebSocketLimiter:
    """
    Message limiter for a single WebSocket connection.

    Allows `messages_per_minute` messages per minute with a burst of the
    same size.
    """

    def __init__(
        self,
        messages_per_minute: int,
        clock: Callable[[], float] = time.monotonic
    ):
        self.messages_per_minute = messages_per_minute
        self._bucket = TokenBucket(
            rate=messages_per_minute / 60.0,
            burst=messages_per_minute,
            clock=clock
        )

    def allow(self) -> bool:
        """Check if a message is allowed."""
        return self._bucket.allow()

    def allow_n(self, n: int) -> bool:
        """Check if N messages are allowed at once."""
        return self._bucket.allow_n(n)


# Global rate limiter instances
_ip_limiter: Optional[RateLimiter] = None
_user_limiter: Optional[RateLimiter] = None


def get_ip_rate_limiter() -> RateLimiter:
    """Get or create the global per-IP rate limiter."""
    global _ip_limiter
    if _ip_limiter is None:
        from nestchat.core.config import get_settings
        settings = get_settings()
        _ip_limiter = RateLimiter(
            rate_per_second=settings.rate_limit_ip_per_second,
            burst=settings.rate_limit_ip_burst
        )
    return _ip_limiter


def get_user_rate_limiter() -> RateLimiter:
    """Get or create the global per-user rate limiter."""
    global _user_limiter
    if _user_limiter is None:
        from nestchat.core.config import get_settings
        settings = get_settings()
        _user_limiter = RateLimiter(
            rate_per_second=settings.rate_limit_user_per_second,
            burst=settings.rate_limit_user_burst
        )
    return _user_limiter


def reset_rate_limiters() -> None:
    """Stop and drop the global limiters (useful for testing)."""
    global _ip_limiter, _user_limiter
    for limiter in (_ip_limiter, _user_limiter):
        if limiter is not None:
            limiter.stop()
    _ip_limiter = None
    _user_limiter = None
