"""Thread-safe token bucket rate limiter.

Tokens accrue continuously at a fixed rate up to the bucket capacity and
each admitted request spends its cost. A request is admitted when the
bucket holds at least its cost, so a request costing exactly the
remaining balance goes through. A cost above capacity is never admitted.
"""

import math
import threading
from typing import Optional

from ratecache.core.clock import Clock, monotonic_clock
from ratecache.core.config import Settings, get_settings
from ratecache.core.logging import get_log_context, get_logger
from ratecache.exceptions import ConfigurationError, InvalidCostError
from ratecache.rate_limit.models import RateLimitResult

logger = get_logger(__name__)


def _validate_positive(parameter: str, value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(parameter, value, f"{parameter} must be a number, got {value!r}")
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(parameter, value, f"{parameter} must be a finite positive number, got {value!r}")
    return float(value)


def validate_cost(cost: float) -> float:
    """Return cost unchanged, or raise InvalidCostError if it is negative or not a number."""
    if isinstance(cost, bool) or not isinstance(cost, (int, float)):
        raise InvalidCostError(cost)
    if math.isnan(cost) or cost < 0:
        raise InvalidCostError(cost)
    return cost


class TokenBucket:
    """Token bucket admitting requests at a sustained rate with bursts.

    The bucket starts full. Every admission check first credits the tokens
    earned since the previous check, then compares and deducts, all under
    one lock so concurrent callers cannot overdraw it.

    Example:
        >>> bucket = TokenBucket(capacity=10, refill_rate=5)
        >>> bucket.allow(10)
        True
        >>> bucket.allow(1)
        False
    """

    def __init__(
        self,
        capacity: float,
        refill_rate: float,
        clock: Clock = monotonic_clock,
    ) -> None:
        """Initialize the bucket.

        Args:
            capacity: Maximum tokens held (burst size).
            refill_rate: Tokens added per second.
            clock: Returns the current time in seconds. Must not go
                backwards; defaults to time.monotonic.

        Raises:
            ConfigurationError: If capacity or refill_rate is not a finite
                positive number.
        """
        self._capacity = _validate_positive("capacity", capacity)
        self._rate = _validate_positive("refill_rate", refill_rate)
        self._clock = clock
        self._tokens = self._capacity
        self._last_refill = clock()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, clock: Clock = monotonic_clock) -> "TokenBucket":
        """Create a bucket from RATECACHE_BUCKET_* settings."""
        settings = settings or get_settings()
        return cls(settings.bucket_capacity, settings.bucket_refill_rate, clock=clock)

    @property
    def capacity(self) -> float:
        return self._capacity

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def available(self) -> float:
        """Tokens the bucket holds right now.

        Accrual since the last check is included in the reading but not
        committed.
        """
        with self._lock:
            return self._accrued(self._clock())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(capacity={self._capacity:g}, refill_rate={self._rate:g})"

    def allow(self, cost: float = 1) -> bool:
        """Spend cost tokens if the bucket holds at least that many.

        Args:
            cost: Tokens requested, non-negative. Zero is always admitted.

        Returns:
            True if admitted. On rejection the balance is left untouched,
            though tokens earned up to now are still credited.

        Raises:
            InvalidCostError: If cost is negative or not a number.
        """
        return self.check(cost).allowed

    def check(self, cost: float = 1) -> RateLimitResult:
        """Like allow(), but report the balance and retry delay too."""
        cost = validate_cost(cost)
        with self._lock:
            self._refill()
            if self._tokens >= cost:
                self._tokens -= cost
                return RateLimitResult(
                    allowed=True,
                    limit=self._capacity,
                    remaining=self._tokens,
                )
            remaining = self._tokens
            retry_after = self._wait_for(cost, remaining)

        logger.debug(
            "Token bucket rejected request",
            extra=get_log_context(cost=cost, remaining=remaining),
        )
        return RateLimitResult(
            allowed=False,
            limit=self._capacity,
            remaining=remaining,
            retry_after=retry_after,
        )

    def time_until_available(self, cost: float = 1) -> float:
        """Seconds until cost tokens would be available.

        Returns 0.0 if they are available now and math.inf if cost exceeds
        the capacity.
        """
        cost = validate_cost(cost)
        with self._lock:
            return self._wait_for(cost, self._accrued(self._clock()))

    def _wait_for(self, cost: float, tokens: float) -> float:
        if cost > self._capacity:
            return math.inf
        if tokens >= cost:
            return 0.0
        return (cost - tokens) / self._rate

    def _accrued(self, now: float) -> float:
        elapsed = max(0.0, now - self._last_refill)
        return min(self._capacity, self._tokens + elapsed * self._rate)

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = self._accrued(now)
        # A clock reading behind the last refill must not rewind it.
        self._last_refill = max(self._last_refill, now)
