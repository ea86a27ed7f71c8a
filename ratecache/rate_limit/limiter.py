"""Per-key token bucket rate limiting."""

import asyncio
from typing import Optional

from ratecache.cache.lru import LRUCache
from ratecache.core.clock import Clock, monotonic_clock
from ratecache.core.config import Settings, get_settings
from ratecache.core.logging import get_log_context, get_logger
from ratecache.rate_limit.models import RateLimitResult
from ratecache.rate_limit.token_bucket import TokenBucket, validate_cost

logger = get_logger(__name__)


class KeyedRateLimiter:
    """Independent token bucket per key, e.g. per client or API key.

    Memory is bounded: buckets are kept in an LRU cache of max_keys
    entries. When a new key arrives at the limit, the bucket of the key
    seen least recently is dropped and that key starts over with a full
    bucket.
    """

    DEFAULT_MAX_KEYS = 10000

    def __init__(
        self,
        capacity: float,
        refill_rate: float,
        max_keys: int = DEFAULT_MAX_KEYS,
        clock: Clock = monotonic_clock,
    ) -> None:
        """Initialize the limiter.

        Args:
            capacity: Burst size of each key's bucket.
            refill_rate: Tokens per second credited to each key's bucket.
            max_keys: Maximum number of buckets tracked at once.
            clock: Time source shared by all buckets.

        Raises:
            ConfigurationError: If any parameter is out of range.
        """
        # Validates capacity and refill_rate up front instead of on first use.
        self._template = TokenBucket(capacity, refill_rate, clock=clock)
        self._clock = clock
        self._buckets: LRUCache[str, TokenBucket] = LRUCache(
            max_keys, on_evict=self._log_dropped, name="rate_limit_buckets"
        )
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, clock: Clock = monotonic_clock) -> "KeyedRateLimiter":
        """Create a limiter from RATECACHE_BUCKET_* and RATECACHE_LIMITER_MAX_KEYS."""
        settings = settings or get_settings()
        return cls(
            settings.bucket_capacity,
            settings.bucket_refill_rate,
            max_keys=settings.limiter_max_keys,
            clock=clock,
        )

    @property
    def max_keys(self) -> int:
        return self._buckets.capacity

    def __len__(self) -> int:
        return len(self._buckets)

    async def is_allowed(self, key: str, cost: float = 1) -> RateLimitResult:
        """Check and spend cost tokens from key's bucket.

        Raises:
            InvalidCostError: If cost is negative or not a number.
        """
        # Rejected calls must not create, evict or reorder buckets.
        cost = validate_cost(cost)
        async with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(
                    self._template.capacity, self._template.rate, clock=self._clock
                )
                self._buckets.put(key, bucket)
            result = bucket.check(cost)

        if not result.allowed:
            logger.debug(
                "Rate limit exceeded",
                extra=get_log_context(limiter_key=key, cost=cost),
            )
        return result

    async def cleanup(self) -> int:
        """Drop buckets that have refilled completely.

        A full bucket behaves exactly like a freshly created one, so
        forgetting it changes no future decision.

        Returns:
            Number of buckets removed.
        """
        async with self._lock:
            idle = [
                key for key, bucket in self._buckets.items()
                if bucket.available >= bucket.capacity
            ]
            for key in idle:
                self._buckets.pop(key)
        if idle:
            logger.debug("Removed %d idle rate limit buckets", len(idle))
        return len(idle)

    def _log_dropped(self, key: str, bucket: TokenBucket) -> None:
        logger.debug(
            "Dropped rate limit bucket for least recently seen key",
            extra=get_log_context(limiter_key=key),
        )
