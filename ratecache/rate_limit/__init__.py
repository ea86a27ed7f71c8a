"""Token bucket rate limiting.

Provides a thread-safe TokenBucket for a single stream of requests and a
KeyedRateLimiter holding one bucket per key.
"""

from ratecache.rate_limit.limiter import KeyedRateLimiter
from ratecache.rate_limit.models import RateLimitResult
from ratecache.rate_limit.token_bucket import TokenBucket

__all__ = [
    "KeyedRateLimiter",
    "RateLimitResult",
    "TokenBucket",
]
