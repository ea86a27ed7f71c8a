"""Rate limit data models."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request was admitted
        limit: Bucket capacity (burst size)
        remaining: Tokens left after the decision
        retry_after: Seconds until the same request could be admitted,
            None when allowed, math.inf when it never can be
    """
    allowed: bool
    limit: float
    remaining: float
    retry_after: Optional[float] = None
