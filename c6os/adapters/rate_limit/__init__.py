"""Rate limiting adapters.

This package provides a small abstraction layer so the service can run with
an in-memory limiter and later migrate to Redis or another shared store
without changing the API layer.
"""

from c6os.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from c6os.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter, QuotaRecord

__all__ = [
    "AbstractRateLimiter",
    "InMemorySlidingWindowRateLimiter",
    "QuotaRecord",
    "RateLimitResult",
]
