"""Rate limiting adapters.

This package provides a small abstraction layer so the API can start with
an in-memory limiter and later migrate to a shared store without changing
the HTTP layer.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitPolicy, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitPolicy",
    "RateLimitResult",
]
