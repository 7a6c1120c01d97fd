"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so
the process-local table can later move to a shared store with minimal
changes to the HTTP layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitPolicy:
    """How many requests a client key may make per fixed window.

    Attributes:
        max_requests: Requests allowed per window (>= 1).
        window_ms: Window length in milliseconds (>= 1).
    """

    max_requests: int
    window_ms: int

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check/consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at_ms: UNIX epoch milliseconds when the current window expires.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def consume(self, key: str, policy: RateLimitPolicy) -> RateLimitResult:
        """Record one request for ``key`` and decide whether it is allowed.

        Args:
            key: Client identifier (e.g., forwarded IP address).
            policy: Limit and window applied to this call site.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def peek(self, key: str, policy: RateLimitPolicy) -> RateLimitResult:
        """Describe the current window for ``key`` without consuming budget."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Drop expired records and return how many were removed."""
        raise NotImplementedError

    def allow(self, key: str, max_requests: int, window_ms: int) -> bool:
        """Return True when a request from ``key`` fits in its current window."""
        return self.consume(key, RateLimitPolicy(max_requests, window_ms)).allowed
