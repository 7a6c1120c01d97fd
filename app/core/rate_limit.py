"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Rate limiting strategy:
- Fixed-window limit per client key, with a policy per call site
  (login, register, chart analysis, chart image fetch).
- All call sites share one key space: the client key alone.
- Client key: first X-Forwarded-For entry, then X-Real-IP, then "unknown".
  Clients without either header share the "unknown" bucket. This matches
  deployments behind a proxy that always sets the header; without one,
  anonymous callers throttle each other.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

from fastapi import HTTPException, Request, status

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitPolicy, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.core.config import settings

logger = logging.getLogger(__name__)

FALLBACK_CLIENT_KEY = "unknown"

RATE_LIMIT_SCOPES = ("login", "register", "analyze_chart", "chart_image")

_limiter: AbstractRateLimiter | None = None


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide rate limiter instance.

    The instance is cached in-module to preserve state across requests.
    """

    global _limiter

    if _limiter is None:
        _limiter = InMemoryFixedWindowRateLimiter()
    return _limiter


def reset_rate_limiter() -> None:
    """Drop the process-wide limiter (used by tests)."""

    global _limiter
    _limiter = None


def get_policy(scope: str) -> RateLimitPolicy:
    """Resolve the configured policy for a call site.

    Raises:
        ValueError: If the scope is unknown.
    """
    if scope not in RATE_LIMIT_SCOPES:
        raise ValueError(f"Unknown rate limit scope: {scope}")

    requests = getattr(settings.app, f"rate_limit_{scope}_requests")
    window_seconds = getattr(settings.app, f"rate_limit_{scope}_window_seconds")
    return RateLimitPolicy(max_requests=requests, window_ms=window_seconds * 1000)


def get_client_key(request: Request) -> str:
    """Derive the rate limit key from forwarding headers.

    Uses the first X-Forwarded-For entry, then X-Real-IP. Requests with
    neither header all share the ``unknown`` bucket, so anonymous callers
    throttle one another.
    """

    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    return FALLBACK_CLIENT_KEY


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def build_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    reset_at = datetime.fromtimestamp(result.reset_at_ms / 1000, tz=timezone.utc)
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": reset_at.isoformat().replace("+00:00", "Z"),
    }
    if result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    return headers


def enforce_rate_limit(scope: str) -> Callable[[Request], Awaitable[None]]:
    """Build a FastAPI dependency enforcing the policy for ``scope``.

    Usage:
        @router.post("/login", dependencies=[Depends(enforce_rate_limit("login"))])

    Raises:
        ValueError: If the scope is unknown (at import time of the router).
    """
    get_policy(scope)

    async def dependency(request: Request) -> None:
        if not settings.app.rate_limit_enabled:
            return

        policy = get_policy(scope)
        limiter = get_rate_limiter()
        key = get_client_key(request)
        key_hash = _hash_limiter_key(key)
        key_type = "fallback" if key == FALLBACK_CLIENT_KEY else "client_ip"

        result = limiter.consume(key, policy)
        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "scope": scope,
                    "key_type": key_type,
                    "key_hash": key_hash,
                    "limit": result.limit,
                    "remaining": result.remaining,
                },
            )
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "scope": scope,
                "key_type": key_type,
                "key_hash": key_hash,
                "limit": result.limit,
                "window_ms": policy.window_ms,
                "retry_after_s": result.retry_after_seconds,
            },
        )

        headers = build_rate_limit_headers(result) if settings.app.rate_limit_include_headers else None
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later.",
            headers=headers,
        )

    dependency.__name__ = f"enforce_rate_limit_{scope}"
    return dependency


async def run_rate_limit_sweeper(interval_seconds: float) -> None:
    """Periodically sweep expired records until cancelled."""

    while True:
        await asyncio.sleep(interval_seconds)
        removed = get_rate_limiter().sweep()
        if removed:
            logger.info("rate_limit.swept", extra={"removed": removed})
