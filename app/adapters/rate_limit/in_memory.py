"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: sync routes run on a thread pool, so every read-check-mutate
  and every sweep holds the same lock.
- A window starts at a key's first request and lasts ``window_ms``; it is
  not aligned to wall-clock boundaries.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitPolicy, RateLimitResult


def _now_ms() -> float:
    return time.time() * 1000


@dataclass
class RateLimitRecord:
    count: int
    reset_at_ms: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter holding one record per client key.

    The policy is passed per call, so several endpoints can share the same
    key space with different limits. A policy change only takes effect for
    windows created after it.

    Important:
        This limiter is per-process only. If the API runs with multiple
        workers, each worker enforces its own independent limits.
    """

    def __init__(self, *, clock: Callable[[], float] = _now_ms) -> None:
        """Initialize the limiter.

        Args:
            clock: Time source returning UNIX time in milliseconds.
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._records: dict[str, RateLimitRecord] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._records

    def get_record(self, key: str) -> RateLimitRecord | None:
        """Return a copy of the record for ``key`` (expired or not)."""
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            return RateLimitRecord(count=record.count, reset_at_ms=record.reset_at_ms)

    def _build_result(
        self,
        *,
        allowed: bool,
        policy: RateLimitPolicy,
        count: int,
        reset_at_ms: float,
        now: float,
    ) -> RateLimitResult:
        retry_after = None
        if not allowed:
            retry_after = max(0, int(math.ceil((reset_at_ms - now) / 1000)))
        return RateLimitResult(
            allowed=allowed,
            limit=policy.max_requests,
            remaining=max(0, policy.max_requests - count),
            reset_at_ms=int(reset_at_ms),
            retry_after_seconds=retry_after,
        )

    def consume(self, key: str, policy: RateLimitPolicy) -> RateLimitResult:
        """Consume one request from the budget of ``key``.

        A missing or expired record is replaced with a fresh window whose
        count is 1. A live record at its limit is left untouched and the
        request is denied; otherwise its count is incremented.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()

        with self._lock:
            record = self._records.get(key)

            if record is None or now > record.reset_at_ms:
                record = RateLimitRecord(count=1, reset_at_ms=now + policy.window_ms)
                self._records[key] = record
                return self._build_result(
                    allowed=True, policy=policy, count=1, reset_at_ms=record.reset_at_ms, now=now
                )

            if record.count >= policy.max_requests:
                return self._build_result(
                    allowed=False,
                    policy=policy,
                    count=record.count,
                    reset_at_ms=record.reset_at_ms,
                    now=now,
                )

            record.count += 1
            return self._build_result(
                allowed=True,
                policy=policy,
                count=record.count,
                reset_at_ms=record.reset_at_ms,
                now=now,
            )

    def peek(self, key: str, policy: RateLimitPolicy) -> RateLimitResult:
        now = self._clock()

        with self._lock:
            record = self._records.get(key)
            if record is None or now > record.reset_at_ms:
                # What the next request would see: a fresh window with one use.
                return self._build_result(
                    allowed=True, policy=policy, count=1, reset_at_ms=now + policy.window_ms, now=now
                )
            return self._build_result(
                allowed=record.count < policy.max_requests,
                policy=policy,
                count=record.count,
                reset_at_ms=record.reset_at_ms,
                now=now,
            )

    def sweep(self) -> int:
        """Delete every record whose window has expired.

        Live records are never removed; correctness of ``consume`` does not
        depend on the sweep, it only bounds memory for idle keys.
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, record in self._records.items() if now > record.reset_at_ms]
            for key in expired:
                del self._records[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
