"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around the read-modify-write of each record.
- A key's window starts at its first request and lasts ``window_seconds``;
  windows are not aligned to clock boundaries.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from c6os.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


@dataclass
class QuotaRecord:
    """Rolling counter for a single key."""

    count: int
    window_start: float
    reset_at: float

    def is_expired(self, now: float) -> bool:
        return self.reset_at <= now


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping one rolling window per key in a dict.

    Every consume increments the key's count, including rejected ones, so a
    client that keeps hammering stays blocked until its window resets.
    Expired records are swept on each call to bound memory growth.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed units per window.
            window_seconds: Window duration in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._records: dict[str, QuotaRecord] = {}

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def get_record(self, key: str) -> QuotaRecord | None:
        """Return a copy of the stored record for ``key`` (None if absent)."""
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            return QuotaRecord(
                count=record.count,
                window_start=record.window_start,
                reset_at=record.reset_at,
            )

    def sweep(self, now: float | None = None) -> int:
        """Drop expired records.

        Returns:
            Number of records removed.
        """
        current = self._clock() if now is None else now
        with self._lock:
            expired = [key for key, record in self._records.items() if record.is_expired(current)]
            for key in expired:
                del self._records[key]
            return len(expired)

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for the provided key.

        Args:
            key: Unique identifier for rate limiting (e.g., principal id).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()

        with self._lock:
            self.sweep(now)

            record = self._records.get(key)
            if record is None or record.is_expired(now):
                record = QuotaRecord(
                    count=cost,
                    window_start=now,
                    reset_at=now + self._window_seconds,
                )
                self._records[key] = record
            else:
                record.count += cost

            remaining = max(0, self._limit - record.count)

            if record.count <= self._limit:
                return RateLimitResult(
                    allowed=True,
                    limit=self._limit,
                    remaining=remaining,
                    reset_at=record.reset_at,
                    window_seconds=self._window_seconds,
                    retry_after_seconds=None,
                )

            retry_after = max(1, int(math.ceil(record.reset_at - now)))
            return RateLimitResult(
                allowed=False,
                limit=self._limit,
                remaining=remaining,
                reset_at=record.reset_at,
                window_seconds=self._window_seconds,
                retry_after_seconds=retry_after,
            )
