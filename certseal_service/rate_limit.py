"""
Rate limiting module for the CertSeal service.

Sliding window rate limiting with per-client tracking.
"""

import time
import threading
from collections import defaultdict, deque
from typing import Dict, Optional
from dataclasses import dataclass


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    remaining: int
    reset_at: float
    retry_after: Optional[float] = None


class RateLimiter:
    """
    Sliding window rate limiter.

    Thread-safe; each key keeps a deque of hit timestamps inside the
    current window. Expired keys are swept every `sweep_every` checks, and
    at most `max_keys` keys are tracked; when full, the key idle longest
    is evicted.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: int = 60,
        clock=time.time,
        max_keys: int = 10000,
        sweep_every: int = 256,
    ):
        """
        Initialize rate limiter.

        Args:
            limit: Maximum requests per window
            window_seconds: Window size in seconds
            clock: Time source, overridable for tests
            max_keys: Upper bound on tracked keys
            sweep_every: Checks between sweeps of expired keys
        """
        self._limit = max(1, limit)
        self._window = window_seconds
        self._clock = clock
        self._max_keys = max(1, max_keys)
        self._sweep_every = max(1, sweep_every)
        self._checks = 0
        self._hits: Dict[str, deque] = defaultdict(deque)
        self._lock = threading.RLock()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window

    def allow(self, key: str) -> bool:
        """Check if a request should be allowed."""
        return self.check(key).allowed

    def check(self, key: str) -> RateLimitResult:
        """
        Check rate limit and record the hit if allowed.

        Args:
            key: Identifier for rate limiting (client ID)

        Returns:
            RateLimitResult with allowed status and metadata
        """
        now = self._clock()
        window_start = now - self._window

        with self._lock:
            self._checks += 1
            if self._checks % self._sweep_every == 0:
                self.cleanup_expired()
            if key not in self._hits and len(self._hits) >= self._max_keys:
                self._make_room()

            q = self._hits[key]

            while q and q[0] <= window_start:
                q.popleft()

            current_count = len(q)
            remaining = max(0, self._limit - current_count)
            reset_at = (q[0] + self._window) if q else (now + self._window)

            if current_count >= self._limit:
                retry_after = q[0] + self._window - now
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=reset_at,
                    retry_after=max(0, retry_after)
                )

            q.append(now)

            return RateLimitResult(
                allowed=True,
                remaining=remaining - 1,
                reset_at=reset_at
            )

    def _make_room(self) -> None:
        self.cleanup_expired()
        while len(self._hits) >= self._max_keys:
            idle = min(self._hits, key=lambda k: self._hits[k][-1] if self._hits[k] else float("-inf"))
            del self._hits[idle]

    @property
    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def get_stats(self, key: str) -> Dict[str, int]:
        """Get current usage for a key."""
        window_start = self._clock() - self._window

        with self._lock:
            q = self._hits.get(key, ())
            count = sum(1 for t in q if t > window_start)

            return {
                "current": count,
                "limit": self._limit,
                "remaining": max(0, self._limit - count),
                "window_seconds": self._window
            }

    def reset(self, key: Optional[str] = None) -> None:
        """
        Reset rate limit counters.

        Args:
            key: Specific key to reset, or None to reset all
        """
        with self._lock:
            if key:
                self._hits.pop(key, None)
            else:
                self._hits.clear()

    def cleanup_expired(self) -> int:
        """
        Remove expired entries from all keys.

        Returns:
            Number of entries removed
        """
        window_start = self._clock() - self._window
        removed = 0

        with self._lock:
            empty_keys = []

            for key, q in self._hits.items():
                while q and q[0] <= window_start:
                    q.popleft()
                    removed += 1

                if not q:
                    empty_keys.append(key)

            for key in empty_keys:
                del self._hits[key]

        return removed
