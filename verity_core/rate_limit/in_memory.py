"""
In-Memory Rate Limiter
======================
Fixed-capacity counters with a window that opens at first consumption.

Safe for concurrent callers inside one process. Deployments running more
than one instance need a shared store (see ``RedisRateLimiter``).
"""

import math
import threading
import time
from typing import Callable, Dict, Optional

import structlog

from ..errors import RateLimited
from .models import RateLimitCounter, RateLimitInfo

logger = structlog.get_logger(__name__)


class InMemoryRateLimiter:
    """
    Per-key point counter.

    Each ``check`` consumes one point. A key's window starts at its first
    consumption and resets once more than ``duration`` seconds have
    elapsed. With ``block_duration`` set, the first rejected call blocks
    the key for that long, even past the end of the window. Counters whose
    window and block have lapsed are dropped every ``purge_interval`` checks.
    """

    def __init__(
        self,
        points: int = 100,
        duration: float = 900,
        block_duration: float = 0,
        clock: Callable[[], float] = time.time,
        purge_interval: int = 1000,
    ):
        """
        Args:
            points: Consumptions allowed per window
            duration: Window length in seconds
            block_duration: Lockout in seconds applied on exhaustion (0 = none)
            clock: Returns the current Unix time in seconds
            purge_interval: Stale counters are dropped every this many checks
        """
        if points <= 0:
            raise ValueError("points must be positive")
        if purge_interval <= 0:
            raise ValueError("purge_interval must be positive")
        self.points = points
        self.duration = duration
        self.block_duration = block_duration
        self.purge_interval = purge_interval
        self._clock = clock
        self._counters: Dict[str, RateLimitCounter] = {}
        self._checks = 0
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitInfo:
        """
        Consume one point for ``key`` if any remain.

        Returns:
            RateLimitInfo; ``allowed`` is False when the key is exhausted
            or blocked, with ``retry_after_ms`` set.
        """
        with self._lock:
            now = self._clock()

            self._checks += 1
            if self._checks % self.purge_interval == 0:
                self._purge_stale(now)

            counter = self._counters.get(key)

            if counter is not None and counter.blocked_until is not None:
                if counter.is_blocked(now):
                    return self._rejected(now, counter.blocked_until)
                # Lockout served: start over
                counter = None

            if counter is None or now - counter.window_start > self.duration:
                counter = RateLimitCounter(key=key, points_consumed=0, window_start=now)
                self._counters[key] = counter

            reset_at = counter.window_start + self.duration

            if counter.points_consumed >= self.points:
                if self.block_duration > 0:
                    counter.blocked_until = now + self.block_duration
                    reset_at = counter.blocked_until
                    logger.warning(
                        "rate_limit_key_blocked",
                        key=key,
                        block_seconds=self.block_duration,
                    )
                return self._rejected(now, reset_at)

            counter.points_consumed += 1
            return RateLimitInfo(
                allowed=True,
                remaining=self.points - counter.points_consumed,
                limit=self.points,
                reset_at=reset_at,
            )

    def consume(self, key: str) -> RateLimitInfo:
        """
        Like ``check`` but raises on rejection.

        Raises:
            RateLimited: With the milliseconds until the key is usable again
        """
        info = self.check(key)
        if not info.allowed:
            raise RateLimited(info.retry_after_ms)
        return info

    def delete(self, key: str) -> None:
        """Drop the counter for ``key``, clearing any block."""
        with self._lock:
            self._counters.pop(key, None)

    def get(self, key: str) -> Optional[RateLimitCounter]:
        """Snapshot of the counter for ``key``, if one exists."""
        with self._lock:
            counter = self._counters.get(key)
            if counter is None:
                return None
            return RateLimitCounter(
                key=counter.key,
                points_consumed=counter.points_consumed,
                window_start=counter.window_start,
                blocked_until=counter.blocked_until,
            )

    def purge(self) -> int:
        """Remove counters whose window and block have both lapsed."""
        with self._lock:
            return self._purge_stale(self._clock())

    def _purge_stale(self, now: float) -> int:
        # Caller holds self._lock
        stale = [
            key for key, counter in self._counters.items()
            if now - counter.window_start > self.duration and not counter.is_blocked(now)
        ]
        for key in stale:
            del self._counters[key]
        if stale:
            logger.debug("rate_limit_counters_purged", count=len(stale))
        return len(stale)

    def _rejected(self, now: float, available_at: float) -> RateLimitInfo:
        retry_after_ms = max(1, math.ceil((available_at - now) * 1000))
        return RateLimitInfo(
            allowed=False,
            remaining=0,
            limit=self.points,
            reset_at=available_at,
            retry_after_ms=retry_after_ms,
        )
