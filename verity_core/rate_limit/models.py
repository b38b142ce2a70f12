"""
Rate Limit Models
=================
Counter state and per-call results.
"""

from typing import Optional
from dataclasses import dataclass
from enum import Enum


class RateLimitResult(str, Enum):
    """Rate limit decision result."""
    ALLOWED = "allowed"
    BLOCKED = "blocked"


@dataclass
class RateLimitCounter:
    """Consumption state for one key."""
    key: str
    points_consumed: int
    window_start: float  # Unix seconds of first consumption in this window
    blocked_until: Optional[float] = None

    def is_blocked(self, now: float) -> bool:
        return self.blocked_until is not None and now < self.blocked_until


@dataclass
class RateLimitInfo:
    """Rate limit check result with quota information."""
    allowed: bool
    remaining: int
    limit: int
    reset_at: float  # Unix seconds
    retry_after_ms: Optional[int] = None  # Milliseconds until next availability

    @property
    def result(self) -> RateLimitResult:
        return RateLimitResult.ALLOWED if self.allowed else RateLimitResult.BLOCKED
