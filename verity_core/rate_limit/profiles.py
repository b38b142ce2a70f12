"""
Rate Limit Profiles
===================
Named per-endpoint limits.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict

from .in_memory import InMemoryRateLimiter


@dataclass(frozen=True)
class RateLimitProfile:
    interval_seconds: float
    max_requests: int


RATE_LIMIT_PROFILES: Dict[str, RateLimitProfile] = {
    # Authentication endpoints - strict
    "login": RateLimitProfile(interval_seconds=15 * 60, max_requests=5),
    "api": RateLimitProfile(interval_seconds=60, max_requests=100),
    # Legitimate machine traffic
    "webhook": RateLimitProfile(interval_seconds=60, max_requests=1000),
    "server_action": RateLimitProfile(interval_seconds=60, max_requests=50),
    "file_upload": RateLimitProfile(interval_seconds=60 * 60, max_requests=20),
}


def limiter_for_profile(
    name: str,
    clock: Callable[[], float] = time.time,
) -> InMemoryRateLimiter:
    """
    Build an in-memory limiter for a named profile.

    Raises:
        KeyError: If the profile is unknown
    """
    profile = RATE_LIMIT_PROFILES[name]
    return InMemoryRateLimiter(
        points=profile.max_requests,
        duration=profile.interval_seconds,
        clock=clock,
    )
