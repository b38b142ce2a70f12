"""
Rate Limiting
=============
Request and login-attempt limiting with in-memory and Redis backends.
"""

from .models import RateLimitCounter, RateLimitInfo, RateLimitResult
from .in_memory import InMemoryRateLimiter
from .login import LoginAttemptLimiter
from .redis_limiter import RedisRateLimiter, WINDOW_BLOCK_SCRIPT
from .profiles import RATE_LIMIT_PROFILES, RateLimitProfile, limiter_for_profile
from .middleware import RateLimitMiddleware, get_client_ip

__all__ = [
    # Models
    "RateLimitCounter",
    "RateLimitInfo",
    "RateLimitResult",
    # Limiters
    "InMemoryRateLimiter",
    "LoginAttemptLimiter",
    "RedisRateLimiter",
    "WINDOW_BLOCK_SCRIPT",
    # Profiles
    "RATE_LIMIT_PROFILES",
    "RateLimitProfile",
    "limiter_for_profile",
    # Middleware
    "RateLimitMiddleware",
    "get_client_ip",
]
