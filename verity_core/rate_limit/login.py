"""
Login Attempt Limiter
=====================
Per-account attempt counting with lockout.
"""

import time
from typing import Callable

import structlog

from .in_memory import InMemoryRateLimiter
from .models import RateLimitInfo

logger = structlog.get_logger(__name__)


class LoginAttemptLimiter:
    """
    Counts login attempts per email address.

    After ``max_attempts`` within ``duration`` seconds the account is locked
    for ``block_duration`` seconds. Callers clear the counter with
    ``reset_attempts`` after a successful login.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        duration: float = 900,
        block_duration: float = 900,
        clock: Callable[[], float] = time.time,
    ):
        self._limiter = InMemoryRateLimiter(
            points=max_attempts,
            duration=duration,
            block_duration=block_duration,
            clock=clock,
        )

    @property
    def max_attempts(self) -> int:
        return self._limiter.points

    @staticmethod
    def key_for(email: str) -> str:
        return f"login_{email.strip().lower()}"

    def consume_attempt(self, email: str) -> RateLimitInfo:
        """
        Record one login attempt.

        Raises:
            RateLimited: If the account is out of attempts or locked
        """
        return self._limiter.consume(self.key_for(email))

    def reset_attempts(self, email: str) -> None:
        """Delete the attempt counter for ``email``."""
        self._limiter.delete(self.key_for(email))
        logger.info("login_attempts_reset")
