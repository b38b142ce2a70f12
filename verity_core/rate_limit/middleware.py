"""
Rate Limit Middleware
=====================
Starlette middleware that rejects over-limit requests with 429.

Works with the in-memory limiter or the Redis one.
"""

import inspect
from typing import Callable, Optional, Union

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
import structlog

from .in_memory import InMemoryRateLimiter
from .redis_limiter import RedisRateLimiter

logger = structlog.get_logger(__name__)


def get_client_ip(request: Request) -> str:
    """Client address, preferring the first proxy hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host
    return "anonymous"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Consume one point per request, keyed by client identity."""

    def __init__(
        self,
        app,
        limiter: Union[InMemoryRateLimiter, RedisRateLimiter],
        identifier: Optional[Callable[[Request], str]] = None,
    ):
        super().__init__(app)
        self.limiter = limiter
        self.identifier = identifier or get_client_ip

    async def dispatch(self, request: Request, call_next):
        key = self.identifier(request)
        info = self.limiter.check(key)
        # RedisRateLimiter.check is a coroutine
        if inspect.isawaitable(info):
            info = await info

        if not info.allowed:
            retry_after = -(-info.retry_after_ms // 1000)
            logger.warning("request_rate_limited", key=key, retry_after_ms=info.retry_after_ms)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too Many Requests",
                    "message": f"Too many requests. Please try again in {retry_after} seconds.",
                    "retryAfter": retry_after,
                },
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(info.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(info.limit)
        response.headers["X-RateLimit-Remaining"] = str(info.remaining)
        return response
