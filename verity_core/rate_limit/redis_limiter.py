"""
Redis Rate Limiter
==================
Shared counters for multi-instance deployments.

A Lua script runs the same window/lockout state machine as
``InMemoryRateLimiter`` atomically inside Redis.
"""

import time
from typing import Callable, Optional

import structlog

from ..errors import RateLimited
from .models import RateLimitInfo

logger = structlog.get_logger(__name__)

# All times in milliseconds
WINDOW_BLOCK_SCRIPT = """
local key = KEYS[1]
local points = tonumber(ARGV[1])
local duration = tonumber(ARGV[2])
local block = tonumber(ARGV[3])
local now = tonumber(ARGV[4])

local state = redis.call('HMGET', key, 'window', 'count', 'blocked_until')
local window = tonumber(state[1])
local count = tonumber(state[2]) or 0
local blocked_until = tonumber(state[3]) or 0

if blocked_until > now then
    return {0, 0, blocked_until, blocked_until - now}
end

if window == nil or blocked_until > 0 or now - window > duration then
    window = now
    count = 0
end

local reset_at = window + duration

if count >= points then
    if block > 0 then
        blocked_until = now + block
        redis.call('HSET', key, 'window', window, 'count', count, 'blocked_until', blocked_until)
        redis.call('PEXPIRE', key, block)
        return {0, 0, blocked_until, block}
    end
    return {0, 0, reset_at, math.max(reset_at - now, 1)}
end

count = count + 1
redis.call('HSET', key, 'window', window, 'count', count, 'blocked_until', 0)
redis.call('PEXPIRE', key, duration + block)

return {1, points - count, reset_at, 0}
"""


class RedisRateLimiter:
    """
    Redis-backed counterpart of ``InMemoryRateLimiter``.

    Redis failures fail open: the request is allowed and the error logged.
    """

    def __init__(
        self,
        redis_client,
        points: int = 100,
        duration: float = 900,
        block_duration: float = 0,
        key_prefix: str = "ratelimit",
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            redis_client: Async Redis client
            points: Consumptions allowed per window
            duration: Window length in seconds
            block_duration: Lockout in seconds applied on exhaustion
            key_prefix: Namespace for Redis keys
        """
        self.redis = redis_client
        self.points = points
        self.duration = duration
        self.block_duration = block_duration
        self.key_prefix = key_prefix
        self._clock = clock
        self._script_sha: Optional[str] = None

    def get_key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    async def _ensure_script(self) -> str:
        """Load Lua script into Redis if needed."""
        if self._script_sha is None:
            self._script_sha = await self.redis.script_load(WINDOW_BLOCK_SCRIPT)
        return self._script_sha

    async def check(self, key: str) -> RateLimitInfo:
        """Consume one point for ``key`` atomically in Redis."""
        now_ms = int(self._clock() * 1000)

        try:
            script_sha = await self._ensure_script()
            result = await self.redis.evalsha(
                script_sha,
                1,
                self.get_key(key),
                self.points,
                int(self.duration * 1000),
                int(self.block_duration * 1000),
                now_ms,
            )
        except Exception as e:
            logger.error("rate_limit_backend_failed", error=str(e))
            return RateLimitInfo(
                allowed=True,
                remaining=self.points,
                limit=self.points,
                reset_at=now_ms / 1000 + self.duration,
            )

        allowed, remaining, reset_at_ms, retry_after_ms = (int(v) for v in result)
        return RateLimitInfo(
            allowed=bool(allowed),
            remaining=remaining,
            limit=self.points,
            reset_at=reset_at_ms / 1000,
            retry_after_ms=retry_after_ms if not allowed else None,
        )

    async def consume(self, key: str) -> RateLimitInfo:
        """
        Raises:
            RateLimited: If the key is exhausted or blocked
        """
        info = await self.check(key)
        if not info.allowed:
            raise RateLimited(info.retry_after_ms)
        return info

    async def delete(self, key: str) -> None:
        await self.redis.delete(self.get_key(key))
