from collections import defaultdict, deque
from dataclasses import dataclass
import time
from typing import Optional
from uuid import uuid4

from fastapi import Request, status
from fastapi.responses import JSONResponse
import redis.asyncio as redis
from redis.exceptions import RedisError
import structlog

from portalar.api.errors import error_body
from portalar.core.config import Settings

logger = structlog.get_logger()


class SlidingWindowLimiter:
    """Sliding-window rate limiter, Redis-backed when available"""

    def __init__(self, name: str, rate: int, period: int):
        """
        Args:
            name: Key prefix, keeps limiters apart in a shared Redis
            rate: Number of hits allowed per window
            period: Window length in seconds
        """
        self.name = name
        self.rate = rate
        self.period = period
        self.redis_client: Optional[redis.Redis] = None
        self.use_redis = False
        self.windows: dict[str, deque] = defaultdict(deque)

    async def connect(self, redis_url: Optional[str]) -> None:
        if not redis_url:
            return
        try:
            self.redis_client = redis.from_url(redis_url, decode_responses=False)
            await self.redis_client.ping()
            self.use_redis = True
            logger.info("rate_limiter_using_redis", limiter=self.name)
        except (RedisError, OSError) as e:
            logger.warning("rate_limiter_redis_failed_using_memory", limiter=self.name, error=str(e))
            self.use_redis = False

    async def close(self) -> None:
        if self.redis_client is not None:
            await self.redis_client.aclose()
            self.redis_client = None
            self.use_redis = False

    async def is_allowed(self, key: str) -> bool:
        """
        Record a hit for `key` and report whether it is within the limit

        Args:
            key: Identifier (e.g., IP address)

        Returns:
            True if allowed, False if rate limit exceeded
        """
        count = await self.hit(key)
        # count includes the current request
        return count <= self.rate

    async def hit(self, key: str) -> int:
        """Record a hit; returns the number of hits in the window including it"""
        if self.use_redis:
            return await self._hit_redis(key)
        return self._hit_memory(key)

    async def count(self, key: str) -> int:
        """Hits currently inside the window"""
        if self.use_redis:
            redis_key = self._redis_key(key)
            now = time.time()
            return await self.redis_client.zcount(redis_key, now - self.period, now)

        window = self.windows.get(key)
        if window is None:
            return 0
        self._trim(window, time.time())
        if not window:
            del self.windows[key]
            return 0
        return len(window)

    async def get_remaining(self, key: str) -> int:
        """Get remaining requests for a key"""
        return max(0, self.rate - await self.count(key))

    def _redis_key(self, key: str) -> str:
        return f"rate_limit:{self.name}:{key}"

    async def _hit_redis(self, key: str) -> int:
        """Redis-based rate limiting using sliding window"""
        redis_key = self._redis_key(key)
        now = time.time()
        window_start = now - self.period

        pipe = self.redis_client.pipeline()

        # Remove old entries outside the window
        pipe.zremrangebyscore(redis_key, 0, window_start)

        # Add current request
        pipe.zadd(redis_key, {f"{now}:{uuid4().hex[:8]}": now})

        # Count requests in current window
        pipe.zcard(redis_key)

        # Set expiry
        pipe.expire(redis_key, self.period)

        results = await pipe.execute()

        return results[2]

    def _hit_memory(self, key: str) -> int:
        """Fallback: in-memory sliding window"""
        now = time.time()
        window = self.windows[key]
        self._trim(window, now)
        window.append(now)
        return len(window)

    def _trim(self, window: deque, now: float) -> None:
        while window and window[0] <= now - self.period:
            window.popleft()


@dataclass
class RateLimiters:
    """General traffic, analytics ingestion and failed-login limiters"""

    standard: SlidingWindowLimiter
    analytics: SlidingWindowLimiter
    auth: SlidingWindowLimiter

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimiters":
        return cls(
            standard=SlidingWindowLimiter("standard", settings.rate_limit_requests, settings.rate_limit_period),
            analytics=SlidingWindowLimiter(
                "analytics",
                settings.analytics_rate_limit_requests,
                settings.analytics_rate_limit_period
            ),
            auth=SlidingWindowLimiter("auth", settings.auth_rate_limit_attempts, settings.auth_rate_limit_period),
        )

    def all(self) -> tuple[SlidingWindowLimiter, ...]:
        return self.standard, self.analytics, self.auth

    async def connect(self, redis_url: Optional[str]) -> None:
        for limiter in self.all():
            await limiter.connect(redis_url)

    async def close(self) -> None:
        for limiter in self.all():
            await limiter.close()


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def rate_limit_middleware(request: Request, call_next):
    """
    Rate limiting middleware

    Limits requests per IP address
    """
    # Skip rate limiting for health check
    if request.url.path == "/health":
        return await call_next(request)

    limiter = request.app.state.context.limiters.standard
    rate_limit_key = f"ip:{client_ip(request)}"

    # Check rate limit
    if not await limiter.is_allowed(rate_limit_key):
        logger.warning(
            "rate_limit_exceeded",
            key=rate_limit_key,
            path=request.url.path
        )

        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=error_body(
                request,
                status.HTTP_429_TOO_MANY_REQUESTS,
                f"Rate limit exceeded. Maximum {limiter.rate} requests per {limiter.period}s.",
                {"retryAfter": limiter.period}
            ),
            headers={
                "X-RateLimit-Limit": str(limiter.rate),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(limiter.period),
                "Retry-After": str(limiter.period)
            }
        )

    # Add rate limit headers to response
    response = await call_next(request)

    remaining = await limiter.get_remaining(rate_limit_key)
    response.headers["X-RateLimit-Limit"] = str(limiter.rate)
    response.headers["X-RateLimit-Remaining"] = str(remaining)
    response.headers["X-RateLimit-Reset"] = str(limiter.period)

    return response
