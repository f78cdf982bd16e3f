"""
coursereview/security/rate_limit.py
Fixed-window rate limiting behind a small interface

Two implementations:
- InMemoryRateLimiter: per-process, for development and single-worker deploys
- RedisRateLimiter: shared across workers (INCR + EXPIRE per window)

A denied request is rejected immediately with the seconds until the
window resets; nothing queues.
"""
import asyncio
import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from redis import asyncio as aioredis

from coursereview.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: Optional[int] = None


class RateLimiter(ABC):
    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    @abstractmethod
    async def check(self, key: str) -> RateLimitDecision:
        """Count one request for key and decide whether it may proceed."""


class InMemoryRateLimiter(RateLimiter):
    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(max_requests, window_seconds)
        self._clock = clock
        self._windows: Dict[str, Tuple[int, float]] = {}  # key -> (count, reset_at)
        self._lock = asyncio.Lock()

    async def check(self, key: str) -> RateLimitDecision:
        async with self._lock:
            now = self._clock()
            entry = self._windows.get(key)
            if entry is None or now >= entry[1]:
                self._windows[key] = (1, now + self.window_seconds)
                self._evict_expired(now)
                return RateLimitDecision(allowed=True)

            count, reset_at = entry
            if count >= self.max_requests:
                return RateLimitDecision(
                    allowed=False,
                    retry_after_seconds=max(1, math.ceil(reset_at - now)),
                )

            self._windows[key] = (count + 1, reset_at)
            return RateLimitDecision(allowed=True)

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, (_, reset_at) in self._windows.items() if now >= reset_at]
        for k in expired:
            del self._windows[k]


class RedisRateLimiter(RateLimiter):
    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        redis_url: str = "redis://localhost:6379/0",
        prefix: str = "ratelimit",
    ):
        super().__init__(max_requests, window_seconds)
        self.redis_url = redis_url
        self.prefix = prefix
        self._redis: Optional[aioredis.Redis] = None

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self._redis is None:
            self._redis = aioredis.from_url(self.redis_url, decode_responses=True)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def check(self, key: str) -> RateLimitDecision:
        await self.connect()
        redis_key = self._make_key(key)

        count = await self._redis.incr(redis_key)
        if count == 1:
            await self._redis.expire(redis_key, self.window_seconds)

        if count > self.max_requests:
            ttl = await self._redis.ttl(redis_key)
            if ttl is None or ttl < 0:
                # Key lost its expiry; restart the window
                await self._redis.expire(redis_key, self.window_seconds)
                ttl = self.window_seconds
            return RateLimitDecision(allowed=False, retry_after_seconds=max(1, int(ttl)))

        return RateLimitDecision(allowed=True)


def build_rate_limiter(
    max_requests: int = None,
    window_seconds: int = None,
    backend: str = None,
) -> RateLimiter:
    max_requests = max_requests or settings.FEEDBACK_RATE_LIMIT
    window_seconds = window_seconds or settings.FEEDBACK_RATE_WINDOW_SECONDS
    backend = (backend or settings.RATE_LIMIT_BACKEND).lower()

    if backend == "redis":
        logger.info(f"Rate limiter: redis ({max_requests}/{window_seconds}s)")
        return RedisRateLimiter(max_requests, window_seconds, settings.REDIS_URL)
    if backend != "memory":
        raise ValueError(f"Unknown rate limit backend: {backend}")
    logger.info(f"Rate limiter: in-memory ({max_requests}/{window_seconds}s)")
    return InMemoryRateLimiter(max_requests, window_seconds)


_feedback_limiter: Optional[RateLimiter] = None


def get_feedback_rate_limiter() -> RateLimiter:
    global _feedback_limiter
    if _feedback_limiter is None:
        _feedback_limiter = build_rate_limiter()
    return _feedback_limiter
