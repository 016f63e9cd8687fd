# backend/admitlink/middleware/rate_limiter.py
"""
Sliding-window rate limiter backed by a Redis sorted set.

Each request adds one member scored by its timestamp; members older than the
window are trimmed before counting. When no Redis is configured, or Redis
fails, requests are allowed and a warning is logged.
"""

import hashlib
import logging
import time
from typing import Optional, Tuple

from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from ..core.config import settings
from ..core.ulid_helper import generate_ulid

logger = logging.getLogger(__name__)


class RateLimiter:
    """Core rate limiting logic using the sliding window algorithm."""

    def __init__(self, redis: Optional[AsyncRedis] = None, redis_url: Optional[str] = None):
        self._redis = redis
        self._redis_url = settings.rate_limit_redis_url if redis_url is None else redis_url
        self._owns_client = redis is None
        self._warned_unavailable = False
        self.enabled = settings.rate_limit_enabled

    @property
    def redis(self) -> Optional[AsyncRedis]:
        if self._redis is None and self._redis_url:
            self._redis = AsyncRedis.from_url(
                self._redis_url, encoding="utf-8", decode_responses=True
            )
            logger.info("[RATE_LIMIT] Redis client initialized")
        return self._redis

    @staticmethod
    def _get_cache_key(identifier: str, window_name: str) -> str:
        # Hash long identifiers to keep keys reasonable
        if len(identifier) > 32:
            identifier = hashlib.md5(identifier.encode()).hexdigest()[:16]
        return f"rate_limit:{window_name}:{identifier}"

    async def check_rate_limit(
        self, identifier: str, limit: int, window_seconds: int, window_name: Optional[str] = None
    ) -> Tuple[bool, int, int]:
        """
        Check if request is within rate limit using sliding window.

        Args:
            identifier: Unique identifier for rate limiting (client IP)
            limit: Maximum requests allowed
            window_seconds: Time window in seconds
            window_name: Optional name for the window (for cache key)

        Returns:
            Tuple of (allowed, requests_made, retry_after_seconds)
        """
        if not self.enabled:
            return True, 0, 0

        redis = self.redis
        if redis is None:
            if not self._warned_unavailable:
                logger.warning("[RATE_LIMIT] Rate limiting bypassed - no Redis configured")
                self._warned_unavailable = True
            return True, 0, 0

        window_name = window_name or f"{limit}per{window_seconds}s"
        cache_key = self._get_cache_key(identifier, window_name)
        now = time.time()
        member = f"{now}:{generate_ulid()}"

        try:
            pipe = redis.pipeline()
            pipe.zremrangebyscore(cache_key, 0, now - window_seconds)
            pipe.zcard(cache_key)
            pipe.zadd(cache_key, {member: now})
            pipe.expire(cache_key, window_seconds + 60)
            results = await pipe.execute()

            # results[1] is the count before adding current request
            requests_in_window = int(results[1])
            if requests_in_window >= limit:
                oldest = await redis.zrange(cache_key, 0, 0, withscores=True)
                if oldest:
                    retry_after = max(1, int(oldest[0][1] + window_seconds - now))
                else:
                    retry_after = window_seconds
                # A rejected request does not count against the window
                await redis.zrem(cache_key, member)
                return False, requests_in_window, retry_after

            return True, requests_in_window + 1, 0
        except RedisError as e:
            logger.error("[RATE_LIMIT] Rate limit check failed: %s", e)
            return True, 0, 0

    async def close(self) -> None:
        if self._redis is not None and self._owns_client:
            await self._redis.aclose()
            self._redis = None
            logger.info("[RATE_LIMIT] Redis client closed")
