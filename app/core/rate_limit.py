"""
Redis-backed admission rate limiting.

Fixed one-minute windows per (bucket, client). Reads and writes have
separate budgets. If Redis cannot be reached the request is admitted.
"""

from __future__ import annotations

import logging
import time

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.security import rate_limit_redis_key

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60

READ_METHODS = frozenset({"GET", "HEAD"})
SKIPPED_METHODS = frozenset({"OPTIONS"})


def bucket_for(method: str) -> str | None:
    """'read', 'write', or None for methods that are never limited."""
    method = method.upper()
    if method in SKIPPED_METHODS:
        return None
    return "read" if method in READ_METHODS else "write"


class RedisRateLimiter:
    """Counts requests per window with INCR + EXPIRE."""

    def __init__(
        self,
        redis: aioredis.Redis,
        read_limit: int | None = None,
        write_limit: int | None = None,
    ) -> None:
        self.redis = redis
        self.limits = {
            "read": read_limit or settings.RATE_LIMIT_READ_PER_MINUTE,
            "write": write_limit or settings.RATE_LIMIT_WRITE_PER_MINUTE,
        }

    async def allow(self, bucket: str, client: str, now: float | None = None) -> bool:
        window = int((now if now is not None else time.time()) // WINDOW_SECONDS)
        key = rate_limit_redis_key(bucket, client, window)

        try:
            count = await self.redis.incr(key)
            if count == 1:
                await self.redis.expire(key, WINDOW_SECONDS)
        except (RedisError, OSError):
            logger.warning("Rate limiter unavailable; admitting request", exc_info=True)
            return True

        return count <= self.limits[bucket]
