"""
Redis client utilities for rate limiting.

Used to throttle LLM calls per student.
"""

import logging
from typing import Optional

import redis

from app.config import settings

logger = logging.getLogger(__name__)


# Global Redis client
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=True,
    socket_connect_timeout=5,
    socket_timeout=5,
)


class RateLimiter:
    """
    Fixed-window request counter in Redis.

    Fails open: if Redis is unreachable the request is allowed.
    """

    def __init__(
        self,
        key_prefix: str = "ratelimit",
        default_limit: int = 60,
        default_window: int = 60,
        client: Optional[redis.Redis] = None,
    ):
        self.key_prefix = key_prefix
        self.default_limit = default_limit
        self.default_window = default_window
        self.client = client or redis_client

    def _get_key(self, identifier: str, resource: str = "default") -> str:
        """Generate Redis key for rate limit tracking."""
        return f"{self.key_prefix}:{resource}:{identifier}"

    def is_allowed(
        self,
        identifier: str,
        resource: str = "default",
        limit: Optional[int] = None,
        window: Optional[int] = None,
    ) -> tuple[bool, dict]:
        """
        Check if request is allowed under rate limit.

        Args:
            identifier: Student ID or client address
            resource: Resource being accessed (e.g., 'generate')
            limit: Max requests allowed in window
            window: Time window in seconds

        Returns:
            Tuple of (is_allowed, rate_limit_info)
        """
        limit = limit or self.default_limit
        window = window or self.default_window
        key = self._get_key(identifier, resource)

        try:
            pipe = self.client.pipeline()
            pipe.incr(key)
            pipe.ttl(key)
            current_count, ttl = pipe.execute()

            # Set expiry on first request
            if ttl == -1:
                self.client.expire(key, window)
                ttl = window
        except redis.RedisError as e:
            logger.warning(f"Rate limiter unavailable, allowing request: {e}")
            return True, {"limit": limit, "remaining": limit, "reset_in": window, "current": 0}

        return current_count <= limit, {
            "limit": limit,
            "remaining": max(0, limit - current_count),
            "reset_in": ttl,
            "current": current_count,
        }

    def reset(self, identifier: str, resource: str = "default") -> None:
        """Reset rate limit for identifier."""
        self.client.delete(self._get_key(identifier, resource))


llm_rate_limiter = RateLimiter(
    key_prefix="llm_rate",
    default_limit=settings.rate_limit_per_minute,
    default_window=60,
)
