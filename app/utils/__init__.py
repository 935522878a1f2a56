"""Utility modules for TutorChat."""

from app.utils.db_types import GUID, JSONDict, UTCDateTime
from app.utils.redis_client import redis_client, RateLimiter, llm_rate_limiter

__all__ = [
    "GUID",
    "JSONDict",
    "UTCDateTime",
    "redis_client",
    "RateLimiter",
    "llm_rate_limiter",
]
