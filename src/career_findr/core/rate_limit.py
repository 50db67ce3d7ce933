"""
Rate Limiting Module

Sliding-window rate limiting for mutation endpoints, keyed per actor and
action. Uses the shared Redis client (sorted sets) and falls back to an
in-process window when Redis is not connected.

Applied to:
- Application submission (prevents scripted spraying of applications)
- Admission offer batches and application reviews
"""

import logging
import time
from uuid import UUID

from fastapi import HTTPException, status

from career_findr.core import redis as redis_module

logger = logging.getLogger(__name__)

# In-memory fallback: {key: [timestamp, ...]}
_memory_store: dict[str, list[float]] = {}


class RateLimitExceeded(HTTPException):
    """Raised when an actor exceeds the allowed request rate."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after_seconds": window_seconds,
            },
            headers={"Retry-After": str(window_seconds)},
        )


async def _check_rate_limit_redis(client, key: str, limit: int, window_seconds: int) -> bool:
    """
    Sliding window over a Redis sorted set.

    Entries older than the window are dropped, the remainder counted, and
    the current request recorded in one pipeline.
    """
    now = time.time()

    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, now - window_seconds)
    pipe.zcard(key)
    pipe.zadd(key, {f"{now}": now})
    pipe.expire(key, window_seconds)
    results = await pipe.execute()

    return results[1] < limit


def _check_rate_limit_memory(key: str, limit: int, window_seconds: int) -> bool:
    """Single-process fallback. Not shared across workers."""
    now = time.time()
    window = [ts for ts in _memory_store.get(key, []) if ts > now - window_seconds]

    if len(window) >= limit:
        _memory_store[key] = window
        return False

    window.append(now)
    _memory_store[key] = window
    return True


async def check_rate_limit(key: str, limit: int, window_seconds: int) -> bool:
    """
    Check whether a request identified by ``key`` is within limits.

    Returns:
        True if the request is allowed, False if the limit is exceeded
    """
    client = redis_module.get_redis()

    if client is not None:
        try:
            return await _check_rate_limit_redis(client, key, limit, window_seconds)
        except Exception as e:
            logger.warning(f"Redis rate limit check failed, using memory: {e}")

    return _check_rate_limit_memory(key, limit, window_seconds)


async def enforce_actor_rate_limit(
    actor_id: UUID,
    action: str,
    limit: int,
    window_seconds: int,
) -> None:
    """
    Enforce a per-actor limit for ``action``.

    Raises:
        RateLimitExceeded: If the actor exceeded the limit
    """
    key = f"rate_limit:{action}:{actor_id}"
    allowed = await check_rate_limit(key, limit, window_seconds)

    if not allowed:
        logger.warning(
            f"Rate limit exceeded for {actor_id} on action '{action}': {limit}/{window_seconds}s"
        )
        raise RateLimitExceeded(limit, window_seconds)


__all__ = [
    "check_rate_limit",
    "enforce_actor_rate_limit",
    "RateLimitExceeded",
]
