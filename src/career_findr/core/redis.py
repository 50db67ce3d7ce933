"""
Redis Connection

Shared async Redis client, used by the rate limiter. Redis is optional
outside production: callers must handle ``None``.
"""

import logging

from redis.asyncio import Redis, from_url

from career_findr.core.config import settings

logger = logging.getLogger(__name__)

redis_client: Redis | None = None


async def init_redis() -> Redis:
    """Connect to Redis and verify it answers. Call on startup."""
    global redis_client
    client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await client.ping()
    redis_client = client
    logger.info("Redis connection established")
    return redis_client


def get_redis() -> Redis | None:
    """Return the shared client, or None when Redis is not connected."""
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
