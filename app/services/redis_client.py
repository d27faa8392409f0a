"""
Shared async Redis connection.

Used for the role-permission cache. Callers treat Redis as optional:
every cache read or write falls back to the database when Redis is down.
"""
import logging
from typing import Optional

import redis.asyncio as redis

from app.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

_client: Optional[redis.Redis] = None


async def get_redis_client() -> redis.Redis:
    """Lazily create the process-wide client (string responses)."""
    global _client

    if _client is None:
        _client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        logger.info("Redis client created for %s", settings.redis_url.rsplit("@", 1)[-1])

    return _client


async def redis_status() -> str:
    """Health probe: "healthy" or "unhealthy: <reason>"."""
    try:
        client = await get_redis_client()
        await client.ping()
    except Exception as e:
        logger.error(f"Health check - Redis error: {e}")
        return f"unhealthy: {e}"
    return "healthy"


async def close_redis_client() -> None:
    """Close the client on application shutdown."""
    global _client

    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("Redis client closed")
