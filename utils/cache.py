"""
Redis Connection Utility

Alias persistence can live in Redis so several devices on the same route
share what the drivers taught. The client is created on first use and the
outcome is remembered: once Redis is found missing or unreachable the engine
stays on local storage for the life of the process.

Usage:
    from utils.cache import get_redis_client

    client = await get_redis_client()
    if client is not None:
        await client.set("ruralmail:route-brain-aliases", "{}")
"""

from typing import Optional

import redis.asyncio as redis

from config.settings import settings
from utils.logging import get_logger

logger = get_logger(__name__)

_client: Optional["redis.Redis"] = None
_unavailable = False


async def get_redis_client() -> Optional["redis.Redis"]:
    """Return the shared client, or None when Redis cannot be used."""
    global _client, _unavailable

    if _client is not None:
        return _client
    if _unavailable:
        return None

    if not settings.REDIS_URL:
        logger.info("REDIS_URL not set; aliases stay on this device")
        _unavailable = True
        return None

    client = redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_timeout=settings.REDIS_TIMEOUT_SECONDS,
        socket_connect_timeout=settings.REDIS_TIMEOUT_SECONDS,
    )
    try:
        await client.ping()
    except (redis.RedisError, OSError) as e:
        logger.warning(f"Redis at {settings.REDIS_URL} unreachable ({e}); aliases stay on this device")
        await client.aclose()
        _unavailable = True
        return None

    logger.info("Redis connected for alias persistence")
    _client = client
    return _client


def reset_redis_client() -> None:
    """Forget the cached client and the unavailable flag."""
    global _client, _unavailable
    _client = None
    _unavailable = False
