"""
Shared async Redis client for the presence mirror.

Created lazily on first use so nothing connects when the mirror is disabled.
"""
from typing import Optional
import logging

import redis.asyncio as redis

from walky.config.settings import settings

logger = logging.getLogger(__name__)

_redis: Optional[redis.Redis] = None


def presence_redis_url() -> str:
    auth = f":{settings.REDIS_PASSWORD}@" if settings.REDIS_PASSWORD else ""
    return f"redis://{auth}{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"


async def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        # Presence keys and values are plain strings
        _redis = redis.Redis.from_url(presence_redis_url(), decode_responses=True)
    return _redis


async def ping_redis() -> bool:
    try:
        client = await get_redis()
        return bool(await client.ping())
    except Exception as e:
        logger.error(f"[Redis] Ping failed: {e}")
        return False


async def close_redis():
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
