import json
import logging
from typing import Any, Optional
from uuid import UUID

import redis.asyncio as redis

from circle.config_secrets import PROFILE_CACHE_SECONDS, REDIS_URL

logger = logging.getLogger(__name__)

# Redis connection
redis_client: Optional[redis.Redis] = None


async def init_cache():
    """Initialize Redis connection"""
    global redis_client
    if not REDIS_URL:
        logger.info("REDIS_URL is empty, profile cache disabled")
        return
    redis_client = redis.from_url(REDIS_URL, decode_responses=True)


async def close_cache():
    """Close Redis connection"""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None


def _profile_key(user_id: UUID) -> str:
    return f"user:{user_id}"


# User profile cache functions
async def cache_user_profile(user_id: UUID, profile_data: dict[str, Any], expiry: int = PROFILE_CACHE_SECONDS):
    """Cache a public user profile (already JSON-safe) in Redis"""
    if not redis_client:
        return

    await redis_client.setex(_profile_key(user_id), expiry, json.dumps(profile_data))


async def get_cached_user_profile(user_id: UUID) -> Optional[dict[str, Any]]:
    """Get cached user profile data"""
    if not redis_client:
        return None

    cached = await redis_client.get(_profile_key(user_id))
    if cached:
        return json.loads(cached)
    return None


async def invalidate_user_profile_cache(*user_ids: UUID):
    """Invalidate profile cache for one or more users"""
    if not redis_client or not user_ids:
        return

    await redis_client.delete(*(_profile_key(user_id) for user_id in user_ids))
