"""
Redis caching layer for collaborator lookups.

TTLs:
  - Terrain area by parcel id: 7 days
  - Comparable land sales by department prefix: settings.comparables_cache_ttl
"""

from __future__ import annotations

import json
import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.config import settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None

TTL_TERRAIN_AREA = 604800  # 7 days


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis client. Returns None if Redis is not configured."""
    global _redis_client
    if _redis_client is not None:
        return _redis_client

    redis_url = settings.redis_url
    if not redis_url:
        return None

    try:
        _redis_client = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=3,
        )
        await _redis_client.ping()
        return _redis_client
    except RedisError as exc:
        logger.warning("Redis unavailable, caching disabled: %s", exc)
        _redis_client = None
        return None


def _make_key(prefix: str, identifier: str) -> str:
    return f"promoteur:{prefix}:{identifier}"


async def cache_get(prefix: str, identifier: str) -> Optional[dict]:
    """Get a cached value. Returns None on miss or Redis unavailable."""
    r = await get_redis()
    if not r:
        return None
    try:
        val = await r.get(_make_key(prefix, identifier))
        if val:
            return json.loads(val)
    except (RedisError, ValueError) as exc:
        logger.warning("Cache read failed for %s:%s: %s", prefix, identifier, exc)
    return None


async def cache_set(prefix: str, identifier: str, data: dict, ttl: int) -> bool:
    """Set a cached value. Returns True on success."""
    r = await get_redis()
    if not r:
        return False
    try:
        await r.setex(_make_key(prefix, identifier), ttl, json.dumps(data, default=str))
        return True
    except RedisError as exc:
        logger.warning("Cache write failed for %s:%s: %s", prefix, identifier, exc)
        return False


# ──────────────────────────────────────────────────────────────────
# CONVENIENCE FUNCTIONS
# ──────────────────────────────────────────────────────────────────

async def get_cached_terrain_area(parcel_id: str) -> Optional[float]:
    result = await cache_get("terrain_area", parcel_id)
    if result:
        return result.get("terrain_area_m2")
    return None


async def set_cached_terrain_area(parcel_id: str, area: float):
    await cache_set("terrain_area", parcel_id, {"terrain_area_m2": area}, TTL_TERRAIN_AREA)


async def get_cached_comparables(area_prefix: str) -> Optional[list[list[float]]]:
    result = await cache_get("comparables", area_prefix)
    if result:
        return result.get("sales")
    return None


async def set_cached_comparables(area_prefix: str, sales: list[list[float]]):
    await cache_set(
        "comparables", area_prefix, {"sales": sales}, settings.comparables_cache_ttl,
    )
