"""
Redis cache for the invite roster.

The roster is an external sheet: slow to fetch, read on every invite check
and booking, and edited rarely. It is stored as one JSON list under
ROSTER_KEY with a ROSTER_CACHE_TTL expiry, and the admin API can drop it
after the sheet changes.

Redemption state is never cached. It is always read from the bookings
table, since a stale "redeemed" answer would turn a paying guest away.

Redis is optional. Every function degrades to "no cache" on error, and
after a failed connect we wait REDIS_RETRY_SECONDS before trying again so
an outage does not add a connect timeout to every request.
"""

import json
import time
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from ticketing.core.config import get_settings
from ticketing.core.logging import get_logger
from ticketing.core.metrics import record_roster_cache

logger = get_logger(__name__)
settings = get_settings()

ROSTER_KEY = "roster:entries"

_client: Optional[redis.Redis] = None
_retry_after: float = 0.0


async def get_redis() -> Optional[redis.Redis]:
    """Shared client, or None while Redis is disabled or in back-off."""
    global _client, _retry_after

    if not settings.REDIS_ENABLED:
        return None
    if _client is not None:
        return _client
    if time.monotonic() < _retry_after:
        return None

    candidate = redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=2,
        health_check_interval=30,
    )
    try:
        await candidate.ping()
    except (RedisError, OSError) as e:
        _retry_after = time.monotonic() + settings.REDIS_RETRY_SECONDS
        logger.warning("redis_unreachable", error=str(e), retry_in=settings.REDIS_RETRY_SECONDS)
        await candidate.aclose()
        return None

    _client = candidate
    logger.info("redis_connected")
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


async def _drop_client() -> None:
    """Forget a client that just failed; the next call reconnects after back-off."""
    global _retry_after
    _retry_after = time.monotonic() + settings.REDIS_RETRY_SECONDS
    await close_redis()


async def get_cached_roster() -> Optional[list[dict]]:
    client = await get_redis()
    if client is None:
        return None

    try:
        raw = await client.get(ROSTER_KEY)
    except RedisError as e:
        record_roster_cache("error")
        logger.error("roster_cache_read_failed", error=str(e))
        await _drop_client()
        return None

    if raw is None:
        record_roster_cache("miss")
        return None
    record_roster_cache("hit")
    return json.loads(raw)


async def set_cached_roster(entries: list[dict], ttl: Optional[int] = None) -> None:
    client = await get_redis()
    if client is None:
        return

    ttl = ttl or settings.ROSTER_CACHE_TTL
    try:
        await client.set(ROSTER_KEY, json.dumps(entries), ex=ttl)
    except RedisError as e:
        logger.error("roster_cache_write_failed", error=str(e))
        await _drop_client()
        return
    logger.debug("roster_cached", entries=len(entries), ttl=ttl)


async def invalidate_roster_cache() -> bool:
    """Returns True if a cached roster was removed."""
    client = await get_redis()
    if client is None:
        return False

    try:
        removed = await client.delete(ROSTER_KEY)
    except RedisError as e:
        logger.error("roster_cache_invalidate_failed", error=str(e))
        await _drop_client()
        return False
    logger.info("roster_cache_invalidated", removed=bool(removed))
    return bool(removed)


async def get_cache_stats() -> dict:
    """Cache state for the health endpoint."""
    if not settings.REDIS_ENABLED:
        return {"status": "disabled"}
    client = await get_redis()
    if client is None:
        return {"status": "unavailable"}

    try:
        stats = await client.info("stats")
        roster_ttl = await client.ttl(ROSTER_KEY)
    except RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = stats.get("keyspace_hits", 0)
    misses = stats.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        "roster_cached": roster_ttl > 0,
        "roster_ttl": max(roster_ttl, 0),
    }
