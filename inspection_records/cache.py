from __future__ import annotations

import asyncio
import hashlib
import json
from typing import Any, Optional

from redis.asyncio import Redis, ConnectionPool
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import RedisError

import structlog
from inspection_records.config import settings
from inspection_records.exceptions import CacheError

log = structlog.get_logger(__name__)

_pool: Optional[ConnectionPool] = None


# ── Pool lifecycle ────────────────────────────────────────────────────────────

async def init_redis_pool() -> None:
    global _pool
    _pool = ConnectionPool.from_url(
        settings.REDIS_URL,
        max_connections=settings.REDIS_POOL_SIZE,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        socket_connect_timeout=settings.REDIS_CONNECT_TIMEOUT,
        decode_responses=True,
        retry=Retry(ExponentialBackoff(), retries=2),
        retry_on_error=[RedisError],
    )
    log.info("redis.pool.initialized", pool_size=settings.REDIS_POOL_SIZE)


async def close_redis_pool() -> None:
    global _pool
    if _pool:
        await _pool.aclose()
        _pool = None
        log.info("redis.pool.closed")


def get_redis() -> Redis:
    if _pool is None:
        raise CacheError("Redis pool not initialized")
    return Redis(connection_pool=_pool)


async def ping_redis() -> bool:
    try:
        return await get_redis().ping()
    except (RedisError, CacheError):
        return False


# ── Keys ──────────────────────────────────────────────────────────────────────

KEY_PATTERN = "bfp:v1:*"


def build_key(*parts: Any) -> str:
    raw = ":".join(str(p) for p in parts)
    digest = hashlib.sha256(raw.encode()).hexdigest()[:12]
    slug = raw[:60].replace(" ", "_")
    return f"bfp:v1:{digest}:{slug}"


# ── Read / write ──────────────────────────────────────────────────────────────
#
# The cache only ever holds folded listings, keyed by the store generation
# committed with the last write (see repositories.generation). Writes never
# delete entries; a bumped generation simply stops them being read, and they
# age out by TTL. A missing pool or a Redis failure reads as a miss and
# writes are dropped.

async def cache_get(key: str) -> Optional[Any]:
    try:
        raw = await get_redis().get(key)
    except (RedisError, CacheError) as e:
        log.warning("cache.get.error", key=key, error=str(e))
        return None
    return json.loads(raw) if raw is not None else None


async def cache_set(key: str, value: Any, ttl: int) -> None:
    try:
        await get_redis().setex(key, ttl, json.dumps(value, default=str))
    except (RedisError, CacheError) as e:
        log.warning("cache.set.error", key=key, error=str(e))


async def invalidate_pattern(pattern: str) -> int:
    """Use SCAN instead of KEYS to avoid blocking Redis."""
    try:
        r = get_redis()
        deleted = 0
        async for key in r.scan_iter(match=pattern, count=100):
            await r.delete(key)
            deleted += 1
        if deleted:
            log.info("cache.invalidated", pattern=pattern, count=deleted)
        return deleted
    except (RedisError, CacheError) as e:
        log.warning("cache.invalidate.error", pattern=pattern, error=str(e))
        return 0


# ── Stats ─────────────────────────────────────────────────────────────────────

_stats_lock = asyncio.Lock()
_stats = {"hits": 0, "misses": 0}


async def record_hit() -> None:
    async with _stats_lock:
        _stats["hits"] += 1


async def record_miss() -> None:
    async with _stats_lock:
        _stats["misses"] += 1


async def get_cache_stats() -> dict:
    async with _stats_lock:
        total = _stats["hits"] + _stats["misses"]
        hit_rate = round(_stats["hits"] / total, 4) if total else 0.0
        return {**_stats, "total_requests": total, "hit_rate": hit_rate}
