"""
Fixed-window rate limiting for the public booking surface.

Counters live in process memory and are pushed to Redis periodically, so a
burst against /bookings costs a handful of Redis commands instead of one per
request.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import Request

from .config import RATE_LIMIT_ENABLED
from .errors import RateLimitedError, RateLimiterUnavailableError

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None

# {key: {"count": int, "reset_time": int, "last_redis_sync": int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

MEMORY_CACHE_SYNC_INTERVAL = 10  # seconds
MEMORY_CACHE_CLEANUP_INTERVAL = 60
last_cleanup_time = 0


def get_redis_client() -> redis.Redis:
    """Create the shared Redis client from REDIS_URL or REDIS_HOST/PORT"""
    global redis_client

    if redis_client is None:
        redis_url = os.getenv("REDIS_URL")
        try:
            if redis_url:
                logger.info("📡 Connecting rate limiter to Redis via URL")
                redis_client = redis.from_url(
                    redis_url,
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    retry_on_timeout=True,
                )
            else:
                redis_host = os.getenv("REDIS_HOST", "localhost")
                redis_port = int(os.getenv("REDIS_PORT", "6379"))
                logger.info(f"📡 Connecting rate limiter to Redis at {redis_host}:{redis_port}")
                redis_client = redis.Redis(
                    host=redis_host,
                    port=redis_port,
                    password=os.getenv("REDIS_PASSWORD") or None,
                    db=int(os.getenv("REDIS_DB", "0")),
                    ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    retry_on_timeout=True,
                )
            redis_client.ping()
            logger.info("✅ Redis connected for rate limiting")
        except Exception as e:
            redis_client = None
            logger.error(f"❌ Failed to connect to Redis: {e}")
            raise

    return redis_client


def reset_memory_cache() -> None:
    global last_cleanup_time
    with cache_lock:
        memory_cache.clear()
    last_cleanup_time = 0


def cleanup_expired_cache(now: int) -> None:
    global last_cleanup_time
    if now - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired = [k for k, v in memory_cache.items() if now >= v.get("reset_time", 0)]
        for k in expired:
            del memory_cache[k]
    if expired:
        logger.debug(f"🧹 Cleaned up {len(expired)} expired rate limit entries")
    last_cleanup_time = now


def _load_entry(key: str, window_seconds: int, client: redis.Redis, now: int) -> dict:
    """Seed a memory entry from Redis so a restarted process keeps the window"""
    try:
        stored = client.get(key)
        ttl = client.ttl(key)
        if stored and ttl and ttl > 0:
            return {"count": int(stored), "reset_time": now + ttl, "last_redis_sync": now}
    except Exception as e:
        logger.warning(f"⚠️ Failed to load {key} from Redis, using memory only: {e}")
    return {"count": 0, "reset_time": now + window_seconds, "last_redis_sync": now}


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: redis.Redis
) -> tuple[bool, int, int]:
    """
    Count one request against ``key``.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds). Any internal
        failure denies the request.
    """
    try:
        now = int(time.time())
        cleanup_expired_cache(now)

        with cache_lock:
            entry = memory_cache.get(key)
            if entry is None:
                entry = memory_cache[key] = _load_entry(key, window_seconds, client, now)

            if now >= entry["reset_time"]:
                entry["count"] = 0
                entry["reset_time"] = now + window_seconds
                entry["last_redis_sync"] = 0

            is_allowed = entry["count"] < limit
            if is_allowed:
                entry["count"] += 1

            if now - entry.get("last_redis_sync", 0) >= MEMORY_CACHE_SYNC_INTERVAL:
                try:
                    client.set(key, entry["count"], ex=window_seconds)
                    entry["last_redis_sync"] = now
                except Exception as e:
                    logger.warning(f"⚠️ Failed to sync {key} to Redis: {e}")

            return is_allowed, entry["count"], max(0, entry["reset_time"] - now)

    except Exception as e:
        logger.error(f"❌ Rate limit check failed: {e}")
        return False, limit, 0


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_dependency(
    request: Request, limit: int, window_seconds: int, key_prefix: str = "rate_limit"
):
    """Per-IP limit; 429 when exceeded, 503 when the limiter itself is down"""
    if not RATE_LIMIT_ENABLED:
        return

    try:
        client = get_redis_client()
        key = f"{key_prefix}:{client_ip(request)}"
        is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, client)
    except Exception as e:
        logger.error(f"❌ Rate limiting error: {e}")
        logger.warning("🔒 Denying request due to rate limiting error (fail-closed mode)")
        raise RateLimiterUnavailableError() from e

    if not is_allowed:
        logger.warning(f"🚫 Rate limit exceeded for {key} - {current_count}/{limit}")
        raise RateLimitedError(
            f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
            retry_after=ttl,
        )

    request.state.rate_limit_remaining = limit - current_count


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Create a rate limiter dependency

    Example usage:
        booking_limiter = create_rate_limiter(10, 60, key_prefix="booking_create")

        @router.post("/bookings")
        async def create_booking(_: None = Depends(booking_limiter)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix)

    return rate_limiter
