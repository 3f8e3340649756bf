"""
Redis client for the shared daily quota.

Only used when QUOTA_BACKEND=redis. The API keeps one pooled client for its
lifetime; the CLI opens a short-lived one with ``redis_connection()``.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
from redis.asyncio import ConnectionPool, Redis

from .config import get_settings

logger = logging.getLogger(__name__)

_pool: Optional[ConnectionPool] = None
_client: Optional[Redis] = None


async def init_redis() -> Redis:
    """Open the pooled client and verify it with a PING."""
    global _pool, _client

    settings = get_settings()
    _pool = ConnectionPool.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        decode_responses=True,
    )
    _client = Redis(connection_pool=_pool)

    try:
        await _client.ping()
    except Exception as e:
        logger.error(f"Failed to connect to Redis at startup: {e}")
        raise
    logger.info("Redis quota backend connected")
    return _client


async def close_redis() -> None:
    global _pool, _client

    if _client:
        await _client.aclose()
        _client = None
    if _pool:
        await _pool.disconnect()
        _pool = None
    logger.info("Redis quota backend closed")


async def get_redis() -> Redis:
    """
    Return the pooled client.

    Raises:
        RuntimeError: If init_redis() has not run
    """
    if _client is None:
        raise RuntimeError("Redis quota backend is not initialized")
    return _client


@asynccontextmanager
async def redis_connection():
    """Standalone client for code running outside the app lifespan."""
    client = redis.from_url(get_settings().redis_url, decode_responses=True)
    try:
        yield client
    finally:
        await client.aclose()


class RedisHealthCheck:
    """PING check used by the readiness and detailed health routes."""

    @staticmethod
    async def check() -> dict:
        try:
            client = await get_redis()
            start = time.perf_counter()
            await client.ping()
        except RuntimeError:
            return {"status": "not_initialized", "latency_ms": None}
        except Exception as e:
            return {"status": "unhealthy", "error": str(e), "latency_ms": None}
        return {
            "status": "healthy",
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
        }
