# intake/services/redis.py
from __future__ import annotations

from typing import Any, Dict, Optional

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff

from intake.core.config import settings
from intake.core.exceptions import ServiceUnavailableError
from intake.core.logging import get_structlog_logger

logger = get_structlog_logger(__name__)

# Global Redis connection pool
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[redis.Redis] = None


async def init_redis_pool() -> None:
    """Initialize Redis connection pool."""
    global _redis_pool, _redis_client

    if _redis_pool is not None:
        return

    try:
        retry = Retry(
            backoff=ExponentialBackoff(base=1),
            retries=3,
        )

        _redis_pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_max_connections,
            socket_timeout=settings.redis_socket_timeout,
            socket_connect_timeout=settings.redis_socket_connect_timeout,
            retry=retry,
            retry_on_error=[redis.ConnectionError, redis.TimeoutError],
            health_check_interval=30,
            decode_responses=True,
        )

        _redis_client = redis.Redis(connection_pool=_redis_pool)

        await _redis_client.ping()

        logger.info(
            "redis.connected",
            max_connections=settings.redis_max_connections,
        )

    except Exception as e:
        logger.error("redis.connection_failed", error=str(e))
        _redis_pool = None
        _redis_client = None
        raise ServiceUnavailableError(
            message="Redis connection failed",
            details={"error": str(e)},
        ) from e


async def get_redis_client() -> redis.Redis:
    """Get Redis client instance."""
    if _redis_client is None:
        await init_redis_pool()

    return _redis_client


async def close_redis_pool() -> None:
    """Close Redis connection pool."""
    global _redis_pool, _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None

    logger.info("redis.connections_closed")


async def health_check() -> Dict[str, Any]:
    """Check Redis connectivity."""
    try:
        client = await get_redis_client()
        await client.ping()
        info = await client.info(section="server")
        return {
            "status": "healthy",
            "version": str(info.get("redis_version", "unknown")),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": type(e).__name__,
        }
