# ruff: noqa: PLW0603
"""Redis connection management.

Provides the synchronous Redis client backing the Redis progress cache.
Cache writes happen inline with state mutation, so a blocking client is used.
"""

import redis

from learnpath.config import get_settings
from learnpath.core.logging import get_logger


logger = get_logger(__name__)

# Global Redis client
_redis_client: redis.Redis | None = None


def init_redis() -> redis.Redis:
    """Initialize the Redis client and verify the connection."""
    global _redis_client

    settings = get_settings()

    _redis_client = redis.from_url(
        settings.redis_url,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        decode_responses=True,
    )

    try:
        _redis_client.ping()
        logger.info("redis_connected", url=settings.redis_url)
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        raise

    return _redis_client


def shutdown_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client:
        _redis_client.close()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    """Get Redis client instance."""
    return _redis_client
