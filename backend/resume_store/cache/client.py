"""Redis client construction from settings."""

from __future__ import annotations

import logging
from typing import Optional

import redis

from ..config import Settings

logger = logging.getLogger(__name__)


def build_redis_client(settings: Settings) -> redis.Redis:
    """Build a pooled client from ``REDIS_URL`` or the discrete ``REDIS_*`` settings."""
    options = {
        "socket_timeout": settings.redis_socket_timeout,
        "socket_connect_timeout": settings.redis_socket_timeout,
        "health_check_interval": 30,
        "retry_on_timeout": True,
    }
    if settings.redis_url:
        return redis.Redis.from_url(settings.redis_url, **options)
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        username=settings.redis_username or None,
        password=settings.redis_password or None,
        db=settings.redis_db,
        **options,
    )


def connect_cache(settings: Settings) -> Optional[redis.Redis]:
    """Return a verified client, or ``None`` when caching is disabled or unreachable."""
    if not settings.redis_enabled:
        logger.info("Redis disabled; running without cache.")
        return None

    client = build_redis_client(settings)
    try:
        client.ping()
    except redis.RedisError as exc:
        logger.warning("Redis unavailable, continuing without cache: %s", exc)
        client.close()
        return None
    logger.info("Redis cache connected.")
    return client


__all__ = ["build_redis_client", "connect_cache"]
