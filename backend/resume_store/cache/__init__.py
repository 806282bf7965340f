"""Redis-backed caching for the résumé store."""

from .aside import CacheAside
from .client import build_redis_client, connect_cache
from .service import CacheService
from .usage import MonthlyUsageCounter

__all__ = ["CacheAside", "CacheService", "MonthlyUsageCounter", "build_redis_client", "connect_cache"]
