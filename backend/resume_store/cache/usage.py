"""Calendar-month usage counters kept in redis."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import redis

from ..entities import utcnow
from ..errors import CacheError
from .keys import usage_key


def start_of_next_month(now: datetime) -> datetime:
    now = now.astimezone(timezone.utc)
    if now.month == 12:
        return datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)


class MonthlyUsageCounter:
    """INCR a per-user, per-feature counter that expires when the UTC month rolls over."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    def increment(self, user_id: str, feature: str, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        key = usage_key(user_id, feature, now.astimezone(timezone.utc))
        try:
            pipe = self._client.pipeline()
            pipe.incr(key)
            pipe.expireat(key, start_of_next_month(now))
            count, _ = pipe.execute()
        except redis.RedisError as exc:
            raise CacheError(f"failed to increment usage: {exc}", key=key) from exc
        return int(count)

    def current(self, user_id: str, feature: str, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        key = usage_key(user_id, feature, now.astimezone(timezone.utc))
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            raise CacheError(f"failed to read usage: {exc}", key=key) from exc
        return int(value) if value is not None else 0


__all__ = ["MonthlyUsageCounter", "start_of_next_month"]
