"""JSON cache over a synchronous redis client."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Optional, Tuple, Type, TypeVar

import redis
from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from ..errors import CacheError, DeserializationError, SerializationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SCAN_BATCH = 500


@lru_cache(maxsize=128)
def _adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


class CacheService:
    """Typed get/set/delete on top of ``redis.Redis``.

    Values are encoded with pydantic so entities, lists of entities and plain
    JSON values all round-trip. Transport failures surface as
    :class:`CacheError`; codec failures as its serialization subclasses.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @property
    def client(self) -> redis.Redis:
        return self._client

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            payload = _adapter(type(value)).dump_json(value)
        except (PydanticSerializationError, TypeError, ValueError) as exc:
            raise SerializationError(f"failed to encode value: {exc}", key=key) from exc
        try:
            self._client.set(key, payload, ex=ttl if ttl and ttl > 0 else None)
        except redis.RedisError as exc:
            raise CacheError(f"failed to set cache entry: {exc}", key=key) from exc
        logger.debug("Cached %s (ttl=%s)", key, ttl)

    def get(self, key: str, shape: Type[T]) -> Tuple[bool, Optional[T]]:
        """Return ``(True, value)`` on a hit and ``(False, None)`` on a miss."""
        try:
            payload = self._client.get(key)
        except redis.RedisError as exc:
            raise CacheError(f"failed to get cache entry: {exc}", key=key) from exc
        if payload is None:
            logger.debug("Cache miss %s", key)
            return False, None
        try:
            return True, _adapter(shape).validate_json(payload)
        except ValidationError as exc:
            raise DeserializationError(f"failed to decode cached value: {exc}", key=key) from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            raise CacheError(f"failed to delete cache entry: {exc}", key=key) from exc

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching the glob ``pattern``; returns how many were removed."""
        try:
            keys = list(self._client.scan_iter(match=pattern, count=_SCAN_BATCH))
            if not keys:
                return 0
            deleted = int(self._client.delete(*keys))
        except redis.RedisError as exc:
            raise CacheError(f"failed to delete pattern: {exc}", key=pattern) from exc
        logger.debug("Deleted %s keys matching %s", deleted, pattern)
        return deleted

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError as exc:
            raise CacheError(f"cache ping failed: {exc}") from exc


__all__ = ["CacheService"]
