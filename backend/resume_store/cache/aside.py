"""Cache-aside helper used by the services.

The relational store stays the source of truth: a cache that is missing,
unreachable or holding an undecodable payload only costs a store round-trip.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional, Type, TypeVar

from ..errors import CacheError
from ..telemetry import CACHE_DEGRADED, emit_event
from .service import CacheService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheAside:
    def __init__(self, cache: Optional[CacheService]) -> None:
        self._cache = cache

    @property
    def enabled(self) -> bool:
        return self._cache is not None

    def fetch(self, key: str, shape: Type[T], loader: Callable[[], T], ttl: int) -> T:
        """Return the cached value for ``key`` or load it, cache it and return it."""
        if self._cache is not None:
            try:
                found, value = self._cache.get(key, shape)
            except CacheError as exc:
                self._degraded("get", key, exc)
            else:
                if found:
                    return value  # type: ignore[return-value]

        value = loader()
        self.store(key, value, ttl)
        return value

    def store(self, key: str, value: Any, ttl: int) -> None:
        if self._cache is None:
            return
        try:
            self._cache.set(key, value, ttl)
        except CacheError as exc:
            self._degraded("set", key, exc)

    def invalidate(self, *keys: str, patterns: Iterable[str] = ()) -> None:
        if self._cache is None:
            return
        for key in keys:
            try:
                self._cache.delete(key)
            except CacheError as exc:
                self._degraded("delete", key, exc)
        for pattern in patterns:
            try:
                self._cache.delete_pattern(pattern)
            except CacheError as exc:
                self._degraded("delete_pattern", pattern, exc)

    @staticmethod
    def _degraded(operation: str, key: str, exc: CacheError) -> None:
        logger.warning("Cache %s failed for %s: %s", operation, key, exc)
        emit_event(CACHE_DEGRADED, operation=operation, key=key, error=type(exc).__name__)


__all__ = ["CacheAside"]
