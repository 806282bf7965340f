"""Classified failures raised by repositories and the cache layer.

Callers never see raw SQLAlchemy or redis exceptions: each one is wrapped with
the entity, the operation and the lookup that failed, and chained with
``raise ... from exc`` so the driver error stays available for debugging.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional


def _describe(lookup: Mapping[str, Any]) -> str:
    return ", ".join(f"{key}={value}" for key, value in lookup.items())


class PersistenceError(Exception):
    """Base class for every classified store or cache failure."""


class NotFoundError(PersistenceError):
    """No row (or no currently valid row) matched the lookup."""

    def __init__(self, entity: str, **lookup: Any) -> None:
        self.entity = entity
        self.lookup = dict(lookup)
        detail = _describe(self.lookup)
        super().__init__(f"{entity} not found" + (f" ({detail})" if detail else ""))


class ConstraintViolationError(PersistenceError):
    """A uniqueness, foreign-key or check constraint rejected the write."""

    def __init__(self, entity: str, operation: str, detail: str, **lookup: Any) -> None:
        self.entity = entity
        self.operation = operation
        self.detail = detail
        self.lookup = dict(lookup)
        context = _describe(self.lookup)
        super().__init__(
            f"failed to {operation} {entity}" + (f" ({context})" if context else "") + f": {detail}"
        )


class StoreError(PersistenceError):
    """Any other persistence failure (connectivity, timeouts, driver errors)."""

    def __init__(self, entity: str, operation: str, detail: str, **lookup: Any) -> None:
        self.entity = entity
        self.operation = operation
        self.detail = detail
        self.lookup = dict(lookup)
        context = _describe(self.lookup)
        super().__init__(
            f"failed to {operation} {entity}" + (f" ({context})" if context else "") + f": {detail}"
        )


class CacheError(PersistenceError):
    """The cache backend could not be reached or rejected the command."""

    def __init__(self, message: str, *, key: Optional[str] = None) -> None:
        self.key = key
        super().__init__(message if key is None else f"{message} (key={key})")


class SerializationError(CacheError):
    """A value could not be encoded for the cache."""


class DeserializationError(CacheError):
    """A cached payload could not be decoded into the requested shape."""


__all__ = [
    "CacheError",
    "ConstraintViolationError",
    "DeserializationError",
    "NotFoundError",
    "PersistenceError",
    "SerializationError",
    "StoreError",
]
