"""Operational events emitted by the store, cache and runtime.

Events are plain ``(name, payload)`` pairs. Every event is logged as a single
JSON line on the ``resume_store.telemetry`` logger and handed to any
in-process listeners, which is how tests observe purges, cache degradation
and pool snapshots.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from threading import RLock
from typing import Any, Callable, Dict, List
from uuid import UUID

logger = logging.getLogger("resume_store.telemetry")

CURRICULUM_CREATED = "curriculum_created"
SESSIONS_PURGED = "sessions_purged"
PASSWORD_RESETS_PURGED = "password_resets_purged"
CACHE_DEGRADED = "cache_degraded"
DB_POOL_STATUS = "db_pool_status"

Listener = Callable[["TelemetryEvent"], None]


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


_listeners: List[Listener] = []
_lock = RLock()


def register_listener(listener: Listener) -> Callable[[], None]:
    """Subscribe ``listener`` to every event; returns a callable that unsubscribes it."""
    with _lock:
        _listeners.append(listener)

    def _unregister() -> None:
        with _lock:
            if listener in _listeners:
                _listeners.remove(listener)

    return _unregister


def clear_listeners() -> None:
    with _lock:
        _listeners.clear()


def emit_event(name: str, **fields: Any) -> None:
    event = TelemetryEvent(name=name, payload={key: _plain(value) for key, value in fields.items()})

    with _lock:
        listeners = tuple(_listeners)

    for listener in listeners:
        try:
            listener(event)
        except Exception:  # noqa: BLE001
            logger.exception("Telemetry listener failed for %s", name)

    logger.info("TELEMETRY %s", json.dumps({"event": name, **event.payload}, default=str))


def _plain(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    return value


__all__ = [
    "CACHE_DEGRADED",
    "CURRICULUM_CREATED",
    "DB_POOL_STATUS",
    "PASSWORD_RESETS_PURGED",
    "SESSIONS_PURGED",
    "TelemetryEvent",
    "clear_listeners",
    "emit_event",
    "register_listener",
]
