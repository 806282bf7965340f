"""Persistence and caching layer for the résumé service."""

from .db.session import Database
from .runtime import Runtime

__all__ = ["Database", "Runtime"]
