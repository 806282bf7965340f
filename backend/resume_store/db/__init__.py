"""Database utilities for the résumé store."""

from .base import Base
from .session import Database

__all__ = ["Base", "Database"]
