"""Monotonic per-user curriculum creation counter."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import insert, select, update
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import CurriculumCreationStatsModel
from .base import Repository

logger = logging.getLogger(__name__)

Stats = CurriculumCreationStatsModel


class CurriculumCreationStatsRepository(Repository):
    """Counts curriculum creations per user.

    The counter is never decremented, so deleting a curriculum does not
    lower it; the row is created lazily on the first increment.
    """

    entity = "curriculum_creation_stats"

    def increment_creation_count(self, user_id: str, *, uow: Optional[Session] = None) -> None:
        with self._unit(uow, "increment", user_id=user_id) as session:
            now = self._clock()
            stmt = select(Stats.id).where(Stats.user_id == user_id).with_for_update()
            if session.execute(stmt).scalar_one_or_none() is not None:
                self._bump(session, user_id, now)
            else:
                self._insert_or_bump(session, user_id, now)

    def get_by_user_id(self, user_id: str, *, uow: Optional[Session] = None) -> int:
        """Return the user's counter, or 0 when nothing was ever counted."""
        stmt = select(Stats.total_creations).where(Stats.user_id == user_id)
        with self._unit(uow, "get", user_id=user_id) as session:
            value = session.execute(stmt).scalar_one_or_none()
            return int(value) if value is not None else 0

    @staticmethod
    def _bump(session: Session, user_id: str, now: datetime) -> None:
        session.execute(
            update(Stats)
            .where(Stats.user_id == user_id)
            .values(total_creations=Stats.total_creations + 1, updated_at=now)
        )

    def _insert_or_bump(self, session: Session, user_id: str, now: datetime) -> None:
        values = {
            "id": self._id_factory(),
            "user_id": user_id,
            "total_creations": 1,
            "created_at": now,
            "updated_at": now,
        }
        dialect = session.get_bind().dialect.name

        if dialect in ("postgresql", "sqlite"):
            module = postgresql if dialect == "postgresql" else sqlite
            stmt = module.insert(Stats).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[Stats.user_id],
                set_={"total_creations": Stats.total_creations + 1, "updated_at": now},
            )
            session.execute(stmt)
            return

        if dialect in ("mysql", "mariadb"):
            stmt = mysql.insert(Stats).values(**values)
            stmt = stmt.on_duplicate_key_update(
                total_creations=Stats.total_creations + 1,
                updated_at=now,
            )
            session.execute(stmt)
            return

        # Other dialects: a concurrent first insert loses the race and is retried as an increment.
        try:
            with session.begin_nested():
                session.execute(insert(Stats).values(**values))
        except IntegrityError:
            logger.info("Stats row for %s appeared concurrently; incrementing instead", user_id)
            self._bump(session, user_id, now)


__all__ = ["CurriculumCreationStatsRepository"]
