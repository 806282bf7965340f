"""Shared plumbing for the SQLAlchemy-backed repositories."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Generator, Optional

from sqlalchemy import Select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.session import Database
from ..entities import Audit, utcnow
from ..errors import ConstraintViolationError, StoreError
from ..pagination import PageRequest, SortOrder

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def new_id() -> str:
    return str(uuid.uuid4())


def audit_of(model: Any) -> Audit:
    return Audit(
        created_at=model.created_at,
        updated_at=model.updated_at,
        deleted_at=getattr(model, "deleted_at", None),
    )


def apply_page(stmt: Select, model: Any, request: PageRequest) -> Select:
    """Order by the requested column with ``id`` as tie-breaker, then slice the page."""
    column = getattr(model, request.sort_by)
    if request.sort_order is SortOrder.ASC:
        stmt = stmt.order_by(column.asc(), model.id.asc())
    else:
        stmt = stmt.order_by(column.desc(), model.id.desc())
    return stmt.offset(request.offset).limit(request.page_size)


class Repository:
    """Base class wiring a repository to a :class:`Database`, a clock and an id factory.

    Every public method accepts ``uow=`` to join a caller's unit of work; without
    it the method runs in (and commits) its own.
    """

    entity = "record"

    def __init__(
        self,
        database: Database,
        *,
        clock: Clock = utcnow,
        id_factory: IdFactory = new_id,
    ) -> None:
        self._database = database
        self._clock = clock
        self._id_factory = id_factory

    @contextmanager
    def _unit(self, uow: Optional[Session], operation: str, **lookup: Any) -> Generator[Session, None, None]:
        try:
            if uow is not None:
                yield uow
            else:
                with self._database.unit_of_work() as session:
                    yield session
        except IntegrityError as exc:
            logger.warning("Constraint violation during %s %s %s: %s", operation, self.entity, lookup, exc.orig)
            raise ConstraintViolationError(self.entity, operation, str(exc.orig), **lookup) from exc
        except SQLAlchemyError as exc:
            logger.error("Store failure during %s %s %s: %s", operation, self.entity, lookup, exc)
            raise StoreError(self.entity, operation, str(exc), **lookup) from exc


__all__ = ["Clock", "IdFactory", "Repository", "apply_page", "audit_of", "new_id"]
