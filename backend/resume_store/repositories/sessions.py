"""Login session persistence."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ..db.models import SessionModel
from ..entities import LoginSession
from ..errors import NotFoundError
from .base import Repository, audit_of


class SessionRepository(Repository):
    entity = "session"

    def create(self, login: LoginSession, *, uow: Optional[Session] = None) -> LoginSession:
        now = self._clock()
        model = SessionModel(
            id=login.id or self._id_factory(),
            user_id=login.user_id,
            token=login.token,
            expires_at=login.expires_at,
            is_active=login.is_active,
            created_at=now,
            updated_at=now,
        )
        with self._unit(uow, "create", user_id=login.user_id) as session:
            session.add(model)
            session.flush()
            return self._to_domain(model)

    def get_by_token(self, token: str, *, uow: Optional[Session] = None) -> LoginSession:
        """Return the session only while it is active and unexpired."""
        stmt = select(SessionModel).where(
            SessionModel.token == token,
            SessionModel.is_active.is_(True),
            SessionModel.expires_at > self._clock(),
        )
        with self._unit(uow, "get", token="***") as session:
            model = session.execute(stmt).scalar_one_or_none()
            if model is None:
                raise NotFoundError(self.entity, token="***")
            return self._to_domain(model)

    def get_by_user_id(self, user_id: str, *, uow: Optional[Session] = None) -> List[LoginSession]:
        stmt = select(SessionModel).where(SessionModel.user_id == user_id).order_by(SessionModel.created_at.desc())
        with self._unit(uow, "list", user_id=user_id) as session:
            return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def get_active_by_user_id(self, user_id: str, *, uow: Optional[Session] = None) -> List[LoginSession]:
        stmt = (
            select(SessionModel)
            .where(
                SessionModel.user_id == user_id,
                SessionModel.is_active.is_(True),
                SessionModel.expires_at > self._clock(),
            )
            .order_by(SessionModel.created_at.desc())
        )
        with self._unit(uow, "list", user_id=user_id) as session:
            return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def get_active_by_user_id_and_token(
        self, user_id: str, token: str, *, uow: Optional[Session] = None
    ) -> LoginSession:
        stmt = select(SessionModel).where(
            SessionModel.user_id == user_id,
            SessionModel.token == token,
            SessionModel.is_active.is_(True),
            SessionModel.expires_at > self._clock(),
        )
        with self._unit(uow, "get", user_id=user_id) as session:
            model = session.execute(stmt).scalar_one_or_none()
            if model is None:
                raise NotFoundError(self.entity, user_id=user_id)
            return self._to_domain(model)

    def update(self, login: LoginSession, *, uow: Optional[Session] = None) -> LoginSession:
        with self._unit(uow, "update", id=login.id) as session:
            model = session.get(SessionModel, login.id) if login.id else None
            if model is None:
                raise NotFoundError(self.entity, id=login.id)
            model.token = login.token
            model.expires_at = login.expires_at
            model.is_active = login.is_active
            model.updated_at = self._clock()
            session.flush()
            return self._to_domain(model)

    def deactivate_by_user_id(self, user_id: str, *, uow: Optional[Session] = None) -> int:
        stmt = (
            update(SessionModel)
            .where(SessionModel.user_id == user_id, SessionModel.is_active.is_(True))
            .values(is_active=False, updated_at=self._clock())
        )
        with self._unit(uow, "deactivate", user_id=user_id) as session:
            return session.execute(stmt).rowcount

    def deactivate_by_token(self, token: str, *, uow: Optional[Session] = None) -> int:
        stmt = (
            update(SessionModel)
            .where(SessionModel.token == token, SessionModel.is_active.is_(True))
            .values(is_active=False, updated_at=self._clock())
        )
        with self._unit(uow, "deactivate", token="***") as session:
            return session.execute(stmt).rowcount

    def delete_expired(self, *, uow: Optional[Session] = None) -> int:
        stmt = delete(SessionModel).where(SessionModel.expires_at < self._clock())
        with self._unit(uow, "delete_expired") as session:
            return session.execute(stmt).rowcount

    @staticmethod
    def _to_domain(model: SessionModel) -> LoginSession:
        return LoginSession(
            id=model.id,
            user_id=model.user_id,
            token=model.token,
            expires_at=model.expires_at,
            is_active=model.is_active,
            audit=audit_of(model),
        )


__all__ = ["SessionRepository"]
