"""Password reset token persistence."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ..db.models import PasswordResetModel
from ..entities import PasswordReset
from ..errors import NotFoundError
from .base import Repository, audit_of


class PasswordResetRepository(Repository):
    entity = "password_reset"

    def create(self, reset: PasswordReset, *, uow: Optional[Session] = None) -> PasswordReset:
        now = self._clock()
        model = PasswordResetModel(
            id=reset.id or self._id_factory(),
            user_id=reset.user_id,
            token=reset.token,
            email=reset.email,
            expires_at=reset.expires_at,
            used=reset.used,
            created_at=now,
            updated_at=now,
        )
        with self._unit(uow, "create", user_id=reset.user_id) as session:
            session.add(model)
            session.flush()
            return self._to_domain(model)

    def get_by_token(self, token: str, *, uow: Optional[Session] = None) -> PasswordReset:
        stmt = select(PasswordResetModel).where(
            PasswordResetModel.token == token,
            PasswordResetModel.used.is_(False),
            PasswordResetModel.expires_at > self._clock(),
        )
        with self._unit(uow, "get", token="***") as session:
            model = session.execute(stmt).scalar_one_or_none()
            if model is None:
                raise NotFoundError(self.entity, token="***")
            return self._to_domain(model)

    def get_by_email(self, email: str, *, uow: Optional[Session] = None) -> PasswordReset:
        """Latest redeemable token issued for ``email``."""
        stmt = (
            select(PasswordResetModel)
            .where(
                PasswordResetModel.email == email,
                PasswordResetModel.used.is_(False),
                PasswordResetModel.expires_at > self._clock(),
            )
            .order_by(PasswordResetModel.created_at.desc(), PasswordResetModel.id.desc())
            .limit(1)
        )
        with self._unit(uow, "get", email=email) as session:
            model = session.execute(stmt).scalar_one_or_none()
            if model is None:
                raise NotFoundError(self.entity, email=email)
            return self._to_domain(model)

    def mark_as_used(self, token: str, *, uow: Optional[Session] = None) -> None:
        """Consume a redeemable token; a used or expired token raises :class:`NotFoundError`."""
        now = self._clock()
        stmt = (
            update(PasswordResetModel)
            .where(
                PasswordResetModel.token == token,
                PasswordResetModel.used.is_(False),
                PasswordResetModel.expires_at > now,
            )
            .values(used=True, updated_at=now)
        )
        with self._unit(uow, "mark_used", token="***") as session:
            if session.execute(stmt).rowcount == 0:
                raise NotFoundError(self.entity, token="***")

    def delete_expired(self, *, uow: Optional[Session] = None) -> int:
        stmt = delete(PasswordResetModel).where(PasswordResetModel.expires_at < self._clock())
        with self._unit(uow, "delete_expired") as session:
            return session.execute(stmt).rowcount

    def delete_by_user_id(self, user_id: str, *, uow: Optional[Session] = None) -> int:
        stmt = delete(PasswordResetModel).where(PasswordResetModel.user_id == user_id)
        with self._unit(uow, "delete", user_id=user_id) as session:
            return session.execute(stmt).rowcount

    @staticmethod
    def _to_domain(model: PasswordResetModel) -> PasswordReset:
        return PasswordReset(
            id=model.id,
            user_id=model.user_id,
            token=model.token,
            email=model.email,
            expires_at=model.expires_at,
            used=model.used,
            audit=audit_of(model),
        )


__all__ = ["PasswordResetRepository"]
