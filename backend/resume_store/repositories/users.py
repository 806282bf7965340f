"""User persistence, including the soft-delete cascade over a user's data."""

from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from ..db.models import (
    ConfigurationModel,
    CurriculumModel,
    EducationModel,
    PasswordResetModel,
    SessionModel,
    SubscriptionModel,
    UserModel,
    WorkModel,
)
from ..entities import User
from ..errors import NotFoundError
from ..pagination import USER_SORT_FIELDS, normalize_page_request
from .base import Repository, apply_page, audit_of


class UserRepository(Repository):
    entity = "user"

    def create(self, user: User, *, uow: Optional[Session] = None) -> User:
        now = self._clock()
        model = UserModel(
            id=user.id or self._id_factory(),
            name=user.name,
            email=user.email,
            image_url=user.image_url,
            admin=user.admin,
            created_at=now,
            updated_at=now,
        )
        with self._unit(uow, "create", email=user.email) as session:
            session.add(model)
            session.flush()
            return self._to_domain(model)

    def get_by_id(self, user_id: str, *, uow: Optional[Session] = None) -> User:
        with self._unit(uow, "get", id=user_id) as session:
            return self._to_domain(self._require(session, user_id))

    def get_by_email(self, email: str, *, uow: Optional[Session] = None) -> User:
        stmt = select(UserModel).where(UserModel.email == email, UserModel.deleted_at.is_(None))
        with self._unit(uow, "get", email=email) as session:
            model = session.execute(stmt).scalar_one_or_none()
            if model is None:
                raise NotFoundError(self.entity, email=email)
            return self._to_domain(model)

    def get_all(self, *, uow: Optional[Session] = None) -> List[User]:
        stmt = (
            select(UserModel)
            .where(UserModel.deleted_at.is_(None))
            .order_by(UserModel.created_at.asc(), UserModel.id.asc())
        )
        with self._unit(uow, "list") as session:
            return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def get_with_pagination(
        self,
        page: object = None,
        page_size: object = None,
        sort_by: Optional[str] = None,
        sort_order: object = None,
        *,
        uow: Optional[Session] = None,
    ) -> List[User]:
        request = normalize_page_request(
            page, page_size, sort_by, sort_order, allowed_sort_fields=USER_SORT_FIELDS
        )
        stmt = apply_page(select(UserModel).where(UserModel.deleted_at.is_(None)), UserModel, request)
        with self._unit(uow, "list", page=request.page, page_size=request.page_size) as session:
            return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def get_page_after_id(
        self, after_id: Optional[str], limit: int, *, uow: Optional[Session] = None
    ) -> Tuple[List[User], bool]:
        """Cursor page ordered by id; the flag reports whether another page follows."""
        if limit < 1:
            return [], False
        stmt = select(UserModel).where(UserModel.deleted_at.is_(None))
        if after_id:
            stmt = stmt.where(UserModel.id > after_id)
        stmt = stmt.order_by(UserModel.id.asc()).limit(limit + 1)
        with self._unit(uow, "list", after_id=after_id) as session:
            models = list(session.execute(stmt).scalars())
        has_next = len(models) > limit
        return [self._to_domain(model) for model in models[:limit]], has_next

    def count(self, *, uow: Optional[Session] = None) -> int:
        stmt = select(func.count()).select_from(UserModel).where(UserModel.deleted_at.is_(None))
        with self._unit(uow, "count") as session:
            return int(session.execute(stmt).scalar_one())

    def update(self, user: User, *, uow: Optional[Session] = None) -> User:
        if not user.id:
            raise NotFoundError(self.entity, id=None)
        with self._unit(uow, "update", id=user.id) as session:
            model = self._require(session, user.id)
            model.name = user.name
            model.email = user.email
            model.image_url = user.image_url
            model.admin = user.admin
            model.updated_at = self._clock()
            session.flush()
            return self._to_domain(model)

    def toggle_admin(self, user_id: str, *, uow: Optional[Session] = None) -> User:
        with self._unit(uow, "toggle_admin", id=user_id) as session:
            model = self._require(session, user_id)
            model.admin = not model.admin
            model.updated_at = self._clock()
            session.flush()
            return self._to_domain(model)

    def delete(self, user_id: str, *, uow: Optional[Session] = None) -> None:
        """Soft-delete the user and everything hanging off it in a single transaction.

        Curriculums (with their works and educations) and the subscription are
        tombstoned; configuration, sessions and password resets are removed.
        Creation stats are left untouched.
        """
        with self._unit(uow, "delete", id=user_id) as session:
            now = self._clock()
            model = self._require(session, user_id)
            model.deleted_at = now
            model.updated_at = now

            curriculum_ids = select(CurriculumModel.id).where(
                CurriculumModel.user_id == user_id, CurriculumModel.deleted_at.is_(None)
            ).scalar_subquery()
            for child in (WorkModel, EducationModel):
                session.execute(
                    update(child)
                    .where(child.curriculum_id.in_(curriculum_ids), child.deleted_at.is_(None))
                    .values(deleted_at=now, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
            for owned in (CurriculumModel, SubscriptionModel):
                session.execute(
                    update(owned)
                    .where(owned.user_id == user_id, owned.deleted_at.is_(None))
                    .values(deleted_at=now, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
            for removed in (ConfigurationModel, SessionModel, PasswordResetModel):
                session.execute(
                    delete(removed)
                    .where(removed.user_id == user_id)
                    .execution_options(synchronize_session=False)
                )
            session.flush()

    def _require(self, session: Session, user_id: str) -> UserModel:
        stmt = select(UserModel).where(UserModel.id == user_id, UserModel.deleted_at.is_(None))
        model = session.execute(stmt).scalar_one_or_none()
        if model is None:
            raise NotFoundError(self.entity, id=user_id)
        return model

    @staticmethod
    def _to_domain(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            email=model.email,
            image_url=model.image_url,
            admin=model.admin,
            audit=audit_of(model),
        )


__all__ = ["UserRepository"]
