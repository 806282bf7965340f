"""Curriculum persistence with nested work and education rows."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Type, Union

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import Session, selectinload

from ..db.models import CurriculumModel, EducationModel, UserModel, WorkModel
from ..entities import Curriculum, Education, Work
from ..errors import NotFoundError
from ..pagination import CURRICULUM_SORT_FIELDS, normalize_page_request
from .base import Repository, apply_page, audit_of

_ChildModel = Union[Type[WorkModel], Type[EducationModel]]

_CURRICULUM_FIELDS = (
    "full_name",
    "email",
    "phone",
    "driver_license",
    "intro",
    "skills",
    "languages",
    "courses",
    "social_links",
    "image_url",
)
_WORK_FIELDS = ("position", "company", "description", "start_date", "end_date")
_EDUCATION_FIELDS = ("institution", "degree", "description", "start_date", "end_date")


def _live() -> Select:
    return select(CurriculumModel).where(CurriculumModel.deleted_at.is_(None)).options(
        selectinload(CurriculumModel.works),
        selectinload(CurriculumModel.educations),
    )


class CurriculumRepository(Repository):
    entity = "curriculum"

    def create(self, curriculum: Curriculum, *, uow: Optional[Session] = None) -> Curriculum:
        """Insert the curriculum and all of its works and educations, or nothing.

        The owning user must exist and not be soft-deleted.
        """
        now = self._clock()
        curriculum_id = curriculum.id or self._id_factory()
        model = CurriculumModel(id=curriculum_id, user_id=curriculum.user_id, created_at=now, updated_at=now)
        for field in _CURRICULUM_FIELDS:
            setattr(model, field, getattr(curriculum, field))

        with self._unit(uow, "create", user_id=curriculum.user_id) as session:
            owner = select(UserModel.id).where(UserModel.id == curriculum.user_id, UserModel.deleted_at.is_(None))
            if session.execute(owner).scalar_one_or_none() is None:
                raise NotFoundError("user", id=curriculum.user_id)
            session.add(model)
            session.flush()
            for work in curriculum.works:
                session.add(self._new_child(WorkModel, _WORK_FIELDS, work, curriculum_id, now))
            for education in curriculum.educations:
                session.add(self._new_child(EducationModel, _EDUCATION_FIELDS, education, curriculum_id, now))
            session.flush()
            return self._to_domain(self._require(session, curriculum_id))

    def get_by_id(self, curriculum_id: str, *, uow: Optional[Session] = None) -> Curriculum:
        with self._unit(uow, "get", id=curriculum_id) as session:
            return self._to_domain(self._require(session, curriculum_id))

    def get_by_user_id(self, user_id: str, *, uow: Optional[Session] = None) -> Curriculum:
        """Most recently created live curriculum of the user."""
        stmt = (
            _live()
            .where(CurriculumModel.user_id == user_id)
            .order_by(CurriculumModel.created_at.desc(), CurriculumModel.id.desc())
            .limit(1)
        )
        with self._unit(uow, "get", user_id=user_id) as session:
            model = session.execute(stmt).scalar_one_or_none()
            if model is None:
                raise NotFoundError(self.entity, user_id=user_id)
            return self._to_domain(model)

    def get_all_by_user_id(
        self,
        user_id: str,
        page: object = None,
        page_size: object = None,
        sort_by: Optional[str] = None,
        sort_order: object = None,
        *,
        uow: Optional[Session] = None,
    ) -> List[Curriculum]:
        request = normalize_page_request(
            page, page_size, sort_by, sort_order, allowed_sort_fields=CURRICULUM_SORT_FIELDS
        )
        stmt = apply_page(_live().where(CurriculumModel.user_id == user_id), CurriculumModel, request)
        with self._unit(uow, "list", user_id=user_id, page=request.page) as session:
            return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def get_page_after_id(
        self, after_id: Optional[str], limit: int, *, uow: Optional[Session] = None
    ) -> Tuple[List[Curriculum], bool]:
        return self._cursor_page(_live(), after_id, limit, uow=uow)

    def get_page_after_id_by_user_id(
        self, user_id: str, after_id: Optional[str], limit: int, *, uow: Optional[Session] = None
    ) -> Tuple[List[Curriculum], bool]:
        return self._cursor_page(_live().where(CurriculumModel.user_id == user_id), after_id, limit, uow=uow)

    def count(self, *, uow: Optional[Session] = None) -> int:
        stmt = select(func.count()).select_from(CurriculumModel).where(CurriculumModel.deleted_at.is_(None))
        with self._unit(uow, "count") as session:
            return int(session.execute(stmt).scalar_one())

    def count_by_user_id(self, user_id: str, *, uow: Optional[Session] = None) -> int:
        stmt = (
            select(func.count())
            .select_from(CurriculumModel)
            .where(CurriculumModel.user_id == user_id, CurriculumModel.deleted_at.is_(None))
        )
        with self._unit(uow, "count", user_id=user_id) as session:
            return int(session.execute(stmt).scalar_one())

    def list_ids_by_user_id(self, user_id: str, *, uow: Optional[Session] = None) -> List[str]:
        stmt = (
            select(CurriculumModel.id)
            .where(CurriculumModel.user_id == user_id, CurriculumModel.deleted_at.is_(None))
            .order_by(CurriculumModel.id.asc())
        )
        with self._unit(uow, "list_ids", user_id=user_id) as session:
            return list(session.execute(stmt).scalars())

    def update(self, curriculum: Curriculum, *, uow: Optional[Session] = None) -> Curriculum:
        """Replace the curriculum fields and its nested rows atomically.

        Entries whose id matches a live row overwrite it, live rows missing from
        the new lists are soft-deleted, and entries without a known id are inserted.
        """
        if not curriculum.id:
            raise NotFoundError(self.entity, id=None)
        with self._unit(uow, "update", id=curriculum.id) as session:
            now = self._clock()
            model = self._require(session, curriculum.id)
            for field in _CURRICULUM_FIELDS:
                setattr(model, field, getattr(curriculum, field))
            model.updated_at = now
            self._replace_children(session, WorkModel, _WORK_FIELDS, curriculum.id, curriculum.works, now)
            self._replace_children(
                session, EducationModel, _EDUCATION_FIELDS, curriculum.id, curriculum.educations, now
            )
            session.flush()
            return self._to_domain(self._require(session, curriculum.id))

    def delete(self, curriculum_id: str, *, uow: Optional[Session] = None) -> None:
        with self._unit(uow, "delete", id=curriculum_id) as session:
            now = self._clock()
            model = self._require(session, curriculum_id)
            model.deleted_at = now
            model.updated_at = now
            for child in (WorkModel, EducationModel):
                session.execute(
                    update(child)
                    .where(child.curriculum_id == curriculum_id, child.deleted_at.is_(None))
                    .values(deleted_at=now, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
            session.flush()

    def _cursor_page(
        self, stmt: Select, after_id: Optional[str], limit: int, *, uow: Optional[Session]
    ) -> Tuple[List[Curriculum], bool]:
        if limit < 1:
            return [], False
        if after_id:
            stmt = stmt.where(CurriculumModel.id > after_id)
        stmt = stmt.order_by(CurriculumModel.id.asc()).limit(limit + 1)
        with self._unit(uow, "list", after_id=after_id) as session:
            models = list(session.execute(stmt).scalars())
            has_next = len(models) > limit
            return [self._to_domain(model) for model in models[:limit]], has_next

    def _require(self, session: Session, curriculum_id: str) -> CurriculumModel:
        stmt = _live().where(CurriculumModel.id == curriculum_id).execution_options(populate_existing=True)
        model = session.execute(stmt).scalar_one_or_none()
        if model is None:
            raise NotFoundError(self.entity, id=curriculum_id)
        return model

    def _new_child(
        self,
        model_cls: _ChildModel,
        fields: Sequence[str],
        entry: Union[Work, Education],
        curriculum_id: str,
        now: datetime,
    ) -> Union[WorkModel, EducationModel]:
        child = model_cls(
            id=entry.id or self._id_factory(),
            curriculum_id=curriculum_id,
            created_at=now,
            updated_at=now,
        )
        for field in fields:
            setattr(child, field, getattr(entry, field))
        return child

    def _replace_children(
        self,
        session: Session,
        model_cls: _ChildModel,
        fields: Sequence[str],
        curriculum_id: str,
        entries: Iterable[Union[Work, Education]],
        now: datetime,
    ) -> None:
        stmt = select(model_cls).where(model_cls.curriculum_id == curriculum_id, model_cls.deleted_at.is_(None))
        existing: Dict[str, Union[WorkModel, EducationModel]] = {
            row.id: row for row in session.execute(stmt).scalars()
        }
        for entry in entries:
            row = existing.pop(entry.id, None) if entry.id else None
            if row is None:
                fresh = entry.model_copy(update={"id": None})
                session.add(self._new_child(model_cls, fields, fresh, curriculum_id, now))
                continue
            for field in fields:
                setattr(row, field, getattr(entry, field))
            row.updated_at = now
        for row in existing.values():
            row.deleted_at = now
            row.updated_at = now

    @staticmethod
    def _to_domain(model: CurriculumModel) -> Curriculum:
        return Curriculum(
            id=model.id,
            user_id=model.user_id,
            full_name=model.full_name,
            email=model.email,
            phone=model.phone,
            driver_license=model.driver_license,
            intro=model.intro,
            skills=model.skills,
            languages=model.languages,
            courses=model.courses,
            social_links=model.social_links,
            image_url=model.image_url,
            works=[
                Work(
                    id=work.id,
                    curriculum_id=work.curriculum_id,
                    position=work.position,
                    company=work.company,
                    description=work.description,
                    start_date=work.start_date,
                    end_date=work.end_date,
                    audit=audit_of(work),
                )
                for work in model.works
            ],
            educations=[
                Education(
                    id=education.id,
                    curriculum_id=education.curriculum_id,
                    institution=education.institution,
                    degree=education.degree,
                    description=education.description,
                    start_date=education.start_date,
                    end_date=education.end_date,
                    audit=audit_of(education),
                )
                for education in model.educations
            ],
            audit=audit_of(model),
        )


__all__ = ["CurriculumRepository"]
