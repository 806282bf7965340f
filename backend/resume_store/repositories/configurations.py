"""Per-user configuration persistence."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..db.models import ConfigurationModel
from ..entities import Configuration
from ..errors import NotFoundError
from .base import Repository, audit_of


class ConfigurationRepository(Repository):
    entity = "configuration"

    def create(self, configuration: Configuration, *, uow: Optional[Session] = None) -> Configuration:
        now = self._clock()
        model = ConfigurationModel(
            id=configuration.id or self._id_factory(),
            user_id=configuration.user_id,
            language=configuration.language,
            newsletter=configuration.newsletter,
            receive_emails=configuration.receive_emails,
            created_at=now,
            updated_at=now,
        )
        with self._unit(uow, "create", user_id=configuration.user_id) as session:
            session.add(model)
            session.flush()
            return self._to_domain(model)

    def get_by_id(self, configuration_id: str, *, uow: Optional[Session] = None) -> Configuration:
        with self._unit(uow, "get", id=configuration_id) as session:
            model = session.get(ConfigurationModel, configuration_id)
            if model is None:
                raise NotFoundError(self.entity, id=configuration_id)
            return self._to_domain(model)

    def get_by_user_id(self, user_id: str, *, uow: Optional[Session] = None) -> Configuration:
        stmt = select(ConfigurationModel).where(ConfigurationModel.user_id == user_id)
        with self._unit(uow, "get", user_id=user_id) as session:
            model = session.execute(stmt).scalar_one_or_none()
            if model is None:
                raise NotFoundError(self.entity, user_id=user_id)
            return self._to_domain(model)

    def update(self, configuration: Configuration, *, uow: Optional[Session] = None) -> Configuration:
        with self._unit(uow, "update", id=configuration.id) as session:
            model = session.get(ConfigurationModel, configuration.id) if configuration.id else None
            if model is None:
                raise NotFoundError(self.entity, id=configuration.id)
            model.language = configuration.language
            model.newsletter = configuration.newsletter
            model.receive_emails = configuration.receive_emails
            model.updated_at = self._clock()
            session.flush()
            return self._to_domain(model)

    def delete(self, configuration_id: str, *, uow: Optional[Session] = None) -> None:
        with self._unit(uow, "delete", id=configuration_id) as session:
            result = session.execute(delete(ConfigurationModel).where(ConfigurationModel.id == configuration_id))
            if result.rowcount == 0:
                raise NotFoundError(self.entity, id=configuration_id)

    @staticmethod
    def _to_domain(model: ConfigurationModel) -> Configuration:
        return Configuration(
            id=model.id,
            user_id=model.user_id,
            language=model.language,
            newsletter=model.newsletter,
            receive_emails=model.receive_emails,
            audit=audit_of(model),
        )


__all__ = ["ConfigurationRepository"]
