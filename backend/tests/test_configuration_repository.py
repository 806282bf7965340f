from __future__ import annotations

import pytest

from factories import make_user
from resume_store.entities import Configuration
from resume_store.errors import ConstraintViolationError, NotFoundError
from resume_store.repositories import ConfigurationRepository, UserRepository


@pytest.fixture
def user(database, clock):
    return UserRepository(database, clock=clock).create(make_user())


@pytest.fixture
def configurations(database, clock) -> ConfigurationRepository:
    return ConfigurationRepository(database, clock=clock)


def test_create_defaults_to_english(configurations, user) -> None:
    created = configurations.create(Configuration(user_id=user.id))

    assert created.language == "en"
    assert configurations.get_by_user_id(user.id) == created
    assert configurations.get_by_id(created.id) == created


def test_exactly_one_configuration_per_user(configurations, user) -> None:
    configurations.create(Configuration(user_id=user.id))
    with pytest.raises(ConstraintViolationError):
        configurations.create(Configuration(user_id=user.id, language="pt"))


def test_update_and_hard_delete(configurations, user) -> None:
    created = configurations.create(Configuration(user_id=user.id))

    updated = configurations.update(created.model_copy(update={"language": "pt", "newsletter": True}))
    assert (updated.language, updated.newsletter) == ("pt", True)

    configurations.delete(created.id)
    with pytest.raises(NotFoundError):
        configurations.get_by_user_id(user.id)
    with pytest.raises(NotFoundError):
        configurations.delete(created.id)
