from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from factories import make_curriculum, make_user
from resume_store.repositories import CurriculumCreationStatsRepository, CurriculumRepository, UserRepository


@pytest.fixture
def user(database, clock):
    return UserRepository(database, clock=clock).create(make_user())


@pytest.fixture
def stats(database, clock) -> CurriculumCreationStatsRepository:
    return CurriculumCreationStatsRepository(database, clock=clock)


def test_missing_row_reads_as_zero(stats, user) -> None:
    assert stats.get_by_user_id(user.id) == 0


def test_sequential_increments(stats, user) -> None:
    for _ in range(3):
        stats.increment_creation_count(user.id)
    assert stats.get_by_user_id(user.id) == 3


def test_concurrent_increments_on_fresh_user_are_not_lost(stats, user) -> None:
    workers = 8
    with ThreadPoolExecutor(max_workers=workers) as pool:
        for future in [pool.submit(stats.increment_creation_count, user.id) for _ in range(workers)]:
            future.result()

    assert stats.get_by_user_id(user.id) == workers


def test_counter_survives_curriculum_deletion(database, stats, user) -> None:
    curriculums = CurriculumRepository(database)
    with database.unit_of_work() as uow:
        created = curriculums.create(make_curriculum(user.id), uow=uow)
        stats.increment_creation_count(user.id, uow=uow)

    curriculums.delete(created.id)

    assert stats.get_by_user_id(user.id) == 1
