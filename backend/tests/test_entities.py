from __future__ import annotations

from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from factories import make_curriculum
from resume_store.entities import (
    Configuration,
    Curriculum,
    Education,
    LoginSession,
    PasswordReset,
    render_curriculum_body,
)


def test_render_curriculum_body_flattens_every_section() -> None:
    curriculum = make_curriculum("u-1", works=1, educations=1).model_copy(
        update={"driver_license": "B", "courses": "", "social_links": "github.com/ada"}
    )

    body = render_curriculum_body(curriculum)

    assert body == (
        "Personal Information Name: Ada Lovelace Email: ada@example.com Phone: +44 20 0000 0000 "
        "Driver License: B Presentation Analyst of engines. Skills Mathematics, Programming "
        "Languages English, French Social Links github.com/ada "
        "Work Experience Position: Engineer 0 Company: Company 0 Period: 01/01/2010 - Current "
        "Description: Built things. "
        "Education Institution: University 0 Degree: BSc Mathematics Period: 09/01/2000 - 06/30/2004"
    )


def test_render_skips_empty_history() -> None:
    body = render_curriculum_body(make_curriculum("u-1", works=0, educations=0))
    assert "Work Experience" not in body
    assert "Education" not in body


def test_phone_longer_than_twenty_characters_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Curriculum.model_validate({**make_curriculum("u-1").model_dump(), "phone": "1" * 21})


def test_education_dates_must_be_ordered() -> None:
    with pytest.raises(ValidationError):
        Education(institution="MIT", degree="PhD", start_date=date(2020, 1, 1), end_date=date(2019, 12, 31))
    assert Education(institution="MIT", degree="PhD", start_date=date(2020, 1, 1)).is_ongoing


def test_language_code_is_bounded() -> None:
    with pytest.raises(ValidationError):
        Configuration(user_id="u-1", language="x" * 11)


def test_login_session_validity(clock) -> None:
    login = LoginSession(user_id="u-1", token="t", expires_at=clock.now + timedelta(minutes=1))

    assert login.is_valid(clock.now)
    assert login.is_expired(clock.now + timedelta(minutes=1))
    assert not login.model_copy(update={"is_active": False}).is_valid(clock.now)


def test_password_reset_redeemability(clock) -> None:
    reset = PasswordReset(user_id="u-1", token="t", email="a@b.c", expires_at=clock.now + timedelta(hours=1))

    assert reset.is_redeemable(clock.now)
    assert not reset.model_copy(update={"used": True}).is_redeemable(clock.now)
    assert not reset.is_redeemable(clock.now + timedelta(hours=2))


def test_curriculum_requires_core_fields() -> None:
    with pytest.raises(ValidationError):
        Curriculum(user_id="u-1", full_name="Ada", email="a@b.c", phone="1")  # type: ignore[call-arg]
