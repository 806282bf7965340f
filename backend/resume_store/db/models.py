"""ORM models backing the résumé store."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    and_,
)
from sqlalchemy.orm import Mapped, foreign, mapped_column, relationship

from .base import Base, SoftDeleteMixin, TimestampMixin, UTCDateTime


def _new_id() -> str:
    return str(uuid.uuid4())


def _user_fk() -> ForeignKey:
    return ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE")


def _curriculum_fk() -> ForeignKey:
    return ForeignKey("curriculums.id", ondelete="CASCADE", onupdate="CASCADE")


class UserModel(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "users"
    __table_args__ = (Index("ix_users_email", "email", unique=True),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class ConfigurationModel(TimestampMixin, Base):
    __tablename__ = "configurations"
    __table_args__ = (Index("ix_configurations_user_id", "user_id", unique=True),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), _user_fk(), nullable=False)
    language: Mapped[str] = mapped_column(String(10), default="en", nullable=False)
    newsletter: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    receive_emails: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class CurriculumModel(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "curriculums"
    __table_args__ = (Index("ix_curriculums_user_id", "user_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), _user_fk(), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    driver_license: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    intro: Mapped[str] = mapped_column(Text, nullable=False)
    skills: Mapped[str] = mapped_column(Text, nullable=False)
    languages: Mapped[str] = mapped_column(Text, nullable=False)
    courses: Mapped[str] = mapped_column(Text, default="", nullable=False)
    social_links: Mapped[str] = mapped_column(Text, default="", nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    works: Mapped[list["WorkModel"]] = relationship(
        primaryjoin=lambda: and_(
            CurriculumModel.id == foreign(WorkModel.curriculum_id),
            WorkModel.deleted_at.is_(None),
        ),
        order_by=lambda: [WorkModel.start_date.desc(), WorkModel.id],
        viewonly=True,
    )
    educations: Mapped[list["EducationModel"]] = relationship(
        primaryjoin=lambda: and_(
            CurriculumModel.id == foreign(EducationModel.curriculum_id),
            EducationModel.deleted_at.is_(None),
        ),
        order_by=lambda: [EducationModel.start_date.desc(), EducationModel.id],
        viewonly=True,
    )


class WorkModel(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "works"
    __table_args__ = (
        Index("ix_works_curriculum_id", "curriculum_id"),
        CheckConstraint("end_date IS NULL OR start_date <= end_date", name="ck_works_date_range"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    curriculum_id: Mapped[str] = mapped_column(String(36), _curriculum_fk(), nullable=False)
    position: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)


class EducationModel(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "educations"
    __table_args__ = (
        Index("ix_educations_curriculum_id", "curriculum_id"),
        CheckConstraint("end_date IS NULL OR start_date <= end_date", name="ck_educations_date_range"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    curriculum_id: Mapped[str] = mapped_column(String(36), _curriculum_fk(), nullable=False)
    institution: Mapped[str] = mapped_column(String(255), nullable=False)
    degree: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)


class SessionModel(TimestampMixin, Base):
    __tablename__ = "sessions"
    __table_args__ = (
        Index("ix_sessions_token", "token", unique=True),
        Index("ix_sessions_user_id", "user_id"),
        Index("ix_sessions_expires_at", "expires_at"),
        Index("ix_sessions_is_active", "is_active"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), _user_fk(), nullable=False)
    token: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class SubscriptionModel(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "subscriptions"
    __table_args__ = (
        Index("ix_subscriptions_user_id", "user_id", unique=True),
        Index("ix_subscriptions_stripe_subscription_id", "stripe_subscription_id", unique=True),
        Index("ix_subscriptions_stripe_customer_id", "stripe_customer_id"),
        Index("ix_subscriptions_plan", "plan"),
        Index("ix_subscriptions_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), _user_fk(), nullable=False)
    plan: Mapped[str] = mapped_column(String(20), default="free", nullable=False)
    status: Mapped[str] = mapped_column(String(40), default="trialing", nullable=False)
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    current_period_end: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    trial_ends_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    access_revoked_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    access_revoke_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class PasswordResetModel(TimestampMixin, Base):
    __tablename__ = "password_resets"
    __table_args__ = (
        Index("ix_password_resets_token", "token", unique=True),
        Index("ix_password_resets_email", "email"),
        Index("ix_password_resets_user_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), _user_fk(), nullable=False)
    token: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class CurriculumCreationStatsModel(TimestampMixin, Base):
    __tablename__ = "curriculum_creation_stats"
    __table_args__ = (Index("ix_curriculum_creation_stats_user_id", "user_id", unique=True),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), _user_fk(), nullable=False)
    total_creations: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


__all__ = [
    "ConfigurationModel",
    "CurriculumCreationStatsModel",
    "CurriculumModel",
    "EducationModel",
    "PasswordResetModel",
    "SessionModel",
    "SubscriptionModel",
    "UserModel",
    "WorkModel",
]
