"""Domain entities returned by the repositories and stored in the cache."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Audit(BaseModel):
    """Creation/update/tombstone timestamps shared by every entity."""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class User(BaseModel):
    id: Optional[str] = None
    name: str
    email: str
    image_url: Optional[str] = None
    admin: bool = False
    audit: Audit = Field(default_factory=Audit)


class Configuration(BaseModel):
    id: Optional[str] = None
    user_id: str
    language: str = Field(default="en", max_length=10)
    newsletter: bool = False
    receive_emails: bool = False
    audit: Audit = Field(default_factory=Audit)


class _DatedEntry(BaseModel):
    start_date: date
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def _check_date_range(self) -> "_DatedEntry":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    @property
    def is_ongoing(self) -> bool:
        return self.end_date is None


class Work(_DatedEntry):
    id: Optional[str] = None
    curriculum_id: Optional[str] = None
    position: str
    company: str
    description: str = ""
    audit: Audit = Field(default_factory=Audit)


class Education(_DatedEntry):
    id: Optional[str] = None
    curriculum_id: Optional[str] = None
    institution: str
    degree: str
    description: str = ""
    audit: Audit = Field(default_factory=Audit)


class Curriculum(BaseModel):
    id: Optional[str] = None
    user_id: str
    full_name: str
    email: str
    phone: str = Field(max_length=20)
    driver_license: str = ""
    intro: str
    skills: str
    languages: str
    courses: str = ""
    social_links: str = ""
    image_url: Optional[str] = None
    works: List[Work] = Field(default_factory=list)
    educations: List[Education] = Field(default_factory=list)
    audit: Audit = Field(default_factory=Audit)


class LoginSession(BaseModel):
    """A login session; valid while active and not yet expired."""

    id: Optional[str] = None
    user_id: str
    token: str
    expires_at: datetime
    is_active: bool = True
    audit: Audit = Field(default_factory=Audit)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return self.is_active and not self.is_expired(now)


class SubscriptionPlan(str, Enum):
    FREE = "free"
    SIMPLE = "simple"
    MEDIUM = "medium"
    ULTRA = "ultra"


class SubscriptionStatus(str, Enum):
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    UNPAID = "unpaid"
    PAUSED = "paused"
    ACCESS_REVOKED_REFUND = "access_revoked_refund"
    ACCESS_REVOKED_MANUAL = "access_revoked_manual"
    ACCESS_REVOKED_UNKNOWN = "access_revoked_unknown"


_ENTITLED_STATUSES = {SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING}


class Subscription(BaseModel):
    """Billing state for a user.

    Status values mirror the billing provider and are written by callers as
    billing events arrive; nothing here re-derives them.
    """

    id: Optional[str] = None
    user_id: str
    plan: SubscriptionPlan = SubscriptionPlan.FREE
    status: SubscriptionStatus = SubscriptionStatus.TRIALING
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None
    trial_ends_at: Optional[datetime] = None
    access_revoked_at: Optional[datetime] = None
    access_revoke_reason: Optional[str] = Field(default=None, max_length=255)
    audit: Audit = Field(default_factory=Audit)

    def is_active(self, now: Optional[datetime] = None) -> Tuple[bool, str]:
        """Return whether the subscription grants its plan and a short reason code."""
        if self.access_revoked_at is not None:
            return False, "access_revoked"
        if self.status not in _ENTITLED_STATUSES:
            return False, "stripe_status_not_active"
        if self.current_period_end is not None and (now or utcnow()) > self.current_period_end:
            return False, "current_period_ended"
        return True, "ok"

    def effective_plan(self, now: Optional[datetime] = None) -> SubscriptionPlan:
        active, _ = self.is_active(now)
        return self.plan if active else SubscriptionPlan.FREE


class PasswordReset(BaseModel):
    id: Optional[str] = None
    user_id: str
    token: str
    email: str
    expires_at: datetime
    used: bool = False
    audit: Audit = Field(default_factory=Audit)

    def is_redeemable(self, now: Optional[datetime] = None) -> bool:
        return not self.used and (now or utcnow()) < self.expires_at


class CurriculumCreationStats(BaseModel):
    user_id: str
    total_creations: int = Field(default=0, ge=0)
    audit: Audit = Field(default_factory=Audit)


def _format_date(value: date) -> str:
    return value.strftime("%m/%d/%Y")


def render_curriculum_body(curriculum: Curriculum) -> str:
    """Flatten a curriculum into the single-line plain text used by AI prompts."""
    parts: List[str] = [
        "Personal Information",
        f"Name: {curriculum.full_name}",
        f"Email: {curriculum.email}",
        f"Phone: {curriculum.phone}",
        f"Driver License: {curriculum.driver_license}",
    ]
    for label, text in (
        ("Presentation", curriculum.intro),
        ("Skills", curriculum.skills),
        ("Languages", curriculum.languages),
        ("Courses", curriculum.courses),
        ("Social Links", curriculum.social_links),
        ("Image URL", curriculum.image_url or ""),
    ):
        if text:
            parts.append(f"{label} {text}")

    if curriculum.works:
        parts.append("Work Experience")
        for work in curriculum.works:
            end = _format_date(work.end_date) if work.end_date else "Current"
            parts.append(f"Position: {work.position}")
            parts.append(f"Company: {work.company}")
            parts.append(f"Period: {_format_date(work.start_date)} - {end}")
            if work.description:
                parts.append(f"Description: {work.description}")

    if curriculum.educations:
        parts.append("Education")
        for education in curriculum.educations:
            end = _format_date(education.end_date) if education.end_date else "Current"
            parts.append(f"Institution: {education.institution}")
            parts.append(f"Degree: {education.degree}")
            parts.append(f"Period: {_format_date(education.start_date)} - {end}")
            if education.description:
                parts.append(f"Description: {education.description}")

    return " ".join(parts)


__all__ = [
    "Audit",
    "Configuration",
    "Curriculum",
    "CurriculumCreationStats",
    "Education",
    "LoginSession",
    "PasswordReset",
    "Subscription",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "User",
    "Work",
    "render_curriculum_body",
    "utcnow",
]
