"""Initial résumé store schema.

Revision ID: 20261019_01_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision = "20261019_01_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _user_fk() -> sa.ForeignKey:
    return sa.ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE")


def _curriculum_fk() -> sa.ForeignKey:
    return sa.ForeignKey("curriculums.id", ondelete="CASCADE", onupdate="CASCADE")


def _deleted_at() -> sa.Column:
    return sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        _deleted_at(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("admin", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_deleted_at", "users", ["deleted_at"])

    op.create_table(
        "configurations",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("user_id", sa.String(length=36), _user_fk(), nullable=False),
        sa.Column("language", sa.String(length=10), nullable=False, server_default="en"),
        sa.Column("newsletter", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("receive_emails", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_configurations_user_id", "configurations", ["user_id"], unique=True)

    op.create_table(
        "curriculums",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        _deleted_at(),
        sa.Column("user_id", sa.String(length=36), _user_fk(), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("driver_license", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("intro", sa.Text(), nullable=False),
        sa.Column("skills", sa.Text(), nullable=False),
        sa.Column("languages", sa.Text(), nullable=False),
        sa.Column("courses", sa.Text(), nullable=False, server_default=""),
        sa.Column("social_links", sa.Text(), nullable=False, server_default=""),
        sa.Column("image_url", sa.Text(), nullable=True),
    )
    op.create_index("ix_curriculums_user_id", "curriculums", ["user_id"])
    op.create_index("ix_curriculums_deleted_at", "curriculums", ["deleted_at"])

    op.create_table(
        "works",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        _deleted_at(),
        sa.Column("curriculum_id", sa.String(length=36), _curriculum_fk(), nullable=False),
        sa.Column("position", sa.String(length=255), nullable=False),
        sa.Column("company", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.CheckConstraint("end_date IS NULL OR start_date <= end_date", name="ck_works_date_range"),
    )
    op.create_index("ix_works_curriculum_id", "works", ["curriculum_id"])
    op.create_index("ix_works_deleted_at", "works", ["deleted_at"])

    op.create_table(
        "educations",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        _deleted_at(),
        sa.Column("curriculum_id", sa.String(length=36), _curriculum_fk(), nullable=False),
        sa.Column("institution", sa.String(length=255), nullable=False),
        sa.Column("degree", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.CheckConstraint("end_date IS NULL OR start_date <= end_date", name="ck_educations_date_range"),
    )
    op.create_index("ix_educations_curriculum_id", "educations", ["curriculum_id"])
    op.create_index("ix_educations_deleted_at", "educations", ["deleted_at"])

    op.create_table(
        "sessions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("user_id", sa.String(length=36), _user_fk(), nullable=False),
        sa.Column("token", sa.String(length=255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_sessions_token", "sessions", ["token"], unique=True)
    op.create_index("ix_sessions_user_id", "sessions", ["user_id"])
    op.create_index("ix_sessions_expires_at", "sessions", ["expires_at"])
    op.create_index("ix_sessions_is_active", "sessions", ["is_active"])

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        _deleted_at(),
        sa.Column("user_id", sa.String(length=36), _user_fk(), nullable=False),
        sa.Column("plan", sa.String(length=20), nullable=False, server_default="free"),
        sa.Column("status", sa.String(length=40), nullable=False, server_default="trialing"),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(length=255), nullable=True),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_at_period_end", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("access_revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("access_revoke_reason", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"], unique=True)
    op.create_index(
        "ix_subscriptions_stripe_subscription_id", "subscriptions", ["stripe_subscription_id"], unique=True
    )
    op.create_index("ix_subscriptions_stripe_customer_id", "subscriptions", ["stripe_customer_id"])
    op.create_index("ix_subscriptions_plan", "subscriptions", ["plan"])
    op.create_index("ix_subscriptions_status", "subscriptions", ["status"])
    op.create_index("ix_subscriptions_deleted_at", "subscriptions", ["deleted_at"])

    op.create_table(
        "password_resets",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("user_id", sa.String(length=36), _user_fk(), nullable=False),
        sa.Column("token", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_password_resets_token", "password_resets", ["token"], unique=True)
    op.create_index("ix_password_resets_email", "password_resets", ["email"])
    op.create_index("ix_password_resets_user_id", "password_resets", ["user_id"])

    op.create_table(
        "curriculum_creation_stats",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("user_id", sa.String(length=36), _user_fk(), nullable=False),
        sa.Column("total_creations", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index(
        "ix_curriculum_creation_stats_user_id", "curriculum_creation_stats", ["user_id"], unique=True
    )


def downgrade() -> None:
    op.drop_index("ix_curriculum_creation_stats_user_id", table_name="curriculum_creation_stats")
    op.drop_table("curriculum_creation_stats")

    op.drop_index("ix_password_resets_user_id", table_name="password_resets")
    op.drop_index("ix_password_resets_email", table_name="password_resets")
    op.drop_index("ix_password_resets_token", table_name="password_resets")
    op.drop_table("password_resets")

    for index in (
        "ix_subscriptions_deleted_at",
        "ix_subscriptions_status",
        "ix_subscriptions_plan",
        "ix_subscriptions_stripe_customer_id",
        "ix_subscriptions_stripe_subscription_id",
        "ix_subscriptions_user_id",
    ):
        op.drop_index(index, table_name="subscriptions")
    op.drop_table("subscriptions")

    for index in ("ix_sessions_is_active", "ix_sessions_expires_at", "ix_sessions_user_id", "ix_sessions_token"):
        op.drop_index(index, table_name="sessions")
    op.drop_table("sessions")

    op.drop_index("ix_educations_deleted_at", table_name="educations")
    op.drop_index("ix_educations_curriculum_id", table_name="educations")
    op.drop_table("educations")

    op.drop_index("ix_works_deleted_at", table_name="works")
    op.drop_index("ix_works_curriculum_id", table_name="works")
    op.drop_table("works")

    op.drop_index("ix_curriculums_deleted_at", table_name="curriculums")
    op.drop_index("ix_curriculums_user_id", table_name="curriculums")
    op.drop_table("curriculums")

    op.drop_index("ix_configurations_user_id", table_name="configurations")
    op.drop_table("configurations")

    op.drop_index("ix_users_deleted_at", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
