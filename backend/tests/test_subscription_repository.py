from __future__ import annotations

from datetime import timedelta

import pytest

from factories import make_user
from resume_store.entities import Subscription, SubscriptionPlan, SubscriptionStatus
from resume_store.errors import ConstraintViolationError, NotFoundError
from resume_store.repositories import SubscriptionRepository, UserRepository


@pytest.fixture
def user(database, clock):
    return UserRepository(database, clock=clock).create(make_user())


@pytest.fixture
def subscriptions(database, clock) -> SubscriptionRepository:
    return SubscriptionRepository(database, clock=clock)


def test_lookups_by_user_and_stripe_ids(subscriptions, user) -> None:
    created = subscriptions.create(
        Subscription(
            user_id=user.id,
            plan=SubscriptionPlan.MEDIUM,
            status=SubscriptionStatus.ACTIVE,
            stripe_customer_id="cus_123",
            stripe_subscription_id="sub_456",
        )
    )

    assert subscriptions.get_by_user_id(user.id) == created
    assert subscriptions.get_by_stripe_customer_id("cus_123").id == created.id
    assert subscriptions.get_by_stripe_subscription_id("sub_456").plan is SubscriptionPlan.MEDIUM
    with pytest.raises(NotFoundError):
        subscriptions.get_by_stripe_subscription_id("sub_missing")


def test_one_subscription_per_user(subscriptions, user) -> None:
    subscriptions.create(Subscription(user_id=user.id))
    with pytest.raises(ConstraintViolationError):
        subscriptions.create(Subscription(user_id=user.id))


def test_save_replaces_full_record(subscriptions, user, clock) -> None:
    created = subscriptions.create(Subscription(user_id=user.id, stripe_customer_id="cus_1"))
    clock.advance(days=1)

    revoked = created.model_copy(
        update={
            "status": SubscriptionStatus.ACCESS_REVOKED_REFUND,
            "access_revoked_at": clock.now,
            "access_revoke_reason": "refund",
            "stripe_customer_id": None,
        }
    )
    saved = subscriptions.save(revoked)

    assert saved.status is SubscriptionStatus.ACCESS_REVOKED_REFUND
    assert saved.stripe_customer_id is None
    assert saved.audit.updated_at == clock.now
    assert saved.is_active(clock.now) == (False, "access_revoked")


def test_save_missing_subscription_raises(subscriptions, user) -> None:
    with pytest.raises(NotFoundError):
        subscriptions.save(Subscription(user_id=user.id))


def test_delete_is_soft(subscriptions, user) -> None:
    created = subscriptions.create(Subscription(user_id=user.id))
    subscriptions.delete(created.id)

    with pytest.raises(NotFoundError):
        subscriptions.get_by_user_id(user.id)
    with pytest.raises(NotFoundError):
        subscriptions.delete(created.id)


def test_recreate_after_delete_starts_a_fresh_subscription(subscriptions, user, clock) -> None:
    first = subscriptions.create(
        Subscription(user_id=user.id, plan=SubscriptionPlan.MEDIUM, stripe_subscription_id="sub_old")
    )
    subscriptions.delete(first.id)
    clock.advance(days=1)

    second = subscriptions.create(
        Subscription(user_id=user.id, plan=SubscriptionPlan.SIMPLE, status=SubscriptionStatus.ACTIVE)
    )

    assert subscriptions.get_by_user_id(user.id) == second
    assert second.plan is SubscriptionPlan.SIMPLE
    assert second.stripe_subscription_id is None
    assert second.audit.created_at == clock.now
    assert second.audit.deleted_at is None
    with pytest.raises(NotFoundError):
        subscriptions.get_by_stripe_subscription_id("sub_old")
    saved = subscriptions.save(second.model_copy(update={"stripe_customer_id": "cus_9"}))
    assert saved.stripe_customer_id == "cus_9"


@pytest.mark.parametrize(
    ("status", "period_offset", "revoked", "expected"),
    [
        (SubscriptionStatus.ACTIVE, timedelta(days=3), False, (True, "ok")),
        (SubscriptionStatus.TRIALING, None, False, (True, "ok")),
        (SubscriptionStatus.PAST_DUE, timedelta(days=3), False, (False, "stripe_status_not_active")),
        (SubscriptionStatus.ACTIVE, timedelta(days=-1), False, (False, "current_period_ended")),
        (SubscriptionStatus.ACTIVE, timedelta(days=3), True, (False, "access_revoked")),
    ],
)
def test_is_active_rules(clock, status, period_offset, revoked, expected) -> None:
    subscription = Subscription(
        user_id="u",
        plan=SubscriptionPlan.ULTRA,
        status=status,
        current_period_end=clock.now + period_offset if period_offset is not None else None,
        access_revoked_at=clock.now if revoked else None,
    )

    assert subscription.is_active(clock.now) == expected
    expected_plan = SubscriptionPlan.ULTRA if expected[0] else SubscriptionPlan.FREE
    assert subscription.effective_plan(clock.now) is expected_plan
