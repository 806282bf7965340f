from __future__ import annotations

from datetime import timedelta

import pytest

from factories import make_curriculum, make_user
from resume_store.cache.usage import MonthlyUsageCounter
from resume_store.config import Settings
from resume_store.entities import Subscription, SubscriptionPlan, SubscriptionStatus
from resume_store.errors import NotFoundError
from resume_store.repositories import PasswordResetRepository, SessionRepository, SubscriptionRepository
from resume_store.runtime import Runtime
from resume_store.services import AI_REQUESTS_FEATURE, SessionService, SubscriptionService
from resume_store.telemetry import (
    CACHE_DEGRADED,
    CURRICULUM_CREATED,
    PASSWORD_RESETS_PURGED,
    SESSIONS_PURGED,
)


@pytest.fixture
def runtime(settings, database, fake_redis) -> Runtime:
    return Runtime(settings, database, fake_redis)


def test_register_creates_default_configuration(runtime) -> None:
    user = runtime.services.users.register(make_user(), language="pt")

    configuration = runtime.services.configurations.get_for_user(user.id)
    assert configuration.language == "pt"
    assert configuration.newsletter is False


def test_user_reads_are_cached_until_updated(runtime, fake_redis) -> None:
    users = runtime.services.users
    user = users.register(make_user())

    assert users.get(user.id).name == "Ada Lovelace"
    assert f"user:{user.id}" in fake_redis.data

    # a write that bypasses the service leaves the cached copy in place
    runtime.repositories.users.update(user.model_copy(update={"name": "Stale"}))
    assert users.get(user.id).name == "Ada Lovelace"

    users.update(user.model_copy(update={"name": "Fresh"}))
    assert f"user:{user.id}" not in fake_redis.data
    assert users.get(user.id).name == "Fresh"
    assert users.toggle_admin(user.id).admin is True
    assert users.get(user.id).admin is True


def test_curriculum_create_counts_and_invalidates_listings(runtime, fake_redis, events) -> None:
    user = runtime.services.users.register(make_user())
    curriculums = runtime.services.curriculums

    assert curriculums.list_for_user(user.id) == []
    page_key = f"curriculums:{user.id}:1:10:created_at:DESC"
    assert page_key in fake_redis.data

    created = curriculums.create(make_curriculum(user.id))

    assert page_key not in fake_redis.data
    assert [cv.id for cv in curriculums.list_for_user(user.id)] == [created.id]
    assert curriculums.creation_count(user.id) == 1
    emitted = [event for event in events if event.name == CURRICULUM_CREATED]
    assert emitted[0].payload == {"user_id": user.id, "curriculum_id": created.id, "works": 2, "educations": 1}


def test_curriculum_body_is_rendered_and_cached(runtime, fake_redis) -> None:
    user = runtime.services.users.register(make_user())
    created = runtime.services.curriculums.create(make_curriculum(user.id, works=1, educations=0))

    body = runtime.services.curriculums.get_body(created.id)

    assert body.startswith("Personal Information Name: Ada Lovelace Email: ada@example.com")
    assert "Period: 01/01/2010 - Current" in body
    assert f"curriculum_body:{created.id}" in fake_redis.data
    assert f"curriculum:{created.id}" in fake_redis.data


def test_curriculum_delete_keeps_creation_count(runtime, fake_redis) -> None:
    user = runtime.services.users.register(make_user())
    curriculums = runtime.services.curriculums
    created = curriculums.create(make_curriculum(user.id))
    curriculums.get_body(created.id)

    curriculums.delete(created.id)

    assert f"curriculum:{created.id}" not in fake_redis.data
    assert f"curriculum_body:{created.id}" not in fake_redis.data
    with pytest.raises(NotFoundError):
        curriculums.get(created.id)
    assert curriculums.creation_count(user.id) == 1


def test_user_delete_drops_every_related_cache_entry(runtime, fake_redis) -> None:
    services = runtime.services
    user = services.users.register(make_user())
    created = services.curriculums.create(make_curriculum(user.id))
    services.users.get(user.id)
    services.configurations.get_for_user(user.id)
    services.curriculums.get_body(created.id)
    services.curriculums.list_for_user(user.id)
    fake_redis.set("user:someone-else", b"{}")

    services.users.delete(user.id)

    assert list(fake_redis.data) == ["user:someone-else"]
    with pytest.raises(NotFoundError):
        services.users.get(user.id)


def test_services_keep_working_when_cache_is_down(settings, database, broken_redis, events) -> None:
    services = Runtime(settings, database, broken_redis).services

    user = services.users.register(make_user())
    assert services.users.get(user.id).id == user.id
    created = services.curriculums.create(make_curriculum(user.id))
    assert services.curriculums.get(created.id).id == created.id

    assert any(event.name == CACHE_DEGRADED for event in events)


def test_runtime_without_redis_has_no_cache(settings, database) -> None:
    runtime = Runtime(settings, database)
    assert runtime.cache is None

    user = runtime.services.users.register(make_user())
    assert runtime.services.users.get(user.id).email == "ada@example.com"


def test_session_lifecycle_and_purge(database, settings, clock, events) -> None:
    sessions = SessionRepository(database, clock=clock)
    resets = PasswordResetRepository(database, clock=clock)
    service = SessionService(sessions, resets, settings, clock=clock)
    user = Runtime(settings, database).services.users.register(make_user())

    login = service.issue(user.id)
    assert service.validate(login.token).id == login.id
    assert login.expires_at == clock.now + timedelta(days=1)
    assert service.revoke(login.token) is True
    assert service.revoke(login.token) is False
    with pytest.raises(NotFoundError):
        service.validate(login.token)

    service.issue(user.id)
    reset = service.issue_password_reset(user.id, user.email)
    assert service.redeem_password_reset(reset.token).used is False
    with pytest.raises(NotFoundError):
        service.redeem_password_reset(reset.token)

    clock.advance(days=2)
    assert service.purge_expired() == (2, 1)
    purged = {event.name: event.payload["count"] for event in events}
    assert purged[SESSIONS_PURGED] == 2
    assert purged[PASSWORD_RESETS_PURGED] == 1


@pytest.fixture
def quota_settings(database_url) -> Settings:
    return Settings(  # type: ignore[call-arg]
        RESUME_DATABASE_URL=database_url,
        REDIS_ENABLED=False,
        SUBSCRIPTION_QUOTA_FREE_MONTHLY=2,
        SUBSCRIPTION_QUOTA_ULTRA_MONTHLY=-1,
    )


@pytest.fixture
def subscriber(settings, database):
    return Runtime(settings, database).services.users.register(make_user())


def test_free_plan_quota_is_enforced_per_month(database, quota_settings, clock, fake_redis, subscriber) -> None:
    service = SubscriptionService(
        SubscriptionRepository(database, clock=clock), MonthlyUsageCounter(fake_redis), quota_settings, clock=clock
    )

    entitlement = service.get_entitlement(subscriber.id)
    assert (entitlement.plan, entitlement.active, entitlement.reason) == (
        SubscriptionPlan.FREE,
        False,
        "no_subscription",
    )
    decisions = [service.consume_ai_request(subscriber.id) for _ in range(3)]
    assert [decision.allowed for decision in decisions] == [True, True, False]
    assert decisions[-1].used == 3

    clock.advance(days=31)
    assert service.consume_ai_request(subscriber.id).allowed is True


def test_unlimited_plan_is_not_counted(database, quota_settings, clock, fake_redis, subscriber) -> None:
    subscriptions = SubscriptionRepository(database, clock=clock)
    subscriptions.create(
        Subscription(
            user_id=subscriber.id,
            plan=SubscriptionPlan.ULTRA,
            status=SubscriptionStatus.ACTIVE,
            current_period_end=clock.now + timedelta(days=10),
        )
    )
    counter = MonthlyUsageCounter(fake_redis)
    service = SubscriptionService(subscriptions, counter, quota_settings, clock=clock)

    decision = service.consume_ai_request(subscriber.id)

    assert decision.allowed and decision.unlimited
    assert counter.current(subscriber.id, AI_REQUESTS_FEATURE, clock.now) == 0

    clock.advance(days=11)
    assert service.get_entitlement(subscriber.id).reason == "current_period_ended"
    assert service.consume_ai_request(subscriber.id).plan is SubscriptionPlan.FREE


def test_quota_fails_open_without_usage_counter(database, quota_settings, clock, broken_redis, subscriber, events) -> None:
    subscriptions = SubscriptionRepository(database, clock=clock)

    assert SubscriptionService(subscriptions, None, quota_settings, clock=clock).consume_ai_request(subscriber.id).allowed

    degraded = SubscriptionService(subscriptions, MonthlyUsageCounter(broken_redis), quota_settings, clock=clock)
    assert degraded.consume_ai_request(subscriber.id).allowed is True
    assert [event.payload["operation"] for event in events if event.name == CACHE_DEGRADED] == ["usage_increment"]
