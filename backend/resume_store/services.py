"""Cache-aware services composed from the repositories.

These are the callers the HTTP layer talks to. Reads go through the cache
first; every mutation commits to the store before invalidating the keys and
listing patterns it affects.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .cache import keys
from .cache.aside import CacheAside
from .cache.usage import MonthlyUsageCounter
from .config import Settings
from .db.session import Database
from .entities import (
    Configuration,
    Curriculum,
    LoginSession,
    PasswordReset,
    SubscriptionPlan,
    User,
    render_curriculum_body,
    utcnow,
)
from .errors import CacheError, NotFoundError
from .pagination import CURRICULUM_SORT_FIELDS, normalize_page_request
from .repositories import (
    ConfigurationRepository,
    CurriculumCreationStatsRepository,
    CurriculumRepository,
    PasswordResetRepository,
    SessionRepository,
    SubscriptionRepository,
    UserRepository,
)
from .repositories.base import Clock
from .telemetry import (
    CACHE_DEGRADED,
    CURRICULUM_CREATED,
    PASSWORD_RESETS_PURGED,
    SESSIONS_PURGED,
    emit_event,
)

logger = logging.getLogger(__name__)

AI_REQUESTS_FEATURE = "ai_requests"


class UserService:
    def __init__(
        self,
        database: Database,
        users: UserRepository,
        configurations: ConfigurationRepository,
        curriculums: CurriculumRepository,
        cache: CacheAside,
        settings: Settings,
    ) -> None:
        self._database = database
        self._users = users
        self._configurations = configurations
        self._curriculums = curriculums
        self._cache = cache
        self._settings = settings

    def register(self, user: User, *, language: str = "en") -> User:
        """Create the user together with its default configuration."""
        with self._database.unit_of_work() as uow:
            created = self._users.create(user, uow=uow)
            self._configurations.create(Configuration(user_id=created.id, language=language), uow=uow)
        logger.info("Registered user %s", created.id)
        return created

    def get(self, user_id: str) -> User:
        return self._cache.fetch(
            keys.user_key(user_id),
            User,
            lambda: self._users.get_by_id(user_id),
            self._settings.user_cache_ttl_seconds,
        )

    def update(self, user: User) -> User:
        updated = self._users.update(user)
        self._cache.invalidate(keys.user_key(updated.id))
        return updated

    def toggle_admin(self, user_id: str) -> User:
        updated = self._users.toggle_admin(user_id)
        self._cache.invalidate(keys.user_key(user_id))
        return updated

    def delete(self, user_id: str) -> None:
        with self._database.unit_of_work() as uow:
            curriculum_ids = self._curriculums.list_ids_by_user_id(user_id, uow=uow)
            self._users.delete(user_id, uow=uow)

        stale = [keys.user_key(user_id), keys.configuration_key(user_id)]
        for curriculum_id in curriculum_ids:
            stale.append(keys.curriculum_key(curriculum_id))
            stale.append(keys.curriculum_body_key(curriculum_id))
        self._cache.invalidate(*stale, patterns=[keys.curriculum_pages_pattern(user_id)])
        logger.info("Deleted user %s (%d curriculums)", user_id, len(curriculum_ids))


class ConfigurationService:
    def __init__(self, configurations: ConfigurationRepository, cache: CacheAside, settings: Settings) -> None:
        self._configurations = configurations
        self._cache = cache
        self._settings = settings

    def get_for_user(self, user_id: str) -> Configuration:
        return self._cache.fetch(
            keys.configuration_key(user_id),
            Configuration,
            lambda: self._configurations.get_by_user_id(user_id),
            self._settings.configuration_cache_ttl_seconds,
        )

    def update(self, configuration: Configuration) -> Configuration:
        updated = self._configurations.update(configuration)
        self._cache.invalidate(keys.configuration_key(updated.user_id))
        return updated


class CurriculumService:
    def __init__(
        self,
        database: Database,
        curriculums: CurriculumRepository,
        stats: CurriculumCreationStatsRepository,
        cache: CacheAside,
        settings: Settings,
    ) -> None:
        self._database = database
        self._curriculums = curriculums
        self._stats = stats
        self._cache = cache
        self._settings = settings

    def create(self, curriculum: Curriculum) -> Curriculum:
        """Persist the curriculum and bump the creation counter in one transaction."""
        with self._database.unit_of_work() as uow:
            created = self._curriculums.create(curriculum, uow=uow)
            self._stats.increment_creation_count(created.user_id, uow=uow)

        self._cache.invalidate(patterns=[keys.curriculum_pages_pattern(created.user_id)])
        emit_event(
            CURRICULUM_CREATED,
            user_id=created.user_id,
            curriculum_id=created.id,
            works=len(created.works),
            educations=len(created.educations),
        )
        return created

    def get(self, curriculum_id: str) -> Curriculum:
        return self._cache.fetch(
            keys.curriculum_key(curriculum_id),
            Curriculum,
            lambda: self._curriculums.get_by_id(curriculum_id),
            self._settings.curriculum_cache_ttl_seconds,
        )

    def get_body(self, curriculum_id: str) -> str:
        return self._cache.fetch(
            keys.curriculum_body_key(curriculum_id),
            str,
            lambda: render_curriculum_body(self.get(curriculum_id)),
            self._settings.curriculum_cache_ttl_seconds,
        )

    def list_for_user(
        self,
        user_id: str,
        page: object = None,
        page_size: object = None,
        sort_by: Optional[str] = None,
        sort_order: object = None,
    ) -> List[Curriculum]:
        request = normalize_page_request(
            page, page_size, sort_by, sort_order, allowed_sort_fields=CURRICULUM_SORT_FIELDS
        )
        return self._cache.fetch(
            keys.curriculum_page_key(user_id, request),
            List[Curriculum],
            lambda: self._curriculums.get_all_by_user_id(
                user_id, request.page, request.page_size, request.sort_by, request.sort_order
            ),
            self._settings.curriculum_page_cache_ttl_seconds,
        )

    def update(self, curriculum: Curriculum) -> Curriculum:
        updated = self._curriculums.update(curriculum)
        self._invalidate(updated.id, updated.user_id)
        return updated

    def delete(self, curriculum_id: str) -> None:
        with self._database.unit_of_work() as uow:
            current = self._curriculums.get_by_id(curriculum_id, uow=uow)
            self._curriculums.delete(curriculum_id, uow=uow)
        self._invalidate(curriculum_id, current.user_id)

    def creation_count(self, user_id: str) -> int:
        return self._stats.get_by_user_id(user_id)

    def _invalidate(self, curriculum_id: str, user_id: str) -> None:
        self._cache.invalidate(
            keys.curriculum_key(curriculum_id),
            keys.curriculum_body_key(curriculum_id),
            patterns=[keys.curriculum_pages_pattern(user_id)],
        )


class SessionService:
    def __init__(
        self,
        sessions: SessionRepository,
        password_resets: PasswordResetRepository,
        settings: Settings,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._sessions = sessions
        self._password_resets = password_resets
        self._settings = settings
        self._clock = clock

    def issue(self, user_id: str) -> LoginSession:
        login = LoginSession(
            user_id=user_id,
            token=secrets.token_urlsafe(32),
            expires_at=self._clock() + self._settings.session_token_duration,
        )
        return self._sessions.create(login)

    def validate(self, token: str) -> LoginSession:
        return self._sessions.get_by_token(token)

    def revoke(self, token: str) -> bool:
        return self._sessions.deactivate_by_token(token) > 0

    def revoke_all(self, user_id: str) -> int:
        return self._sessions.deactivate_by_user_id(user_id)

    def issue_password_reset(self, user_id: str, email: str) -> PasswordReset:
        reset = PasswordReset(
            user_id=user_id,
            email=email,
            token=secrets.token_urlsafe(32),
            expires_at=self._clock() + self._settings.password_reset_duration,
        )
        return self._password_resets.create(reset)

    def redeem_password_reset(self, token: str) -> PasswordReset:
        """Consume a redeemable token and return it as it was before consumption."""
        reset = self._password_resets.get_by_token(token)
        self._password_resets.mark_as_used(token)
        return reset

    def purge_expired(self) -> Tuple[int, int]:
        """Hard-delete expired sessions and password resets; returns both counts."""
        sessions = self._sessions.delete_expired()
        resets = self._password_resets.delete_expired()
        emit_event(SESSIONS_PURGED, count=sessions)
        emit_event(PASSWORD_RESETS_PURGED, count=resets)
        return sessions, resets


@dataclass(frozen=True)
class Entitlement:
    plan: SubscriptionPlan
    active: bool
    reason: str


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    plan: SubscriptionPlan
    used: int
    limit: int

    @property
    def unlimited(self) -> bool:
        return self.limit < 0


class SubscriptionService:
    def __init__(
        self,
        subscriptions: SubscriptionRepository,
        usage: Optional[MonthlyUsageCounter],
        settings: Settings,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._subscriptions = subscriptions
        self._usage = usage
        self._settings = settings
        self._clock = clock

    def get_entitlement(self, user_id: str) -> Entitlement:
        try:
            subscription = self._subscriptions.get_by_user_id(user_id)
        except NotFoundError:
            return Entitlement(plan=SubscriptionPlan.FREE, active=False, reason="no_subscription")
        now = self._clock()
        active, reason = subscription.is_active(now)
        return Entitlement(plan=subscription.effective_plan(now), active=active, reason=reason)

    def consume_ai_request(self, user_id: str) -> QuotaDecision:
        """Count one AI request against the effective plan's monthly quota.

        Unlimited plans are not counted. Without a reachable usage counter the
        request is allowed and reported as ``cache_degraded``.
        """
        plan = self.get_entitlement(user_id).plan
        limit = self._settings.monthly_quota_by_plan()[plan.value]
        if limit < 0:
            return QuotaDecision(allowed=True, plan=plan, used=0, limit=limit)
        if self._usage is None:
            return QuotaDecision(allowed=True, plan=plan, used=0, limit=limit)
        try:
            used = self._usage.increment(user_id, AI_REQUESTS_FEATURE, self._clock())
        except CacheError as exc:
            logger.warning("Usage counter unavailable for %s: %s", user_id, exc)
            emit_event(CACHE_DEGRADED, operation="usage_increment", key=exc.key, error=type(exc).__name__)
            return QuotaDecision(allowed=True, plan=plan, used=0, limit=limit)
        return QuotaDecision(allowed=limit > 0 and used <= limit, plan=plan, used=used, limit=limit)


__all__ = [
    "ConfigurationService",
    "CurriculumService",
    "Entitlement",
    "QuotaDecision",
    "SessionService",
    "SubscriptionService",
    "UserService",
]
