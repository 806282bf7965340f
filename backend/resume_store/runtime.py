"""Process-wide wiring of the store, the cache, repositories and services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import redis

from .cache.aside import CacheAside
from .cache.client import connect_cache
from .cache.service import CacheService
from .cache.usage import MonthlyUsageCounter
from .config import Settings, get_settings
from .db.migrations import run_migrations
from .db.monitoring import instrument_engine, release_engine
from .db.session import Database
from .repositories import (
    ConfigurationRepository,
    CurriculumCreationStatsRepository,
    CurriculumRepository,
    PasswordResetRepository,
    SessionRepository,
    SubscriptionRepository,
    UserRepository,
)
from .services import (
    ConfigurationService,
    CurriculumService,
    SessionService,
    SubscriptionService,
    UserService,
)

logger = logging.getLogger(__name__)


@dataclass
class Repositories:
    users: UserRepository
    configurations: ConfigurationRepository
    curriculums: CurriculumRepository
    sessions: SessionRepository
    subscriptions: SubscriptionRepository
    password_resets: PasswordResetRepository
    creation_stats: CurriculumCreationStatsRepository

    @classmethod
    def build(cls, database: Database) -> "Repositories":
        return cls(
            users=UserRepository(database),
            configurations=ConfigurationRepository(database),
            curriculums=CurriculumRepository(database),
            sessions=SessionRepository(database),
            subscriptions=SubscriptionRepository(database),
            password_resets=PasswordResetRepository(database),
            creation_stats=CurriculumCreationStatsRepository(database),
        )


@dataclass
class Services:
    users: UserService
    configurations: ConfigurationService
    curriculums: CurriculumService
    sessions: SessionService
    subscriptions: SubscriptionService


class Runtime:
    """Owns the long-lived handles; build with :meth:`start`, release with :meth:`stop`."""

    def __init__(
        self,
        settings: Settings,
        database: Database,
        redis_client: Optional[redis.Redis] = None,
    ) -> None:
        self.settings = settings
        self.database = database
        self.redis = redis_client
        self.cache: Optional[CacheService] = CacheService(redis_client) if redis_client is not None else None
        self.repositories = Repositories.build(database)
        aside = CacheAside(self.cache)
        usage = MonthlyUsageCounter(redis_client) if redis_client is not None else None
        repos = self.repositories
        self.services = Services(
            users=UserService(database, repos.users, repos.configurations, repos.curriculums, aside, settings),
            configurations=ConfigurationService(repos.configurations, aside, settings),
            curriculums=CurriculumService(database, repos.curriculums, repos.creation_stats, aside, settings),
            sessions=SessionService(repos.sessions, repos.password_resets, settings),
            subscriptions=SubscriptionService(repos.subscriptions, usage, settings),
        )

    @classmethod
    def start(cls, settings: Optional[Settings] = None, *, migrate: Optional[bool] = None) -> "Runtime":
        """Build the runtime; migration failures are fatal, cache failures are not."""
        settings = settings or get_settings()
        if settings.run_migrations if migrate is None else migrate:
            run_migrations(settings=settings)

        database = Database.from_settings(settings)
        if settings.database_telemetry:
            instrument_engine(database.engine)

        runtime = cls(settings, database, connect_cache(settings))
        logger.info(
            "Runtime started (dialect=%s, cache=%s)",
            database.dialect,
            "enabled" if runtime.cache is not None else "disabled",
        )
        return runtime

    def stop(self) -> None:
        if self.redis is not None:
            self.redis.close()
        release_engine(self.database.engine)
        self.database.dispose()
        logger.info("Runtime stopped.")


__all__ = ["Repositories", "Runtime", "Services"]
