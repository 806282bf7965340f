"""SQLAlchemy-backed repositories, one per entity family."""

from .configurations import ConfigurationRepository
from .creation_stats import CurriculumCreationStatsRepository
from .curriculums import CurriculumRepository
from .password_resets import PasswordResetRepository
from .sessions import SessionRepository
from .subscriptions import SubscriptionRepository
from .users import UserRepository

__all__ = [
    "ConfigurationRepository",
    "CurriculumCreationStatsRepository",
    "CurriculumRepository",
    "PasswordResetRepository",
    "SessionRepository",
    "SubscriptionRepository",
    "UserRepository",
]
