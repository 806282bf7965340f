import os
from datetime import timedelta
from functools import lru_cache
from typing import Dict, Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="RESUME_DATABASE_URL")
    db_driver: str = Field("postgresql+psycopg", alias="DB_DRIVER")
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: Optional[int] = Field(None, alias="DB_PORT")
    db_user: Optional[str] = Field(None, alias="DB_USER")
    db_password: Optional[str] = Field(None, alias="DB_PASSWORD")
    db_name: Optional[str] = Field(None, alias="DB_NAME")
    database_pool_size: int = Field(10, alias="RESUME_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="RESUME_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="RESUME_DATABASE_ECHO")
    database_telemetry: bool = Field(False, alias="RESUME_DB_TELEMETRY")
    run_migrations: bool = Field(False, alias="RESUME_RUN_MIGRATIONS")
    migration_timeout: int = Field(60, alias="RESUME_DB_MIGRATION_TIMEOUT")
    migration_poll_interval: float = Field(3.0, alias="RESUME_DB_MIGRATION_POLL_INTERVAL")

    redis_enabled: bool = Field(True, alias="REDIS_ENABLED")
    redis_url: Optional[str] = Field(None, alias="REDIS_URL")
    redis_host: str = Field("localhost", alias="REDIS_HOST")
    redis_port: int = Field(6379, alias="REDIS_PORT")
    redis_username: Optional[str] = Field(None, alias="REDIS_USERNAME")
    redis_password: Optional[str] = Field(None, alias="REDIS_PASSWORD")
    redis_db: int = Field(0, alias="REDIS_DB")
    redis_socket_timeout: float = Field(5.0, alias="REDIS_SOCKET_TIMEOUT")

    user_cache_ttl_seconds: int = Field(15 * 60, alias="RESUME_USER_CACHE_TTL")
    curriculum_cache_ttl_seconds: int = Field(30 * 60, alias="RESUME_CURRICULUM_CACHE_TTL")
    configuration_cache_ttl_seconds: int = Field(15 * 60, alias="RESUME_CONFIGURATION_CACHE_TTL")
    curriculum_page_cache_ttl_seconds: int = Field(10 * 60, alias="RESUME_CURRICULUM_PAGE_CACHE_TTL")

    session_token_duration_minutes: int = Field(24 * 60, alias="SESSION_TOKEN_DURATION_MINUTES")
    password_reset_duration_minutes: int = Field(60, alias="PASSWORD_RESET_DURATION_MINUTES")

    quota_free_monthly: int = Field(10, alias="SUBSCRIPTION_QUOTA_FREE_MONTHLY")
    quota_simple_monthly: int = Field(30, alias="SUBSCRIPTION_QUOTA_SIMPLE_MONTHLY")
    quota_medium_monthly: int = Field(100, alias="SUBSCRIPTION_QUOTA_MEDIUM_MONTHLY")
    quota_ultra_monthly: int = Field(-1, alias="SUBSCRIPTION_QUOTA_ULTRA_MONTHLY")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field("INFO", alias="RESUME_LOG_LEVEL")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    def sqlalchemy_url(self) -> str:
        """Return the explicit database URL or one composed from the DB_* parts."""
        if self.database_url:
            return self.database_url
        if not self.db_name:
            raise RuntimeError("RESUME_DATABASE_URL or DB_NAME must be configured before using the database.")
        url = URL.create(
            self.db_driver,
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )
        return url.render_as_string(hide_password=False)

    @property
    def session_token_duration(self) -> timedelta:
        return timedelta(minutes=self.session_token_duration_minutes)

    @property
    def password_reset_duration(self) -> timedelta:
        return timedelta(minutes=self.password_reset_duration_minutes)

    def monthly_quota_by_plan(self) -> Dict[str, int]:
        """Monthly AI request quota per subscription plan; a negative value means unlimited."""
        return {
            "free": self.quota_free_monthly,
            "simple": self.quota_simple_monthly,
            "medium": self.quota_medium_monthly,
            "ultra": self.quota_ultra_monthly,
        }


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid store configuration: {exc}") from exc
