"""Alembic migration runner with a readiness probe.

Deploys call this (directly or through ``scripts/run_migrations.py``) before the
service accepts traffic; the runtime calls it at startup when
``RESUME_RUN_MIGRATIONS`` is set.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

BACKEND_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = BACKEND_ROOT / "alembic.ini"


def get_alembic_config(config_path: Optional[str] = None) -> Config:
    config = Config(str(config_path or DEFAULT_CONFIG_PATH))
    config.set_main_option("script_location", str(BACKEND_ROOT / "alembic"))
    return config


def resolve_database_url(config: Config, settings: Optional[Settings] = None) -> str:
    """Use the URL pinned in the Alembic config, else the one from settings.

    The resolved URL is written back into ``config`` so ``env.py`` sees it.
    """
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url
    url = (settings or get_settings()).sqlalchemy_url()
    # ConfigParser interpolation treats '%' specially (URL-encoded passwords).
    config.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return url


def wait_for_database(database_url: str, *, timeout: float, poll_interval: float) -> None:
    """Poll the database until ``SELECT 1`` succeeds or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    engine: Optional[Engine] = None
    last_error: Optional[Exception] = None

    try:
        engine = create_engine(database_url, future=True, pool_pre_ping=True)
        while True:
            try:
                with engine.connect() as connection:
                    connection.execute(text("SELECT 1"))
                logger.info("Database is reachable.")
                return
            except OperationalError as exc:
                last_error = exc
                logger.warning("Database not ready yet: %s", exc)
            except SQLAlchemyError as exc:
                last_error = exc
                logger.error("Database error during readiness probe: %s", exc)
                break
            if time.monotonic() + poll_interval > deadline:
                break
            time.sleep(poll_interval)
    finally:
        if engine is not None:
            engine.dispose()

    raise RuntimeError("Database did not become ready in time.") from last_error


def run_migrations(
    revision: str = "head",
    *,
    timeout: Optional[float] = None,
    poll_interval: Optional[float] = None,
    config: Optional[Config] = None,
    settings: Optional[Settings] = None,
) -> None:
    settings = settings or get_settings()
    config = config or get_alembic_config()
    timeout = settings.migration_timeout if timeout is None else timeout
    poll_interval = settings.migration_poll_interval if poll_interval is None else poll_interval

    database_url = resolve_database_url(config, settings)
    logger.info("Running migrations up to %s (timeout=%ss poll=%ss)", revision, timeout, poll_interval)
    wait_for_database(database_url, timeout=timeout, poll_interval=poll_interval)
    command.upgrade(config, revision)
    logger.info("Migrations complete.")


__all__ = [
    "get_alembic_config",
    "resolve_database_url",
    "run_migrations",
    "wait_for_database",
]
