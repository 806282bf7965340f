"""Run Alembic migrations with retry-aware database checks.

Invoked during deploys so the schema is current before the service accepts
traffic.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional

from resume_store.config import get_settings
from resume_store.db.migrations import DEFAULT_CONFIG_PATH, get_alembic_config, run_migrations

LOGGER = logging.getLogger("resume_store.migrations")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run Alembic migrations with readiness checks.")
    parser.add_argument(
        "--revision",
        default=os.getenv("RESUME_DB_MIGRATION_REVISION", "head"),
        help="Revision identifier to upgrade to (default: head).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.migration_timeout,
        help=f"Seconds to wait for the database to become available (default: {settings.migration_timeout}).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=settings.migration_poll_interval,
        help=f"Seconds between readiness probes (default: {settings.migration_poll_interval}).",
    )
    parser.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG_PATH),
        help="Path to alembic.ini configuration file.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(
        level=os.getenv("RESUME_DB_MIGRATION_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        args = parse_args(argv)
        run_migrations(
            args.revision,
            timeout=args.timeout,
            poll_interval=args.poll_interval,
            config=get_alembic_config(args.config),
        )
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Migration run failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
