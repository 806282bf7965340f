"""Print a one-off JSON snapshot of the database pool and row counts."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from resume_store.db.monitoring import get_pool_snapshot, instrument_engine
from resume_store.db.session import Database
from resume_store.repositories import CurriculumRepository, UserRepository

LOGGER = logging.getLogger("resume_store.db_metrics")


def collect(database: Database) -> dict[str, object]:
    instrument_engine(database.engine)
    database.ping()
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "dialect": database.dialect,
        "pool": get_pool_snapshot(database.engine),
        "users": UserRepository(database).count(),
        "curriculums": CurriculumRepository(database).count(),
    }


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    database = None
    try:
        database = Database.from_settings()
        print(json.dumps(collect(database)))
        return 0
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Failed to collect database metrics: %s", exc)
        return 1
    finally:
        if database is not None:
            database.dispose()


if __name__ == "__main__":
    sys.exit(main())
