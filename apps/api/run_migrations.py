#!/usr/bin/env python3
"""Database bootstrap: wait for the database, then run Alembic migrations.

Run before starting the worker. Exits non-zero when the database never
comes up or a migration fails, so the worker never starts against an
unknown schema.
"""

import asyncio
import logging
import os
import sys
import time

from core.config import settings
from core.database import build_engine, check_db_connection
from core.logging import setup_logging

logger = logging.getLogger(__name__)

MAX_WAIT_ATTEMPTS = 30
WAIT_INTERVAL_SECONDS = 1


async def _database_ready() -> bool:
    engine = build_engine(settings.database_url)
    try:
        return await check_db_connection(engine)
    finally:
        await engine.dispose()


def wait_for_database(max_attempts: int = MAX_WAIT_ATTEMPTS, interval: float = WAIT_INTERVAL_SECONDS) -> bool:
    for attempt in range(1, max_attempts + 1):
        if asyncio.run(_database_ready()):
            logger.info("Database is ready")
            return True
        logger.warning(f"Database unavailable (attempt {attempt}/{max_attempts})")
        time.sleep(interval)
    return False


def upgrade_to_head() -> None:
    from alembic import command
    from alembic.config import Config

    here = os.path.dirname(os.path.abspath(__file__))
    cfg = Config(os.path.join(here, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(here, "alembic"))
    command.upgrade(cfg, "head")


def main() -> int:
    setup_logging()

    if not wait_for_database():
        logger.error(f"Database not ready after {MAX_WAIT_ATTEMPTS} attempts")
        return 1

    try:
        upgrade_to_head()
    except Exception as e:
        logger.error(f"Alembic upgrade failed: {e}", exc_info=True)
        return 1

    logger.info("Migrations completed successfully")
    return 0


if __name__ == '__main__':
    sys.exit(main())
