"""
Celery worker entry point.

Run with `celery -A main worker` (and `celery -A main beat` for the weekly
schedule) from this directory. The API tree is mounted at /api.
"""
import asyncio
import sys

# Add API directory to path so we can import tasks
sys.path.insert(0, '/api')

from core.logging import setup_logging  # noqa: E402

setup_logging()

from core.config import settings  # noqa: E402
from core.database import build_engine, check_db_connection  # noqa: E402
from tasks import celery_app  # noqa: E402

celery_app.autodiscover_tasks(['tasks'])


async def _database_ok() -> bool:
    engine = build_engine(settings.database_url)
    try:
        return await check_db_connection(engine)
    finally:
        await engine.dispose()


@celery_app.task(name="worker.health_check")
def health_check():
    """Worker liveness plus database reachability."""
    database_ok = asyncio.run(_database_ok())
    return {"status": "ok" if database_ok else "degraded", "database": database_ok}
