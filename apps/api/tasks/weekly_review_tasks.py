"""
Weekly Review Tasks

Scheduled weekly program review and related per-user jobs. Runs via Celery
Beat (see celerybeat_schedule.py). The services are async; each task
drives them with asyncio.run on a runtime built for that task.
"""

import asyncio
import logging
import time
from typing import Dict
from uuid import UUID

from celery import Task

from services.trainer_runtime import TrainerRuntime
from services.weekly_review import WeeklyReviewOrchestrator
from tasks import celery_app

logger = logging.getLogger(__name__)


def _build_runtime() -> TrainerRuntime:
    return TrainerRuntime.from_settings()


async def review_all_users(orchestrator: WeeklyReviewOrchestrator) -> Dict:
    """
    Review every user with an active program, one at a time.

    A failure for one user is logged and counted; it never stops the rest.
    """
    t0 = time.monotonic()
    user_ids = await orchestrator.get_active_users()
    logger.info(f"[weekly-review] Found {len(user_ids)} active users")

    success = skipped = errors = 0
    for user_id in user_ids:
        try:
            result = await orchestrator.run_weekly_review(user_id)
        except Exception as e:
            errors += 1
            logger.error(f"[weekly-review] Review failed for user {user_id}: {e}", exc_info=True)
            continue
        if result.get("skipped"):
            skipped += 1
        else:
            success += 1

    logger.info(
        f"[weekly-review] Batch complete in {int((time.monotonic() - t0) * 1000)}ms - "
        f"success={success}, skipped={skipped}, errors={errors}"
    )
    return {
        "status": "success",
        "users": len(user_ids),
        "reviewed": success,
        "skipped": skipped,
        "errors": errors,
    }


async def _with_runtime(job):
    async with _build_runtime() as runtime:
        return await job(runtime)


@celery_app.task(name="tasks.run_weekly_review", bind=True)
def run_weekly_review_task(self: Task, user_id: str) -> Dict:
    """Run the weekly review for a single user."""
    result = asyncio.run(_with_runtime(
        lambda runtime: runtime.weekly_review.run_weekly_review(UUID(user_id))
    ))
    return {"status": "skipped" if result.get("skipped") else "success", "user_id": user_id, **result}


@celery_app.task(name="tasks.run_all_weekly_reviews", bind=True)
def run_all_weekly_reviews_task(self: Task) -> Dict:
    """Weekly batch over every user with an active program."""
    return asyncio.run(_with_runtime(lambda runtime: review_all_users(runtime.weekly_review)))


@celery_app.task(name="tasks.run_catch_up_review", bind=True)
def run_catch_up_review_task(self: Task, user_id: str) -> Dict:
    """Re-project the calendar for a user who has nothing upcoming."""
    result = asyncio.run(_with_runtime(
        lambda runtime: runtime.weekly_review.check_and_run_catch_up_review(UUID(user_id))
    ))
    return {"status": "success", "user_id": user_id, **result}


@celery_app.task(name="tasks.generate_weekly_report", bind=True)
def generate_weekly_report_task(self: Task, user_id: str) -> Dict:
    """Store this week's report for a single user."""
    report = asyncio.run(_with_runtime(
        lambda runtime: runtime.weekly_reports.generate_weekly_report(UUID(user_id))
    ))
    return {"status": "success", "user_id": user_id, "report": report.report_json}
