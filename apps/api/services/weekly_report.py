"""
Weekly Report Service

Per-user, per-week snapshot of completed sessions plus short narrative
fields. Generated by the weekly batch job; users read the recent history.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, List, Optional, Union
from uuid import UUID

from models import WeeklyReport
from schemas import WeeklyReportPayload
from services.trainer_store import TrainerStore

logger = logging.getLogger(__name__)

DEFAULT_REPORT_LIMIT = 8
MAX_REPORT_LIMIT = 52

ACTIVE_WINS = ["Nice consistency this week."]
ACTIVE_FOCUS = "Keep momentum with balanced sessions."
IDLE_WINS = ["Let's aim for one session next week."]
IDLE_FOCUS = "Start with short sessions to build habit."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_week(moment: datetime) -> date:
    """Monday of the week containing `moment`."""
    return moment.date() - timedelta(days=moment.weekday())


def sanitize_limit(value: Any, fallback: int = DEFAULT_REPORT_LIMIT, maximum: int = MAX_REPORT_LIMIT) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return fallback
    if parsed < 1:
        return fallback
    return min(parsed, maximum)


class WeeklyReportService:
    def __init__(self, store: TrainerStore, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.clock = clock

    async def generate_weekly_report(
        self,
        user_id: UUID,
        week_start: Optional[Union[date, datetime]] = None,
    ) -> WeeklyReport:
        if week_start is None:
            start_day = start_of_week(self.clock())
        elif isinstance(week_start, datetime):
            start_day = week_start.date()
        else:
            start_day = week_start

        window_start = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
        window_end = window_start + timedelta(days=7)
        sessions = await self.store.list_completed_workouts(
            user_id, window_start, window_end, by_completed_at=True, end_inclusive=False
        )

        count = len(sessions)
        payload = WeeklyReportPayload(
            week_start=start_day,
            sessions_completed=count,
            wins=list(ACTIVE_WINS if count else IDLE_WINS),
            focus=ACTIVE_FOCUS if count else IDLE_FOCUS,
        )
        report = await self.store.insert_weekly_report(user_id, start_day, payload.model_dump(mode="json"))
        logger.info(f"Weekly report for user {user_id}, week {start_day}: {count} sessions")
        return report

    async def list_reports(self, user_id: UUID, limit: Any = DEFAULT_REPORT_LIMIT) -> List[WeeklyReport]:
        return await self.store.list_weekly_reports(user_id, sanitize_limit(limit))
