"""
Weekly Stats

Deterministic rollup of a user's completed workouts for a week. No model
calls.

Per-session numbers come from the session's `summary_json`:
    sets:      [{"reps" | "reps_completed", "load" | "weight"}]
    intervals: [{"duration_sec" | "work_sec"}]
    exercises: [{"exercise_type": "duration", "duration_min"}]
    energy_level, pain_flags
and the workout duration from started_at/completed_at.
"""

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from models import WorkoutSession
from schemas import WeeklyStats, WeeklyTrends
from services.trainer_store import TrainerStore

logger = logging.getLogger(__name__)


def get_current_week_bounds(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Monday 00:00 to Sunday 23:59:59.999999 (UTC) of the week containing `now`."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    monday = now.date() - timedelta(days=now.weekday())
    week_start = datetime.combine(monday, time.min, tzinfo=timezone.utc)
    week_end = datetime.combine(monday + timedelta(days=6), time.max, tzinfo=timezone.utc)
    return week_start, week_end


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _list(summary: Dict[str, Any], key: str) -> list:
    value = summary.get(key)
    return [v for v in value if isinstance(v, dict)] if isinstance(value, list) else []


def _minutes_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    if start is None or end is None:
        return None
    # SQLite hands back naive datetimes; both sides are UTC
    if (start.tzinfo is None) != (end.tzinfo is None):
        start = start.replace(tzinfo=None)
        end = end.replace(tzinfo=None)
    seconds = (end - start).total_seconds()
    return round(seconds / 60) if seconds > 0 else None


def calculate_session_stats(session: WorkoutSession) -> Dict[str, Any]:
    summary = session.summary_json if isinstance(session.summary_json, dict) else {}

    total_sets = 0
    total_reps = 0.0
    total_volume = 0.0
    for logged in _list(summary, "sets"):
        total_sets += 1
        reps = _number(logged.get("reps_completed") or logged.get("reps"))
        load = _number(logged.get("load") or logged.get("weight"))
        total_reps += reps
        total_volume += reps * load

    cardio_min = 0.0
    for interval in _list(summary, "intervals"):
        cardio_min += _number(interval.get("duration_sec") or interval.get("work_sec")) / 60
    for exercise in _list(summary, "exercises"):
        if exercise.get("exercise_type") == "duration":
            cardio_min += _number(exercise.get("duration_min"))

    energy = summary.get("energy_level")
    pain_flags = summary.get("pain_flags")

    return {
        "total_sets": total_sets,
        "total_reps": int(total_reps),
        "total_volume": total_volume,
        "cardio_time_min": round(cardio_min, 1),
        "workout_duration_min": _minutes_between(session.started_at, session.completed_at),
        "pain_flags": len(pain_flags) if isinstance(pain_flags, list) else 0,
        "energy_rating": energy if isinstance(energy, (int, float)) and not isinstance(energy, bool) else None,
    }


def _trend(current: int, prior: int) -> str:
    if current > prior:
        return "up"
    if current < prior:
        return "down"
    return "flat"


async def calculate_weekly_stats(
    store: TrainerStore,
    user_id: UUID,
    week_start: datetime,
    week_end: datetime,
) -> WeeklyStats:
    sessions = await store.list_completed_workouts(user_id, week_start, week_end)
    planned = await store.count_workout_events(user_id, week_start, week_end)
    prior = await store.list_completed_workouts(
        user_id, week_start - timedelta(days=7), week_start, end_inclusive=False
    )

    total_reps = 0
    total_volume = 0.0
    total_cardio = 0.0
    total_minutes = 0
    energy_total = 0.0
    energy_count = 0
    for session in sessions:
        stats = calculate_session_stats(session)
        total_reps += stats["total_reps"]
        total_volume += stats["total_volume"]
        total_cardio += stats["cardio_time_min"]
        if stats["workout_duration_min"]:
            total_minutes += stats["workout_duration_min"]
        if stats["energy_rating"]:
            energy_total += stats["energy_rating"]
            energy_count += 1

    completed = len(sessions)
    return WeeklyStats(
        week_start=week_start,
        week_end=week_end,
        sessions_completed=completed,
        sessions_planned=planned,
        total_reps=total_reps,
        total_volume=round(total_volume),
        total_cardio_min=round(total_cardio, 1),
        total_workout_min=total_minutes,
        avg_energy_rating=round(energy_total / energy_count, 1) if energy_count else None,
        avg_session_duration_min=round(total_minutes / completed) if completed else None,
        # Volume and cardio would need the prior week's rollup; reported flat
        trends=WeeklyTrends(sessions=_trend(completed, len(prior))),
    )
