"""
Calendar Projector

Derives a rolling horizon of workout events from the user's active program.

Overlay rule: only the system's own unedited projections
(source='program_projection', user_modified=False, start_at >= today) are
replaced on a re-run. Anything the user created or edited stays untouched,
so re-projecting the same program version is idempotent.

Day selection:
- preferred_days set: every horizon day whose weekday matches one of them
  (a list with no recognisable weekday schedules nothing)
- otherwise: every floor(7 / days_per_week)-th day from today; a missing or
  zero days_per_week means the default of 3. For counts
  that do not divide 7 the weekly total drifts from the request (4 or more
  per week gives a session every day); kept as a known approximation.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
from uuid import UUID

from models import TrainerProgram
from schemas import ProgramDocument, ProgramSession
from services.program_document import (
    load_program_document,
    parse_days_per_week,
    parse_sessions_from_markdown,
)
from services.trainer_store import ProjectedEvent, TrainerStore

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 28
DEFAULT_DAYS_PER_WEEK = 3
DEFAULT_FOCUS = "Workout"
DEFAULT_DURATION_MIN = 45

WEEKDAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(moment: datetime) -> datetime:
    """UTC midnight of the day containing `moment`."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return datetime.combine(moment.date(), time.min, tzinfo=timezone.utc)


def clamp_days_per_week(value: Optional[int], default: int = DEFAULT_DAYS_PER_WEEK) -> int:
    """Days per week in 1..7; a missing or non-positive value means `default`."""
    if value is None or value < 1:
        value = default
    return max(1, min(7, int(value)))


def normalize_weekdays(names: Sequence[str]) -> set:
    """'Mon', 'monday', ' MON ' -> 'mon'. Unrecognised names are dropped."""
    keys = set()
    for name in names or []:
        key = str(name).strip().lower()[:3]
        if key in WEEKDAY_KEYS:
            keys.add(key)
    return keys


def select_projection_offsets(
    start: Union[date, datetime],
    horizon_days: int,
    days_per_week: Optional[int],
    preferred_days: Sequence[str] = (),
) -> List[int]:
    """Day offsets from `start` (0-based, within the horizon) that get a workout."""
    start_date = start.date() if isinstance(start, datetime) else start
    # A non-empty list is authoritative even when none of its names match a weekday
    if preferred_days:
        preferred = normalize_weekdays(preferred_days)
        return [
            offset for offset in range(horizon_days)
            if WEEKDAY_KEYS[(start_date + timedelta(days=offset)).weekday()] in preferred
        ]

    interval = max(1, 7 // clamp_days_per_week(days_per_week))
    return [offset for offset in range(horizon_days) if offset % interval == 0]


def build_session_intent(index: int, document: ProgramDocument) -> Dict[str, Any]:
    """
    Planned-session intent for the index-th projected event.

    Session templates (and session types) cycle by index, so a short list
    repeats across the horizon.
    """
    sessions = document.sessions
    session: ProgramSession = sessions[index % len(sessions)] if sessions else ProgramSession()
    session_types = document.weekly_template.session_types

    return {
        "focus": session.focus or DEFAULT_FOCUS,
        "duration_min": session.duration_min or DEFAULT_DURATION_MIN,
        "equipment": list(session.equipment),
        "notes": session.notes or "",
        "session_type": session_types[index % len(session_types)] if session_types else None,
        "time_variants": list(document.progression.time_scaling),
    }


def apply_markdown_overrides(document: ProgramDocument, markdown: Optional[str]) -> ProgramDocument:
    """
    Prefer the scheduling facts of a rewritten markdown document.

    Sessions listed under `# Training Sessions` replace the JSON templates;
    a `**N** days per week` line replaces days_per_week. Anything the
    markdown does not state keeps the JSON value.
    """
    if not markdown:
        return document

    update: Dict[str, Any] = {}
    md_sessions = parse_sessions_from_markdown(markdown)
    if md_sessions:
        by_focus = {s.focus: s for s in document.sessions if s.focus}
        sessions = []
        for md in md_sessions:
            template = by_focus.get(md.name)
            sessions.append(ProgramSession(
                focus=md.name,
                duration_min=md.duration_min,
                intensity=md.intensity,
                equipment=list(template.equipment) if template else [],
                notes=template.notes if template else None,
            ))
        update["sessions"] = sessions

    days_per_week = parse_days_per_week(markdown, default=0)
    if days_per_week:
        update["weekly_template"] = document.weekly_template.model_copy(
            update={"days_per_week": days_per_week}
        )

    return document.model_copy(update=update) if update else document


class CalendarProjector:
    def __init__(
        self,
        store: TrainerStore,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        default_days_per_week: int = DEFAULT_DAYS_PER_WEEK,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.horizon_days = horizon_days
        self.default_days_per_week = default_days_per_week
        self.clock = clock

    async def sync_calendar_from_program(self, user_id: UUID) -> Dict[str, Any]:
        """Re-project the active program's JSON template onto the calendar."""
        program = await self.store.get_active_program(user_id)
        if program is None:
            return {"created": 0, "reason": "no_active_program"}
        document = load_program_document(program.program_json)
        return await self._project(user_id, program, document)

    async def regenerate_weekly_calendar(self, user_id: UUID, program_markdown: Optional[str]) -> Dict[str, Any]:
        """Re-project after a weekly rewrite, reading schedule facts from the new markdown."""
        program = await self.store.get_active_program(user_id)
        if program is None:
            return {"created": 0, "reason": "no_active_program"}
        document = apply_markdown_overrides(load_program_document(program.program_json), program_markdown)
        return await self._project(user_id, program, document)

    async def _project(self, user_id: UUID, program: TrainerProgram, document: ProgramDocument) -> Dict[str, Any]:
        today = start_of_day(self.clock())
        template = document.weekly_template
        days_per_week = clamp_days_per_week(template.days_per_week, self.default_days_per_week)
        offsets = select_projection_offsets(today, self.horizon_days, days_per_week, template.preferred_days)

        projections = []
        for index, offset in enumerate(offsets):
            intent = build_session_intent(index, document)
            projections.append(ProjectedEvent(
                start_at=today + timedelta(days=offset),
                title=intent["focus"],
                intent=intent,
            ))

        deleted, created = await self.store.replace_projected_events(
            user_id=user_id,
            since=today,
            program_id=program.id,
            program_version=program.version,
            projections=projections,
        )

        logger.info(
            f"Calendar projection for user {user_id}: program {program.id} v{program.version}, "
            f"deleted={deleted}, created={len(created)}"
        )
        return {
            "created": len(created),
            "deleted": deleted,
            "program_id": str(program.id),
            "program_version": program.version,
        }
