"""
Trainer Store

Narrow async persistence interface over the trainer tables. Every method
opens its own short-lived session from the injected `async_sessionmaker`,
so independent reads can be issued concurrently with `asyncio.gather`.

Storage errors (SQLAlchemy exceptions) propagate unchanged.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models import (
    ActiveProgramPointer,
    AssessmentBaseline,
    AssessmentEvent,
    AssessmentSession,
    AssessmentStepResult,
    CalendarEvent,
    PlannedSession,
    TrainerProgram,
    TrainerProgramEvent,
    WeeklyReport,
    WeightsProfile,
    WorkoutSession,
)

logger = logging.getLogger(__name__)

PROJECTION_SOURCE = "program_projection"
USER_SOURCE = "user_created"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProjectedEvent:
    """A calendar slot derived from a program, with its planned-session intent."""
    start_at: datetime
    title: str
    intent: Dict[str, Any] = field(default_factory=dict)
    end_at: Optional[datetime] = None


class TrainerStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Assessment sessions
    # ------------------------------------------------------------------

    async def get_assessment_session(self, session_id: UUID) -> Optional[AssessmentSession]:
        async with self._session_factory() as session:
            return await session.get(AssessmentSession, session_id)

    async def find_in_progress_session(self, user_id: UUID) -> Optional[AssessmentSession]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AssessmentSession)
                .where(
                    AssessmentSession.user_id == user_id,
                    AssessmentSession.status == "in_progress",
                )
                .order_by(AssessmentSession.updated_at.desc())
                .limit(1)
            )
            return result.scalars().first()

    async def create_assessment_session(self, user_id: UUID, current_step_id: str) -> AssessmentSession:
        async with self._session_factory.begin() as session:
            row = AssessmentSession(
                id=uuid.uuid4(),
                user_id=user_id,
                status="in_progress",
                current_step_id=current_step_id,
            )
            session.add(row)
        return row

    async def update_assessment_session(self, session_id: UUID, **values: Any) -> None:
        values.setdefault("updated_at", _utcnow())
        async with self._session_factory.begin() as session:
            await session.execute(
                update(AssessmentSession)
                .where(AssessmentSession.id == session_id)
                .values(**values)
            )

    # ------------------------------------------------------------------
    # Assessment event log
    # ------------------------------------------------------------------

    async def max_event_sequence(self, session_id: UUID) -> Optional[int]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.max(AssessmentEvent.sequence_number))
                .where(AssessmentEvent.session_id == session_id)
            )
            return result.scalar()

    async def insert_assessment_event(
        self,
        session_id: UUID,
        sequence_number: int,
        event_type: str,
        data: Dict[str, Any],
    ) -> AssessmentEvent:
        """Insert one event. Raises IntegrityError when the sequence number is taken."""
        async with self._session_factory.begin() as session:
            row = AssessmentEvent(
                id=uuid.uuid4(),
                session_id=session_id,
                sequence_number=sequence_number,
                event_type=event_type,
                data=data,
            )
            session.add(row)
        return row

    async def list_assessment_events(self, session_id: UUID) -> List[AssessmentEvent]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AssessmentEvent)
                .where(AssessmentEvent.session_id == session_id)
                .order_by(AssessmentEvent.sequence_number.asc())
            )
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Step results and baselines
    # ------------------------------------------------------------------

    async def insert_step_result(self, session_id: UUID, step_id: str, result: Any) -> AssessmentStepResult:
        async with self._session_factory.begin() as session:
            row = AssessmentStepResult(
                id=uuid.uuid4(),
                session_id=session_id,
                step_id=step_id,
                result_json=result,
            )
            session.add(row)
        return row

    async def list_step_results(self, session_id: UUID) -> List[AssessmentStepResult]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AssessmentStepResult)
                .where(AssessmentStepResult.session_id == session_id)
                .order_by(AssessmentStepResult.created_at.asc())
            )
            return list(result.scalars().all())

    async def get_latest_baseline(self, session_id: UUID) -> Optional[AssessmentBaseline]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AssessmentBaseline)
                .where(AssessmentBaseline.session_id == session_id)
                .order_by(AssessmentBaseline.version.desc())
                .limit(1)
            )
            return result.scalars().first()

    async def insert_baseline(self, session_id: UUID, version: int, baseline: Dict[str, Any]) -> AssessmentBaseline:
        async with self._session_factory.begin() as session:
            row = AssessmentBaseline(
                id=uuid.uuid4(),
                session_id=session_id,
                version=version,
                baseline_json=baseline,
            )
            session.add(row)
        return row

    # ------------------------------------------------------------------
    # Programs
    # ------------------------------------------------------------------

    async def insert_program(
        self,
        user_id: UUID,
        program_json: Dict[str, Any],
        program_markdown: Optional[str] = None,
        status: str = "draft",
        version: int = 1,
    ) -> TrainerProgram:
        async with self._session_factory.begin() as session:
            row = TrainerProgram(
                id=uuid.uuid4(),
                user_id=user_id,
                status=status,
                version=version,
                program_json=program_json,
                program_markdown=program_markdown,
            )
            session.add(row)
        return row

    async def get_program(self, program_id: UUID) -> Optional[TrainerProgram]:
        async with self._session_factory() as session:
            return await session.get(TrainerProgram, program_id)

    async def update_program(self, program_id: UUID, **values: Any) -> None:
        values.setdefault("updated_at", _utcnow())
        async with self._session_factory.begin() as session:
            await session.execute(
                update(TrainerProgram)
                .where(TrainerProgram.id == program_id)
                .values(**values)
            )

    async def insert_program_event(
        self,
        program_id: UUID,
        event_type: str,
        data: Dict[str, Any],
    ) -> TrainerProgramEvent:
        async with self._session_factory.begin() as session:
            row = TrainerProgramEvent(
                id=uuid.uuid4(),
                program_id=program_id,
                event_type=event_type,
                data=data,
            )
            session.add(row)
        return row

    async def list_program_events(self, program_id: UUID) -> List[TrainerProgramEvent]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TrainerProgramEvent)
                .where(TrainerProgramEvent.program_id == program_id)
                .order_by(TrainerProgramEvent.created_at.asc())
            )
            return list(result.scalars().all())

    async def get_active_pointer(self, user_id: UUID) -> Optional[ActiveProgramPointer]:
        async with self._session_factory() as session:
            return await session.get(ActiveProgramPointer, user_id)

    async def upsert_active_pointer(self, user_id: UUID, program_id: UUID, program_version: int) -> None:
        async with self._session_factory.begin() as session:
            pointer = await session.get(ActiveProgramPointer, user_id)
            if pointer is None:
                session.add(ActiveProgramPointer(
                    user_id=user_id,
                    program_id=program_id,
                    program_version=program_version,
                ))
            else:
                pointer.program_id = program_id
                pointer.program_version = program_version
                pointer.updated_at = _utcnow()

    async def get_active_program(self, user_id: UUID) -> Optional[TrainerProgram]:
        """Program named by the user's active-program pointer, if any."""
        async with self._session_factory() as session:
            pointer = await session.get(ActiveProgramPointer, user_id)
            if pointer is None:
                return None
            return await session.get(TrainerProgram, pointer.program_id)

    async def list_active_program_user_ids(self) -> List[UUID]:
        async with self._session_factory() as session:
            result = await session.execute(select(ActiveProgramPointer.user_id))
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Calendar
    # ------------------------------------------------------------------

    async def replace_projected_events(
        self,
        user_id: UUID,
        since: datetime,
        program_id: UUID,
        program_version: int,
        projections: Sequence[ProjectedEvent],
    ) -> Tuple[int, List[CalendarEvent]]:
        """
        Swap the user's unedited future projections for a fresh set.

        Runs as one transaction: stale projected events and their planned
        sessions are deleted, then each projection is inserted with its
        planned session linked and its title set. Rows the user created or
        edited are never selected for deletion.

        Returns (deleted_count, created_events).
        """
        async with self._session_factory.begin() as session:
            stale = await session.execute(
                select(CalendarEvent.id).where(
                    CalendarEvent.user_id == user_id,
                    CalendarEvent.source == PROJECTION_SOURCE,
                    CalendarEvent.user_modified.is_(False),
                    CalendarEvent.start_at >= since,
                )
            )
            stale_ids = list(stale.scalars().all())
            if stale_ids:
                await session.execute(
                    delete(PlannedSession).where(PlannedSession.calendar_event_id.in_(stale_ids))
                )
                await session.execute(
                    delete(CalendarEvent).where(CalendarEvent.id.in_(stale_ids))
                )

            events: List[CalendarEvent] = []
            planned: List[PlannedSession] = []
            for projection in projections:
                event = CalendarEvent(
                    id=uuid.uuid4(),
                    user_id=user_id,
                    event_type="workout",
                    start_at=projection.start_at,
                    end_at=projection.end_at,
                    title=projection.title,
                    status="scheduled",
                    source=PROJECTION_SOURCE,
                    user_modified=False,
                    linked_program_id=program_id,
                    linked_program_version=program_version,
                )
                planned_session = PlannedSession(
                    id=uuid.uuid4(),
                    user_id=user_id,
                    calendar_event_id=event.id,
                    intent_json=projection.intent,
                )
                event.linked_planned_session_id = planned_session.id
                events.append(event)
                planned.append(planned_session)

            # Events first so the planned-session foreign keys resolve
            session.add_all(events)
            await session.flush()
            session.add_all(planned)

        return len(stale_ids), events

    async def list_calendar_events(
        self,
        user_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[CalendarEvent]:
        async with self._session_factory() as session:
            query = select(CalendarEvent).where(CalendarEvent.user_id == user_id)
            if start is not None:
                query = query.where(CalendarEvent.start_at >= start)
            if end is not None:
                query = query.where(CalendarEvent.start_at <= end)
            result = await session.execute(query.order_by(CalendarEvent.start_at.asc()))
            return list(result.scalars().all())

    async def get_calendar_event(self, event_id: UUID) -> Optional[CalendarEvent]:
        async with self._session_factory() as session:
            return await session.get(CalendarEvent, event_id)

    async def insert_calendar_event(
        self,
        user_id: UUID,
        values: Dict[str, Any],
        intent: Optional[Dict[str, Any]] = None,
    ) -> Tuple[CalendarEvent, Optional[PlannedSession]]:
        async with self._session_factory.begin() as session:
            event = CalendarEvent(id=uuid.uuid4(), user_id=user_id, **values)
            session.add(event)
            planned_session = None
            if intent is not None:
                await session.flush()
                planned_session = PlannedSession(
                    id=uuid.uuid4(),
                    user_id=user_id,
                    calendar_event_id=event.id,
                    intent_json=intent,
                )
                session.add(planned_session)
                event.linked_planned_session_id = planned_session.id
        return event, planned_session

    async def update_calendar_event(self, event_id: UUID, **values: Any) -> Optional[CalendarEvent]:
        async with self._session_factory.begin() as session:
            event = await session.get(CalendarEvent, event_id)
            if event is None:
                return None
            for key, value in values.items():
                setattr(event, key, value)
            event.updated_at = _utcnow()
        return event

    async def get_planned_session(self, planned_session_id: UUID) -> Optional[PlannedSession]:
        async with self._session_factory() as session:
            return await session.get(PlannedSession, planned_session_id)

    async def list_planned_sessions(self, event_ids: Sequence[UUID]) -> Dict[UUID, PlannedSession]:
        """Planned sessions keyed by owning calendar event id."""
        if not event_ids:
            return {}
        async with self._session_factory() as session:
            result = await session.execute(
                select(PlannedSession).where(PlannedSession.calendar_event_id.in_(list(event_ids)))
            )
            return {row.calendar_event_id: row for row in result.scalars().all()}

    async def has_upcoming_workout(self, user_id: UUID, now: datetime) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(CalendarEvent.id)
                .where(
                    CalendarEvent.user_id == user_id,
                    CalendarEvent.event_type == "workout",
                    # 'planned' is accepted for rows written by older clients
                    CalendarEvent.status.in_(("scheduled", "planned")),
                    CalendarEvent.start_at >= now,
                )
                .limit(1)
            )
            return result.first() is not None

    async def count_workout_events(self, user_id: UUID, start: datetime, end: datetime) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count(CalendarEvent.id)).where(
                    CalendarEvent.user_id == user_id,
                    CalendarEvent.event_type == "workout",
                    CalendarEvent.start_at >= start,
                    CalendarEvent.start_at <= end,
                )
            )
            return int(result.scalar() or 0)

    # ------------------------------------------------------------------
    # Workout history, weights profile, weekly reports
    # ------------------------------------------------------------------

    async def list_completed_workouts(
        self,
        user_id: UUID,
        start: datetime,
        end: datetime,
        *,
        by_completed_at: bool = False,
        end_inclusive: bool = True,
    ) -> List[WorkoutSession]:
        """Completed workout sessions whose start (or completion) falls in the window."""
        column = WorkoutSession.completed_at if by_completed_at else WorkoutSession.started_at
        upper = column <= end if end_inclusive else column < end
        async with self._session_factory() as session:
            result = await session.execute(
                select(WorkoutSession)
                .where(
                    WorkoutSession.user_id == user_id,
                    WorkoutSession.status == "completed",
                    column >= start,
                    upper,
                )
                .order_by(column.asc())
            )
            return list(result.scalars().all())

    async def get_latest_weights_profile(self, user_id: UUID) -> Optional[WeightsProfile]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(WeightsProfile)
                .where(WeightsProfile.user_id == user_id)
                .order_by(WeightsProfile.version.desc())
                .limit(1)
            )
            return result.scalars().first()

    async def insert_weekly_report(self, user_id: UUID, week_start: date, report: Dict[str, Any]) -> WeeklyReport:
        async with self._session_factory.begin() as session:
            row = WeeklyReport(
                id=uuid.uuid4(),
                user_id=user_id,
                week_start=week_start,
                report_json=report,
            )
            session.add(row)
        return row

    async def list_weekly_reports(self, user_id: UUID, limit: int) -> List[WeeklyReport]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(WeeklyReport)
                .where(WeeklyReport.user_id == user_id)
                .order_by(WeeklyReport.week_start.desc(), WeeklyReport.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())
