from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Date, DateTime, ForeignKey, Text, Index, UniqueConstraint, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from core.database import Base
import uuid
from datetime import datetime, timezone

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    # Python-side default keeps microsecond ordering on every dialect
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Assessment
# ---------------------------------------------------------------------------

class AssessmentSession(Base):
    """
    One onboarding assessment run for a user.

    At most one `in_progress` session per user is expected; this is enforced
    by query in the assessment flow, not by a constraint.
    """
    __tablename__ = "trainer_assessment_sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False)
    status = Column(Text, default="in_progress", nullable=False)  # 'in_progress' | 'completed'
    current_step_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("status IN ('in_progress', 'completed')", name="ck_assessment_session_status"),
        Index("ix_assessment_sessions_user_status", "user_id", "status"),
    )


class AssessmentEvent(Base):
    """Append-only audit log entry. Never updated or deleted."""
    __tablename__ = "trainer_assessment_events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid(as_uuid=True), ForeignKey("trainer_assessment_sessions.id"), nullable=False)
    sequence_number = Column(Integer, nullable=False)
    event_type = Column(Text, nullable=False)  # 'step_result' | 'skip' | 'baseline_generated'
    data = Column(JSONType, nullable=False, default=dict)
    timestamp = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        # Acts as the compare-and-swap for concurrent appends
        UniqueConstraint("session_id", "sequence_number", name="uq_assessment_event_sequence"),
        CheckConstraint(
            "event_type IN ('step_result', 'skip', 'baseline_generated')",
            name="ck_assessment_event_type",
        ),
    )


class AssessmentStepResult(Base):
    __tablename__ = "trainer_assessment_step_results"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid(as_uuid=True), ForeignKey("trainer_assessment_sessions.id"), nullable=False)
    step_id = Column(Text, nullable=False)
    result_json = Column(JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_assessment_step_results_session", "session_id", "created_at"),
    )


class AssessmentBaseline(Base):
    """Versioned synthesis snapshot. Latest `version` is authoritative."""
    __tablename__ = "trainer_assessment_baselines"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid(as_uuid=True), ForeignKey("trainer_assessment_sessions.id"), nullable=False)
    version = Column(Integer, nullable=False)
    baseline_json = Column(JSONType, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("session_id", "version", name="uq_assessment_baseline_version"),
    )


# ---------------------------------------------------------------------------
# Programs
# ---------------------------------------------------------------------------

class TrainerProgram(Base):
    __tablename__ = "trainer_programs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    status = Column(Text, default="draft", nullable=False)
    version = Column(Integer, default=1, nullable=False)
    program_json = Column(JSONType, nullable=False, default=dict)
    # Markdown is the document the weekly review rewrites
    program_markdown = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    active_from = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'approved', 'active', 'archived')",
            name="ck_trainer_program_status",
        ),
    )


class TrainerProgramEvent(Base):
    __tablename__ = "trainer_program_events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    program_id = Column(Uuid(as_uuid=True), ForeignKey("trainer_programs.id"), nullable=False)
    event_type = Column(Text, nullable=False)
    data = Column(JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "event_type IN ('draft', 'edit', 'review', 'approve', 'activate', 'weekly_review')",
            name="ck_trainer_program_event_type",
        ),
        Index("ix_trainer_program_events_program", "program_id", "created_at"),
    )


class ActiveProgramPointer(Base):
    """One row per user naming the current (program_id, program_version)."""
    __tablename__ = "trainer_active_program"

    user_id = Column(Uuid(as_uuid=True), primary_key=True)
    program_id = Column(Uuid(as_uuid=True), ForeignKey("trainer_programs.id"), nullable=False)
    program_version = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------

class CalendarEvent(Base):
    __tablename__ = "trainer_calendar_events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False)
    event_type = Column(Text, default="workout", nullable=False)
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=True)
    title = Column(Text, nullable=True)
    status = Column(Text, default="scheduled", nullable=False)
    source = Column(Text, default="user_created", nullable=False)  # 'program_projection' | 'user_created'
    # Projection never deletes or rewrites rows with this set
    user_modified = Column(Boolean, default=False, nullable=False)
    linked_program_id = Column(Uuid(as_uuid=True), ForeignKey("trainer_programs.id"), nullable=True)
    linked_program_version = Column(Integer, nullable=True)
    linked_planned_session_id = Column(Uuid(as_uuid=True), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "event_type IN ('workout', 'rest', 'checkin', 'assessment', 'note')",
            name="ck_calendar_event_type",
        ),
        CheckConstraint(
            "status IN ('scheduled', 'completed', 'skipped', 'canceled')",
            name="ck_calendar_event_status",
        ),
        Index("ix_calendar_events_user_start", "user_id", "start_at"),
    )


class PlannedSession(Base):
    """Workout intent owned by exactly one calendar event."""
    __tablename__ = "trainer_planned_sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False)
    calendar_event_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("trainer_calendar_events.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    intent_json = Column(JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Inputs to the weekly review (written elsewhere, read here)
# ---------------------------------------------------------------------------

class WorkoutSession(Base):
    __tablename__ = "workout_sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False)
    status = Column(Text, default="in_progress", nullable=False)  # 'in_progress' | 'completed' | 'abandoned'
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    summary_json = Column(JSONType, nullable=True)

    __table_args__ = (
        Index("ix_workout_sessions_user_started", "user_id", "started_at"),
    )


class WeightsProfile(Base):
    """Derived per-movement working loads, versioned per user."""
    __tablename__ = "trainer_weights_profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False)
    version = Column(Integer, default=1, nullable=False)
    profile_json = Column(JSONType, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "version", name="uq_weights_profile_version"),
    )


class WeeklyReport(Base):
    __tablename__ = "trainer_weekly_reports"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False)
    week_start = Column(Date, nullable=False)
    report_json = Column(JSONType, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_weekly_reports_user_week", "user_id", "week_start"),
    )
