from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, date
from uuid import UUID
from typing import Any, Optional, List, Dict


def _lenient_int(value: Any) -> Optional[int]:
    # Model-authored JSON: "45", 45.0 and 45 are all fine; anything else is absent
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None and not isinstance(v, (dict, list))]


# ---------------------------------------------------------------------------
# Program document (program_json)
# ---------------------------------------------------------------------------

class ProgramGoals(BaseModel):
    primary: Optional[str] = None
    secondary: Optional[str] = None
    timeline_weeks: Optional[int] = None
    metrics: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("timeline_weeks", mode="before")
    @classmethod
    def coerce_int(cls, value):
        return _lenient_int(value)

    @field_validator("metrics", mode="before")
    @classmethod
    def coerce_list(cls, value):
        return _string_list(value)


class WeeklyTemplate(BaseModel):
    days_per_week: Optional[int] = None
    preferred_days: List[str] = Field(default_factory=list)
    session_types: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("days_per_week", mode="before")
    @classmethod
    def coerce_int(cls, value):
        return _lenient_int(value)

    @field_validator("preferred_days", "session_types", mode="before")
    @classmethod
    def coerce_list(cls, value):
        return _string_list(value)


class ProgramSession(BaseModel):
    focus: Optional[str] = None
    duration_min: Optional[int] = None
    equipment: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    intensity: Optional[str] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("duration_min", mode="before")
    @classmethod
    def coerce_int(cls, value):
        return _lenient_int(value)

    @field_validator("equipment", mode="before")
    @classmethod
    def coerce_list(cls, value):
        return _string_list(value)

    @field_validator("focus", "notes", "intensity", mode="before")
    @classmethod
    def coerce_text(cls, value):
        if value is None or isinstance(value, (dict, list)):
            return None
        return str(value)


class Progression(BaseModel):
    strategy: Optional[str] = None
    deload_trigger: Optional[str] = None
    time_scaling: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("time_scaling", mode="before")
    @classmethod
    def coerce_list(cls, value):
        return _string_list(value)


class ExerciseRules(BaseModel):
    prefer: List[str] = Field(default_factory=list)
    avoid: List[str] = Field(default_factory=list)

    @field_validator("prefer", "avoid", mode="before")
    @classmethod
    def coerce_list(cls, value):
        return _string_list(value)


class Guardrails(BaseModel):
    pain_scale: Optional[str] = None
    red_flags: List[str] = Field(default_factory=list)

    @field_validator("red_flags", mode="before")
    @classmethod
    def coerce_list(cls, value):
        return _string_list(value)


class ProgramDocument(BaseModel):
    """
    Structured training program as stored in `trainer_programs.program_json`.

    Parsing is tolerant: the JSON is model-authored, so malformed sections
    degrade to empty defaults instead of failing validation.
    """
    goals: Optional[ProgramGoals] = None
    weekly_template: WeeklyTemplate = Field(default_factory=WeeklyTemplate)
    sessions: List[ProgramSession] = Field(default_factory=list)
    progression: Progression = Field(default_factory=Progression)
    exercise_rules: Optional[ExerciseRules] = None
    guardrails: Optional[Guardrails] = None
    coach_cues: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("goals", "exercise_rules", "guardrails", mode="before")
    @classmethod
    def optional_section(cls, value):
        return value if isinstance(value, dict) else None

    @field_validator("weekly_template", "progression", mode="before")
    @classmethod
    def required_section(cls, value):
        return value if isinstance(value, dict) else {}

    @field_validator("sessions", mode="before")
    @classmethod
    def session_list(cls, value):
        if not isinstance(value, list):
            return []
        return [s for s in value if isinstance(s, dict)]

    @field_validator("coach_cues", mode="before")
    @classmethod
    def coerce_list(cls, value):
        return _string_list(value)


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------

class PlannedSessionResponse(BaseModel):
    id: UUID
    calendar_event_id: UUID
    intent_json: Dict[str, Any]

    model_config = ConfigDict(from_attributes=True)


class CalendarEventResponse(BaseModel):
    id: UUID
    user_id: UUID
    event_type: str
    start_at: datetime
    end_at: Optional[datetime] = None
    title: Optional[str] = None
    status: str
    source: str
    user_modified: bool
    linked_program_id: Optional[UUID] = None
    linked_program_version: Optional[int] = None
    notes: Optional[str] = None
    planned_session: Optional[PlannedSessionResponse] = None

    model_config = ConfigDict(from_attributes=True)


class WeeklyTrends(BaseModel):
    sessions: str = "flat"  # 'up' | 'down' | 'flat'
    volume: str = "flat"
    cardio: str = "flat"


class WeeklyStats(BaseModel):
    week_start: datetime
    week_end: datetime
    sessions_completed: int = 0
    sessions_planned: int = 0
    total_reps: int = 0
    total_volume: int = 0
    total_cardio_min: float = 0.0
    total_workout_min: int = 0
    avg_energy_rating: Optional[float] = None
    avg_session_duration_min: Optional[int] = None
    trends: WeeklyTrends = Field(default_factory=WeeklyTrends)


class WeeklyReportPayload(BaseModel):
    week_start: date
    sessions_completed: int
    wins: List[str]
    focus: str
