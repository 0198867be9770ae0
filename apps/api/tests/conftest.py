"""
Pytest configuration and fixtures

Every test gets a fresh file-backed SQLite database (aiosqlite) with the
schema created from the models, so tests never share state. A file rather
than :memory: lets concurrent appends use separate connections.
"""
import pytest
import sys
import os
from uuid import uuid4
from datetime import datetime, timezone

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.database import Base, build_engine, build_session_factory  # noqa: E402
from models import WeightsProfile, WorkoutSession  # noqa: E402
from services.program_service import ProgramService  # noqa: E402
from services.trainer_store import TrainerStore  # noqa: E402

# Wednesday; the surrounding week runs Mon 2026-02-16 .. Sun 2026-02-22
FIXED_NOW = datetime(2026, 2, 18, 15, 30, tzinfo=timezone.utc)


class FakeCompletionClient:
    """Scripted text-completion client: returns queued responses and records calls."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    async def complete(self, prompt, *, system, max_tokens, model=None):
        self.calls.append({"prompt": prompt, "system": system, "max_tokens": max_tokens, "model": model})
        if not self.responses:
            raise AssertionError("Unexpected text completion call")
        return self.responses.pop(0)


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'trainer.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return TrainerStore(session_factory)


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def completion_client():
    return FakeCompletionClient()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def sample_program_json():
    return {
        "goals": {"primary": "Build upper body strength", "timeline_weeks": 12, "metrics": ["Press +10 lb"]},
        "weekly_template": {
            "days_per_week": 3,
            "session_types": ["strength", "conditioning"],
            "preferred_days": [],
        },
        "sessions": [
            {"focus": "Upper Body Push", "duration_min": 45, "equipment": ["dumbbells"], "notes": "Press focus"},
            {"focus": "Lower Body", "duration_min": 60, "equipment": ["barbell"], "notes": ""},
        ],
        "progression": {"strategy": "RPE based", "time_scaling": ["45", "30", "15"]},
        "coach_cues": ["Brace before each rep."],
    }


@pytest.fixture
def activate_program(store):
    """Create and activate a program for a user; returns the active program."""
    programs = ProgramService(store)

    async def _activate(user_id, program_json, program_markdown=None):
        program = await programs.create_program(user_id, program_json, program_markdown)
        return await programs.activate_program(program.id)

    return _activate


@pytest.fixture
def add_workout(session_factory):
    """Insert a workout session row (the weekly review only reads these)."""

    async def _add(user_id, started_at, status="completed", completed_at=None, summary=None):
        row = WorkoutSession(
            id=uuid4(),
            user_id=user_id,
            status=status,
            started_at=started_at,
            completed_at=completed_at,
            summary_json=summary,
        )
        async with session_factory.begin() as session:
            session.add(row)
        return row

    return _add


@pytest.fixture
def add_weights_profile(session_factory):
    async def _add(user_id, entries, version=1):
        row = WeightsProfile(id=uuid4(), user_id=user_id, version=version, profile_json=entries)
        async with session_factory.begin() as session:
            session.add(row)
        return row

    return _add
