"""
Tests for the weekly program review.

The completion client is scripted; the database is real (SQLite), so each
test checks what was actually persisted: program version, active pointer,
program events and the re-projected calendar.
"""

import pytest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from conftest import FIXED_NOW
from core.exceptions import MissingActiveProgramError, ProgramRewriteError
from fixtures.program_markdown import MINIMAL_PROGRAM_MARKDOWN, SAMPLE_PROGRAM_MARKDOWN
from fixtures.weights_profile import SAMPLE_PROFILE_ENTRIES
from services.calendar_projector import CalendarProjector
from services.weekly_review import SYSTEM_PROMPT, WeeklyReviewOrchestrator, build_rewrite_prompt

MONDAY = datetime(2026, 2, 16, tzinfo=timezone.utc)


@pytest.fixture
def projector(store, fixed_clock):
    return CalendarProjector(store, clock=fixed_clock)


@pytest.fixture
def orchestrator(store, completion_client, projector, fixed_clock):
    return WeeklyReviewOrchestrator(
        store, completion_client, projector, model="claude-sonnet-4-5", clock=fixed_clock
    )


@pytest.fixture
async def active_program(user_id, activate_program, sample_program_json):
    return await activate_program(user_id, sample_program_json, SAMPLE_PROGRAM_MARKDOWN)


@pytest.fixture
async def trained_this_week(user_id, add_workout):
    return await add_workout(
        user_id,
        MONDAY + timedelta(hours=18),
        completed_at=MONDAY + timedelta(hours=18, minutes=50),
        summary={"sets": [{"reps": 8, "load": 25}], "energy_level": 4, "notes": "felt strong"},
    )


class TestRunWeeklyReviewSkips:
    @pytest.mark.asyncio
    async def test_no_sessions_skips_without_side_effects(
        self, orchestrator, store, completion_client, user_id, active_program
    ):
        result = await orchestrator.run_weekly_review(user_id)

        assert result == {"skipped": True, "reason": "no_sessions"}
        assert completion_client.calls == []
        program = await store.get_program(active_program.id)
        assert program.version == 1
        assert program.program_markdown == SAMPLE_PROGRAM_MARKDOWN
        assert await store.list_calendar_events(user_id) == []

    @pytest.mark.asyncio
    async def test_sessions_outside_the_week_do_not_count(
        self, orchestrator, user_id, add_workout, active_program
    ):
        await add_workout(user_id, MONDAY - timedelta(days=2), completed_at=MONDAY - timedelta(days=2))

        result = await orchestrator.run_weekly_review(user_id)

        assert result["reason"] == "no_sessions"

    @pytest.mark.asyncio
    async def test_no_active_program(self, orchestrator, completion_client, user_id, trained_this_week):
        result = await orchestrator.run_weekly_review(user_id)

        assert result == {"skipped": True, "reason": "no_active_program"}
        assert completion_client.calls == []

    @pytest.mark.asyncio
    async def test_no_sessions_is_checked_before_missing_program(self, orchestrator, user_id):
        result = await orchestrator.run_weekly_review(user_id)
        assert result["reason"] == "no_sessions"


class TestRunWeeklyReview:
    @pytest.mark.asyncio
    async def test_rewrite_bumps_version_and_reprojects(
        self, orchestrator, store, completion_client, user_id, active_program, trained_this_week
    ):
        completion_client.queue(f"```markdown\n{MINIMAL_PROGRAM_MARKDOWN}\n```")

        result = await orchestrator.run_weekly_review(user_id)

        assert result["skipped"] is False
        assert result["program_version"] == 2
        assert result["projection"]["created"] == 28
        assert result["projection"]["program_version"] == 2
        assert result["weekly_stats"]["sessions_completed"] == 1

        program = await store.get_program(active_program.id)
        assert program.version == 2
        assert program.program_markdown == MINIMAL_PROGRAM_MARKDOWN
        pointer = await store.get_active_pointer(user_id)
        assert pointer.program_version == 2

        events = await store.list_program_events(active_program.id)
        assert events[-1].event_type == "weekly_review"
        assert events[-1].data == {"version": 2, "markdown_length": len(MINIMAL_PROGRAM_MARKDOWN)}

        calendar = await store.list_calendar_events(user_id)
        assert {e.title for e in calendar} == {"Full Body"}
        assert {e.linked_program_version for e in calendar} == {2}

    @pytest.mark.asyncio
    async def test_prompt_carries_program_sessions_stats_and_weights(
        self, orchestrator, completion_client, user_id, active_program, trained_this_week, add_weights_profile
    ):
        await add_weights_profile(user_id, SAMPLE_PROFILE_ENTRIES)
        completion_client.queue(SAMPLE_PROGRAM_MARKDOWN)

        await orchestrator.run_weekly_review(user_id)

        call = completion_client.calls[0]
        assert call["system"] == SYSTEM_PROMPT
        assert call["model"] == "claude-sonnet-4-5"
        assert call["max_tokens"] == 16384
        prompt = call["prompt"]
        assert "## Day 2: Lower Body" in prompt
        assert str(trained_this_week.id) in prompt
        assert "felt strong" in prompt
        assert '"sessions_completed": 1' in prompt
        assert "- barbell squat: 135 lbs (confidence: high)" in prompt

    @pytest.mark.asyncio
    async def test_second_review_keeps_bumping(
        self, orchestrator, store, completion_client, user_id, active_program, trained_this_week
    ):
        completion_client.queue(SAMPLE_PROGRAM_MARKDOWN, SAMPLE_PROGRAM_MARKDOWN)

        await orchestrator.run_weekly_review(user_id)
        result = await orchestrator.run_weekly_review(user_id)

        assert result["program_version"] == 3
        # Re-projecting the same schedule replaces rather than duplicates
        assert result["projection"]["deleted"] == 14
        assert len(await store.list_calendar_events(user_id)) == 14

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", ["", "   ", "Sorry, I can't help with that.", "## Only a subheading"])
    async def test_unusable_rewrite_raises_and_changes_nothing(
        self, orchestrator, store, completion_client, user_id, active_program, trained_this_week, response
    ):
        completion_client.queue(response)

        with pytest.raises(ProgramRewriteError):
            await orchestrator.run_weekly_review(user_id)

        program = await store.get_program(active_program.id)
        assert program.version == 1
        assert await store.list_calendar_events(user_id) == []


class TestSaveNewProgramVersion:
    @pytest.mark.asyncio
    async def test_missing_active_program_raises(self, orchestrator):
        with pytest.raises(MissingActiveProgramError) as exc:
            await orchestrator.save_new_program_version(uuid4(), "# Plan")
        assert exc.value.error_code == "NO_ACTIVE_PROGRAM"

    @pytest.mark.asyncio
    async def test_returns_updated_program(self, orchestrator, user_id, active_program):
        program = await orchestrator.save_new_program_version(user_id, "# Plan\nNew")
        assert program.id == active_program.id
        assert program.version == 2
        assert program.program_markdown == "# Plan\nNew"


class TestCatchUpReview:
    @pytest.mark.asyncio
    async def test_upcoming_workout_means_no_catch_up(self, orchestrator, projector, user_id, active_program):
        await projector.sync_calendar_from_program(user_id)

        result = await orchestrator.check_and_run_catch_up_review(user_id)

        assert result == {"regenerated": False, "reason": "has_upcoming_events"}

    @pytest.mark.asyncio
    async def test_empty_calendar_is_reprojected_from_markdown(self, orchestrator, store, user_id, active_program):
        result = await orchestrator.check_and_run_catch_up_review(user_id)

        assert result["regenerated"] is True
        assert result["projection"]["created"] == 14
        titles = [e.title for e in await store.list_calendar_events(user_id)]
        assert titles[:3] == ["Upper Body Push", "Lower Body", "Upper Body Pull"]

    @pytest.mark.asyncio
    async def test_only_past_or_finished_workouts_still_catches_up(self, orchestrator, store, user_id, active_program):
        await store.insert_calendar_event(user_id, {
            "event_type": "workout", "start_at": FIXED_NOW - timedelta(days=1), "status": "scheduled",
        })
        await store.insert_calendar_event(user_id, {
            "event_type": "workout", "start_at": FIXED_NOW + timedelta(days=1), "status": "skipped",
        })

        result = await orchestrator.check_and_run_catch_up_review(user_id)

        assert result["regenerated"] is True

    @pytest.mark.asyncio
    async def test_no_active_program(self, orchestrator, user_id):
        result = await orchestrator.check_and_run_catch_up_review(user_id)
        assert result == {"regenerated": False, "reason": "no_active_program"}


class TestActiveUsers:
    @pytest.mark.asyncio
    async def test_get_active_users(self, orchestrator, user_id, active_program):
        assert await orchestrator.get_active_users() == [user_id]


class TestBuildRewritePrompt:
    def test_weights_block_only_when_present(self):
        without = build_rewrite_prompt("# Plan", [], {}, None)
        with_weights = build_rewrite_prompt("# Plan", [], {}, "- squat: 100 lbs (confidence: high)")

        assert "CURRENT WEIGHTS PROFILE" not in without
        assert "CURRENT WEIGHTS PROFILE:\n- squat: 100 lbs" in with_weights

    def test_lists_the_review_instructions(self):
        prompt = build_rewrite_prompt("# Plan", [], {}, None)
        assert '"# Coach Notes"' in prompt
        assert '"# Current Phase"' in prompt
        assert prompt.rstrip().endswith("No code fences, no preamble.")
