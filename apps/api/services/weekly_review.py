"""
Weekly Review Orchestrator

Once a week, for each user with an active program:
1. Gather this week's completed-session summaries, weekly stats, the active
   program and the latest weights profile (concurrently).
2. Skip with a structured reason when there is nothing to review.
3. Ask the text-completion client to rewrite the program markdown.
4. Store the rewrite as a new program version and repoint the active pointer.
5. Re-project the calendar from the new version.

Expected no-op conditions are returned as `{"skipped": True, "reason": ...}`
so the batch job can tell "nothing to do" from "something broke".
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from core.exceptions import MissingActiveProgramError, ProgramRewriteError
from models import TrainerProgram
from schemas import WeeklyStats
from services.calendar_projector import CalendarProjector
from services.llm_output import has_markdown_heading, strip_code_fences
from services.text_completion import TextCompletionClient
from services.trainer_store import TrainerStore
from services.weekly_stats import calculate_weekly_stats, get_current_week_bounds
from services.weights_profile import format_profile_for_prompt, get_latest_profile

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are an expert strength & conditioning coach. Output only markdown."

DEFAULT_MAX_TOKENS = 16384


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_rewrite_prompt(
    program_markdown: str,
    week_summaries: List[Dict[str, Any]],
    weekly_stats: Dict[str, Any],
    weights_text: Optional[str],
) -> str:
    weights_block = f"CURRENT WEIGHTS PROFILE:\n{weights_text}\n" if weights_text else ""
    return f"""You are an expert strength & conditioning coach performing a weekly program review.

CURRENT PROGRAM:
{program_markdown}

THIS WEEK'S SESSION SUMMARIES:
{json.dumps(week_summaries, indent=2, default=str)}

WEEKLY STATS:
{json.dumps(weekly_stats, indent=2, default=str)}

{weights_block}
INSTRUCTIONS:
Review the week's training data and update the program. You MUST:
1. Preserve the exact same markdown structure and section headings
2. Keep core goals and safety guardrails unless data strongly suggests changes
3. Update the "# Coach Notes" section with observations from this week
4. Update "# Milestones" - check off any achieved, add new ones if appropriate
5. Evaluate phase transition: should the client stay in the current phase, advance, or deload?
   - If advancing: update "# Current Phase" to the next phase from "# Available Phases"
   - If deloading: update "# Current Phase" to deload parameters
   - If staying: increment the week number in "# Current Phase"
6. Adjust the weekly template if the data suggests changes (e.g., client consistently skipping a day)
7. Update rep ranges, intensity, or volume in "# Current Phase" if warranted

Return ONLY the complete updated program markdown. No code fences, no preamble."""


class WeeklyReviewOrchestrator:
    def __init__(
        self,
        store: TrainerStore,
        completion_client: TextCompletionClient,
        projector: CalendarProjector,
        model: Optional[str] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.completion_client = completion_client
        self.projector = projector
        self.model = model
        self.max_tokens = max_tokens
        self.clock = clock

    async def get_week_session_summaries(
        self,
        user_id: UUID,
        week_start: datetime,
        week_end: datetime,
    ) -> List[Dict[str, Any]]:
        sessions = await self.store.list_completed_workouts(user_id, week_start, week_end)
        return [
            {
                "session_id": str(session.id),
                "date": session.started_at.isoformat() if session.started_at else None,
                "summary": session.summary_json or None,
            }
            for session in sessions
        ]

    async def rewrite_program(
        self,
        current_program: TrainerProgram,
        week_summaries: List[Dict[str, Any]],
        weekly_stats: WeeklyStats,
        weights_profile: Any = None,
    ) -> str:
        """Rewritten program markdown, fences stripped. Raises ProgramRewriteError."""
        prompt = build_rewrite_prompt(
            current_program.program_markdown or "",
            week_summaries,
            weekly_stats.model_dump(mode="json"),
            format_profile_for_prompt(weights_profile),
        )
        text = await self.completion_client.complete(
            prompt,
            system=SYSTEM_PROMPT,
            max_tokens=self.max_tokens,
            model=self.model,
        )

        markdown = strip_code_fences(text)
        if not markdown or not has_markdown_heading(markdown):
            logger.warning(
                f"[weekly-review] Unusable rewrite for program {current_program.id} "
                f"({len(markdown)} chars)"
            )
            raise ProgramRewriteError("Failed to generate updated program markdown")
        return markdown

    async def save_new_program_version(self, user_id: UUID, new_markdown: str) -> TrainerProgram:
        """
        Bump the active program's version with the new markdown.

        A missing active program here is a data-integrity problem, not a
        steady state, so it raises.
        """
        program = await self.store.get_active_program(user_id)
        if program is None:
            raise MissingActiveProgramError(user_id)

        next_version = (program.version or 0) + 1
        await self.store.update_program(program.id, program_markdown=new_markdown, version=next_version)
        await self.store.upsert_active_pointer(user_id, program.id, next_version)
        await self.store.insert_program_event(
            program.id,
            "weekly_review",
            {"version": next_version, "markdown_length": len(new_markdown)},
        )
        return await self.store.get_program(program.id)

    async def run_weekly_review(self, user_id: UUID) -> Dict[str, Any]:
        logger.info(f"[weekly-review] Starting review for user {user_id}")
        t0 = time.monotonic()

        week_start, week_end = get_current_week_bounds(self.clock())

        week_summaries, weekly_stats, current_program, weights_profile = await asyncio.gather(
            self.get_week_session_summaries(user_id, week_start, week_end),
            calculate_weekly_stats(self.store, user_id, week_start, week_end),
            self.store.get_active_program(user_id),
            get_latest_profile(self.store, user_id),
        )
        logger.info(
            f"[weekly-review] Data gathered in {int((time.monotonic() - t0) * 1000)}ms - "
            f"{len(week_summaries)} sessions"
        )

        if not week_summaries:
            logger.info(f"[weekly-review] No sessions this week for user {user_id} - skipping")
            return {"skipped": True, "reason": "no_sessions"}

        if current_program is None:
            logger.info(f"[weekly-review] No active program for user {user_id} - skipping")
            return {"skipped": True, "reason": "no_active_program"}

        t_rewrite = time.monotonic()
        new_markdown = await self.rewrite_program(current_program, week_summaries, weekly_stats, weights_profile)
        logger.info(f"[weekly-review] Program rewritten in {int((time.monotonic() - t_rewrite) * 1000)}ms")

        program = await self.save_new_program_version(user_id, new_markdown)
        projection = await self.projector.regenerate_weekly_calendar(user_id, new_markdown)

        logger.info(
            f"[weekly-review] Complete for user {user_id} in {int((time.monotonic() - t0) * 1000)}ms"
        )
        return {
            "skipped": False,
            "program_version": program.version,
            "projection": projection,
            "weekly_stats": weekly_stats.model_dump(mode="json"),
        }

    async def get_active_users(self) -> List[UUID]:
        return await self.store.list_active_program_user_ids()

    async def check_and_run_catch_up_review(self, user_id: UUID) -> Dict[str, Any]:
        """Re-project the current program when the user has nothing upcoming."""
        if await self.store.has_upcoming_workout(user_id, self.clock()):
            return {"regenerated": False, "reason": "has_upcoming_events"}

        logger.info(f"[weekly-review] No upcoming events for user {user_id} - running catch-up review")

        program = await self.store.get_active_program(user_id)
        if program is None:
            return {"regenerated": False, "reason": "no_active_program"}

        projection = await self.projector.regenerate_weekly_calendar(user_id, program.program_markdown)
        return {"regenerated": True, "projection": projection}
