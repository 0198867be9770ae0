"""
Assessment Flow

Fixed, ordered onboarding assessment. A session moves through the steps
one at a time on result submission or skip; every transition is recorded
in the assessment event log. The final step is terminal: reaching it is
the cue to run baseline synthesis.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple
from uuid import UUID

from core.exceptions import NotFoundError
from models import AssessmentEvent, AssessmentSession, AssessmentStepResult
from services.assessment_event_log import AssessmentEventLog
from services.trainer_store import TrainerStore

logger = logging.getLogger(__name__)

DEFAULT_SKIP_REASON = "not specified"

STEP_KINDS = ("info", "question", "movement", "timer", "complete")


@dataclass(frozen=True)
class AssessmentStep:
    id: str
    title: str
    type: str
    prompt: str
    options: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        data = {"id": self.id, "title": self.title, "type": self.type, "prompt": self.prompt}
        if self.options:
            data["options"] = list(self.options)
        return data


ASSESSMENT_STEPS: Tuple[AssessmentStep, ...] = (
    AssessmentStep("B0_intro", "Welcome", "info",
                   "Find a clear space to move. We will run a quick baseline check."),
    AssessmentStep("B1_new_pain_check", "Pain check", "question",
                   "Any new aches or pains today that affect movement?", ("No", "Yes")),
    AssessmentStep("B2_squat_5reps", "Squat pattern", "movement",
                   "Perform 5 bodyweight squats. Then answer the prompts."),
    AssessmentStep("B3_single_leg_balance", "Balance", "timer",
                   "Hold single-leg balance for 20s on each side."),
    AssessmentStep("B4_overhead_reach_wall", "Overhead reach", "movement",
                   "Stand against a wall and reach overhead."),
    AssessmentStep("B5_toe_touch", "Toe touch", "movement",
                   "Reach toward your toes and note how far you get."),
    AssessmentStep("B6_pushup_position_hold_15s", "Push-up hold", "timer",
                   "Hold push-up position for 15 seconds."),
    AssessmentStep("B7_pushups_amrap", "Push-ups", "question",
                   "How many push-ups can you do with good form?"),
    AssessmentStep("B8_squat_endurance_60s", "Squat endurance", "timer",
                   "Do squats for 60 seconds and record count."),
    AssessmentStep("B9_plank_hold", "Plank hold", "timer",
                   "Hold a plank as long as comfortable."),
    AssessmentStep("B10_cardiovascular_check", "Cardio check", "question",
                   "Choose jumping jacks (20) or march in place (30s). How did it feel?"),
    AssessmentStep("B11_tight_areas", "Tight areas", "question",
                   "Which areas feel tight today?"),
    AssessmentStep("B12_weak_areas", "Weak areas", "question",
                   "Which areas feel weak or unstable?"),
    AssessmentStep("B13_coordination", "Coordination", "question",
                   "How coordinated do you feel today?"),
    AssessmentStep("B14_recovery_time", "Recovery time", "question",
                   "How long do you typically need to recover after a workout?"),
    AssessmentStep("B15_complete", "Complete", "complete", "Assessment complete."),
)

_STEP_INDEX = {step.id: i for i, step in enumerate(ASSESSMENT_STEPS)}


def list_steps() -> List[AssessmentStep]:
    return list(ASSESSMENT_STEPS)


def get_step(step_id: str) -> Optional[AssessmentStep]:
    index = _STEP_INDEX.get(step_id)
    return ASSESSMENT_STEPS[index] if index is not None else None


def get_step_index(step_id: str) -> int:
    """Position in the fixed list, or -1 for an unknown id."""
    return _STEP_INDEX.get(step_id, -1)


def get_next_step(step_id: str) -> Optional[AssessmentStep]:
    """
    Step following `step_id`, or None.

    None covers both the terminal step and an id that is not in the list;
    callers treat either as "no transition".
    """
    index = get_step_index(step_id)
    if index < 0 or index + 1 >= len(ASSESSMENT_STEPS):
        return None
    return ASSESSMENT_STEPS[index + 1]


@dataclass
class StepSubmission:
    result: AssessmentStepResult
    next_step: Optional[AssessmentStep]


class AssessmentService:
    def __init__(self, store: TrainerStore, event_log: AssessmentEventLog):
        self.store = store
        self.event_log = event_log

    async def get_session(self, session_id: UUID) -> AssessmentSession:
        session = await self.store.get_assessment_session(session_id)
        if session is None:
            raise NotFoundError("Assessment session", session_id)
        return session

    async def get_or_create_session(self, user_id: UUID) -> AssessmentSession:
        """
        Return the user's in-progress session, creating one at the first step.

        Not transactional: two concurrent first calls can both create a
        session. The duplicate is harmless and left alone.
        """
        existing = await self.store.find_in_progress_session(user_id)
        if existing is not None:
            return existing

        session = await self.store.create_assessment_session(user_id, ASSESSMENT_STEPS[0].id)
        logger.info(f"Created assessment session {session.id} for user {user_id}")
        return session

    async def submit_step_result(self, session_id: UUID, step_id: str, result: Any) -> StepSubmission:
        await self.event_log.append(session_id, "step_result", {"step_id": step_id, "result": result})
        stored = await self.store.insert_step_result(session_id, step_id, result)
        next_step = await self._advance(session_id, step_id)
        return StepSubmission(result=stored, next_step=next_step)

    async def skip_step(
        self,
        session_id: UUID,
        step_id: str,
        reason: Optional[str] = None,
    ) -> Optional[AssessmentStep]:
        await self.event_log.append(
            session_id, "skip", {"step_id": step_id, "reason": reason or DEFAULT_SKIP_REASON}
        )
        return await self._advance(session_id, step_id)

    async def list_events(self, session_id: UUID) -> List[AssessmentEvent]:
        return await self.event_log.list_events(session_id)

    async def _advance(self, session_id: UUID, step_id: str) -> Optional[AssessmentStep]:
        if get_step_index(step_id) < 0:
            logger.warning(f"Unknown assessment step '{step_id}' on session {session_id}; not advancing")
            return None

        next_step = get_next_step(step_id)
        if next_step is None:
            # Terminal step: current_step_id stays put
            return None

        await self.store.update_assessment_session(session_id, current_step_id=next_step.id)
        logger.info(f"Assessment session {session_id}: {step_id} -> {next_step.id}")
        return next_step
