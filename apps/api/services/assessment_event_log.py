"""
Assessment Event Log

Append-only, per-session log with strictly increasing sequence numbers.

The next number is read as max(sequence_number) + 1 and the insert relies
on UNIQUE(session_id, sequence_number) as a compare-and-swap: a writer that
loses the race gets a uniqueness violation, sleeps a random short delay and
tries again with a fresh max. Duplicates are impossible; gaps are tolerated.
"""

import asyncio
import logging
import random
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from core.exceptions import is_unique_violation
from models import AssessmentEvent
from services.trainer_store import TrainerStore

logger = logging.getLogger(__name__)

EVENT_TYPES = ("step_result", "skip", "baseline_generated")

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_MAX_JITTER_SECONDS = 0.05


class AssessmentEventLog:
    def __init__(
        self,
        store: TrainerStore,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        max_jitter_seconds: float = DEFAULT_MAX_JITTER_SECONDS,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.store = store
        self.max_attempts = max_attempts
        self.max_jitter_seconds = max_jitter_seconds

    async def append(
        self,
        session_id: UUID,
        event_type: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> AssessmentEvent:
        """
        Append one event and return the stored row.

        Non-uniqueness storage errors propagate on the first occurrence.
        When every attempt collides, the last IntegrityError is re-raised.
        """
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown assessment event type: {event_type}")

        last_error: Optional[IntegrityError] = None
        for attempt in range(1, self.max_attempts + 1):
            current_max = await self.store.max_event_sequence(session_id)
            sequence_number = (current_max or 0) + 1
            try:
                return await self.store.insert_assessment_event(
                    session_id, sequence_number, event_type, payload or {}
                )
            except IntegrityError as e:
                if not is_unique_violation(e):
                    raise
                last_error = e
                logger.debug(
                    f"Sequence conflict on session {session_id} "
                    f"(seq={sequence_number}, attempt {attempt}/{self.max_attempts})"
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(random.uniform(0, self.max_jitter_seconds))

        logger.warning(
            f"Event append for session {session_id} exhausted {self.max_attempts} attempts"
        )
        raise last_error

    async def list_events(self, session_id: UUID) -> List[AssessmentEvent]:
        return await self.store.list_assessment_events(session_id)
