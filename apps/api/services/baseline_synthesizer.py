"""
Baseline Synthesizer

Turns a finished assessment's step results into a structured baseline via
the text-completion client, stores it as a new version and closes the
session.
"""

import json
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from core.exceptions import LLMOutputParseError, SynthesisParseError
from models import AssessmentBaseline
from services.assessment_event_log import AssessmentEventLog
from services.llm_output import BalancedBraceJsonParser
from services.text_completion import TextCompletionClient
from services.trainer_store import TrainerStore

logger = logging.getLogger(__name__)

BASELINE_FIELDS = (
    "readiness",
    "strength",
    "mobility",
    "conditioning",
    "pain_flags",
    "confidence",
    "notes",
)

SYSTEM_PROMPT = "Return JSON only."

DEFAULT_MAX_TOKENS = 512


def build_synthesis_prompt(results: list) -> str:
    return (
        "You are summarizing a fitness assessment baseline. Return JSON only.\n\n"
        f"Results:\n{json.dumps(results, indent=2, default=str)}\n\n"
        "Return JSON:\n"
        "{\n"
        '  "readiness": "...",\n'
        '  "strength": "...",\n'
        '  "mobility": "...",\n'
        '  "conditioning": "...",\n'
        '  "pain_flags": ["..."],\n'
        '  "confidence": "low|medium|high",\n'
        '  "notes": "..."\n'
        "}"
    )


class BaselineSynthesizer:
    def __init__(
        self,
        store: TrainerStore,
        event_log: AssessmentEventLog,
        completion_client: TextCompletionClient,
        parser: Optional[Any] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        model: Optional[str] = None,
    ):
        self.store = store
        self.event_log = event_log
        self.completion_client = completion_client
        self.parser = parser or BalancedBraceJsonParser()
        self.max_tokens = max_tokens
        self.model = model

    async def synthesize_baseline(self, session_id: UUID) -> AssessmentBaseline:
        """
        Synthesize, store and return a new baseline version for the session.

        Raises SynthesisParseError when the response holds no parseable JSON
        object. The completion call is not retried here.
        """
        step_results = await self.store.list_step_results(session_id)
        results = [
            {"step_id": row.step_id, "result": row.result_json, "created_at": row.created_at}
            for row in step_results
        ]

        text = await self.completion_client.complete(
            build_synthesis_prompt(results),
            system=SYSTEM_PROMPT,
            max_tokens=self.max_tokens,
            model=self.model,
        )

        try:
            parsed: Dict[str, Any] = self.parser.parse(text)
        except LLMOutputParseError as e:
            logger.warning(f"Baseline synthesis parse failed for session {session_id}: {e.detail}")
            raise SynthesisParseError(f"Failed to parse baseline synthesis: {e.detail}") from e

        latest = await self.store.get_latest_baseline(session_id)
        version = (latest.version if latest else 0) + 1
        baseline = await self.store.insert_baseline(session_id, version, parsed)

        await self.event_log.append(session_id, "baseline_generated", parsed)
        await self.store.update_assessment_session(session_id, status="completed")

        logger.info(f"Baseline v{version} synthesized for assessment session {session_id}")
        return baseline

    async def get_latest_baseline(self, session_id: UUID) -> Optional[AssessmentBaseline]:
        return await self.store.get_latest_baseline(session_id)
