"""
Trainer Runtime

Composition root: builds the engine, store, completion client and every
service from one Settings object. Nothing else reads `settings`.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from core.config import Settings, settings as default_settings
from core.database import build_engine, build_session_factory
from services.assessment_event_log import AssessmentEventLog
from services.assessment_flow import AssessmentService
from services.baseline_synthesizer import BaselineSynthesizer
from services.calendar_projector import CalendarProjector
from services.calendar_service import CalendarService
from services.program_service import ProgramService
from services.text_completion import TextCompletionClient, build_text_completion_client
from services.trainer_store import TrainerStore
from services.weekly_report import WeeklyReportService
from services.weekly_review import WeeklyReviewOrchestrator


class TrainerRuntime:
    def __init__(
        self,
        store: TrainerStore,
        completion_client: TextCompletionClient,
        config: Settings,
        engine: Optional[AsyncEngine] = None,
    ):
        self.engine = engine
        self.store = store
        self.completion_client = completion_client

        self.event_log = AssessmentEventLog(
            store,
            max_attempts=config.EVENT_LOG_MAX_ATTEMPTS,
            max_jitter_seconds=config.EVENT_LOG_MAX_JITTER_MS / 1000,
        )
        self.assessments = AssessmentService(store, self.event_log)
        self.baselines = BaselineSynthesizer(
            store,
            self.event_log,
            completion_client,
            max_tokens=config.BASELINE_MAX_TOKENS,
            model=config.PRIMARY_MODEL,
        )
        self.programs = ProgramService(store)
        self.projector = CalendarProjector(
            store,
            horizon_days=config.CALENDAR_HORIZON_DAYS,
            default_days_per_week=config.CALENDAR_DEFAULT_DAYS_PER_WEEK,
        )
        self.calendar = CalendarService(store)
        self.weekly_review = WeeklyReviewOrchestrator(
            store,
            completion_client,
            self.projector,
            model=config.program_model,
            max_tokens=config.PROGRAM_REWRITE_MAX_TOKENS,
        )
        self.weekly_reports = WeeklyReportService(store)

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "TrainerRuntime":
        config = config or default_settings
        engine = build_engine(config.database_url, echo=config.DEBUG)
        store = TrainerStore(build_session_factory(engine))
        client = build_text_completion_client(config.ANTHROPIC_API_KEY, config.PRIMARY_MODEL)
        return cls(store, client, config, engine=engine)

    async def dispose(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()

    async def __aenter__(self) -> "TrainerRuntime":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()
