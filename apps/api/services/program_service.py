"""
Program Service

Creation, activation and lookup of versioned training programs. The
active-program pointer (one row per user) names the program the calendar
and the weekly review work against.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from core.exceptions import NotFoundError
from models import TrainerProgram, TrainerProgramEvent
from services.program_document import program_to_markdown
from services.trainer_store import TrainerStore

logger = logging.getLogger(__name__)


class ProgramService:
    def __init__(self, store: TrainerStore):
        self.store = store

    async def create_program(
        self,
        user_id: UUID,
        program_json: Dict[str, Any],
        program_markdown: Optional[str] = None,
    ) -> TrainerProgram:
        """Store a draft at version 1; markdown is rendered when not supplied."""
        markdown = program_markdown if program_markdown is not None else program_to_markdown(program_json)
        program = await self.store.insert_program(user_id, program_json, markdown, status="draft", version=1)
        await self.store.insert_program_event(program.id, "draft", {"version": 1})
        return program

    async def get_program(self, program_id: UUID) -> TrainerProgram:
        program = await self.store.get_program(program_id)
        if program is None:
            raise NotFoundError("Program", program_id)
        return program

    async def get_active_program(self, user_id: UUID) -> Optional[TrainerProgram]:
        return await self.store.get_active_program(user_id)

    async def activate_program(self, program_id: UUID) -> TrainerProgram:
        program = await self.get_program(program_id)
        now = datetime.now(timezone.utc)

        await self.store.update_program(program_id, status="active", active_from=now)
        await self.store.upsert_active_pointer(program.user_id, program_id, program.version)
        await self.store.insert_program_event(program_id, "activate", {"version": program.version})

        logger.info(f"Activated program {program_id} v{program.version} for user {program.user_id}")
        return await self.get_program(program_id)

    async def list_active_program_users(self) -> List[UUID]:
        return await self.store.list_active_program_user_ids()

    async def list_program_events(self, program_id: UUID) -> List[TrainerProgramEvent]:
        return await self.store.list_program_events(program_id)
