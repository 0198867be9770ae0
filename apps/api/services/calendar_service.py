"""
Calendar Service

User-facing calendar operations. Every user write marks the event
`user_modified`, which takes it out of reach of the projector.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from core.exceptions import NotFoundError
from models import CalendarEvent, PlannedSession
from schemas import CalendarEventResponse, PlannedSessionResponse
from services.trainer_store import USER_SOURCE, TrainerStore

logger = logging.getLogger(__name__)


def normalize_event(event: CalendarEvent, planned_session: Optional[PlannedSession]) -> CalendarEventResponse:
    """Event with its planned session (if any) attached."""
    response = CalendarEventResponse.model_validate(event)
    if planned_session is not None:
        response.planned_session = PlannedSessionResponse.model_validate(planned_session)
    return response


class CalendarService:
    def __init__(self, store: TrainerStore):
        self.store = store

    async def list_events(
        self,
        user_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[CalendarEventResponse]:
        events = await self.store.list_calendar_events(user_id, start, end)
        planned = await self.store.list_planned_sessions([e.id for e in events])
        return [normalize_event(e, planned.get(e.id)) for e in events]

    async def get_event(self, user_id: UUID, event_id: UUID) -> CalendarEvent:
        event = await self.store.get_calendar_event(event_id)
        if event is None or event.user_id != user_id:
            raise NotFoundError("Calendar event", event_id)
        return event

    async def create_event(
        self,
        user_id: UUID,
        start_at: datetime,
        event_type: str = "workout",
        end_at: Optional[datetime] = None,
        title: Optional[str] = None,
        notes: Optional[str] = None,
        source: str = USER_SOURCE,
        intent_json: Optional[Dict[str, Any]] = None,
    ) -> CalendarEventResponse:
        values = {
            "event_type": event_type,
            "start_at": start_at,
            "end_at": end_at,
            "title": title,
            "status": "scheduled",
            "source": source,
            "user_modified": True,
            "notes": notes,
        }
        # Only workouts carry a planned session
        intent = intent_json if intent_json and event_type == "workout" else None
        event, planned_session = await self.store.insert_calendar_event(user_id, values, intent)
        logger.info(f"User {user_id} created {event_type} event {event.id}")
        return normalize_event(event, planned_session)

    async def reschedule_event(
        self,
        user_id: UUID,
        event_id: UUID,
        start_at: datetime,
        end_at: Optional[datetime] = None,
    ) -> CalendarEvent:
        await self.get_event(user_id, event_id)
        return await self.store.update_calendar_event(
            event_id, start_at=start_at, end_at=end_at, user_modified=True
        )

    async def skip_event(self, user_id: UUID, event_id: UUID, reason: Optional[str] = None) -> CalendarEvent:
        await self.get_event(user_id, event_id)
        return await self.store.update_calendar_event(
            event_id, status="skipped", notes=reason, user_modified=True
        )

    async def complete_event(self, user_id: UUID, event_id: UUID) -> CalendarEvent:
        await self.get_event(user_id, event_id)
        return await self.store.update_calendar_event(event_id, status="completed", user_modified=True)

    async def get_planned_session(self, user_id: UUID, planned_session_id: UUID) -> PlannedSession:
        planned_session = await self.store.get_planned_session(planned_session_id)
        if planned_session is None or planned_session.user_id != user_id:
            raise NotFoundError("Planned session", planned_session_id)
        return planned_session
