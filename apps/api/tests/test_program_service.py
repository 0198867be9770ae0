"""
Tests for program creation, activation and the active-program pointer.
"""

import pytest
from uuid import uuid4

from core.exceptions import NotFoundError
from services.program_service import ProgramService


@pytest.fixture
def programs(store):
    return ProgramService(store)


class TestCreateProgram:
    @pytest.mark.asyncio
    async def test_creates_draft_version_one_with_rendered_markdown(self, programs, user_id, sample_program_json):
        program = await programs.create_program(user_id, sample_program_json)

        assert program.status == "draft"
        assert program.version == 1
        assert program.program_markdown.startswith("# Your Training Program")
        events = await programs.list_program_events(program.id)
        assert [e.event_type for e in events] == ["draft"]

    @pytest.mark.asyncio
    async def test_supplied_markdown_is_kept(self, programs, user_id, sample_program_json):
        program = await programs.create_program(user_id, sample_program_json, "# Custom\nBody")
        assert program.program_markdown == "# Custom\nBody"

    @pytest.mark.asyncio
    async def test_draft_is_not_active(self, programs, user_id, sample_program_json):
        await programs.create_program(user_id, sample_program_json)
        assert await programs.get_active_program(user_id) is None


class TestActivateProgram:
    @pytest.mark.asyncio
    async def test_activation_sets_status_and_pointer(self, programs, store, user_id, sample_program_json):
        program = await programs.create_program(user_id, sample_program_json)

        activated = await programs.activate_program(program.id)

        assert activated.status == "active"
        assert activated.active_from is not None
        pointer = await store.get_active_pointer(user_id)
        assert pointer.program_id == program.id
        assert pointer.program_version == 1
        events = await programs.list_program_events(program.id)
        assert [e.event_type for e in events] == ["draft", "activate"]

    @pytest.mark.asyncio
    async def test_activating_another_program_moves_pointer(self, programs, user_id, sample_program_json):
        first = await programs.create_program(user_id, sample_program_json)
        second = await programs.create_program(user_id, {**sample_program_json, "coach_cues": []})

        await programs.activate_program(first.id)
        await programs.activate_program(second.id)

        active = await programs.get_active_program(user_id)
        assert active.id == second.id

    @pytest.mark.asyncio
    async def test_activate_missing_program_raises(self, programs):
        with pytest.raises(NotFoundError):
            await programs.activate_program(uuid4())


class TestActiveUsers:
    @pytest.mark.asyncio
    async def test_lists_only_users_with_active_program(self, programs, sample_program_json):
        active_user, draft_user = uuid4(), uuid4()
        program = await programs.create_program(active_user, sample_program_json)
        await programs.activate_program(program.id)
        await programs.create_program(draft_user, sample_program_json)

        assert await programs.list_active_program_users() == [active_user]
