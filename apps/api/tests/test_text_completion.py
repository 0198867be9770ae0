"""
Tests for the Anthropic-backed text completion client.
"""

import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from services.text_completion import TextCompletionClient, build_text_completion_client


def _response(*blocks, usage=None):
    return SimpleNamespace(content=list(blocks), usage=usage or SimpleNamespace(input_tokens=10, output_tokens=5))


@pytest.fixture
def sdk_client():
    client = MagicMock()
    client.messages.create = AsyncMock()
    return client


class TestComplete:
    @pytest.mark.asyncio
    async def test_sends_single_system_and_user_message(self, sdk_client):
        sdk_client.messages.create.return_value = _response(SimpleNamespace(type="text", text="{}"))
        client = TextCompletionClient(sdk_client, default_model="claude-haiku-4-5")

        await client.complete("summarize", system="Return JSON only.", max_tokens=512)

        sdk_client.messages.create.assert_awaited_once_with(
            model="claude-haiku-4-5",
            max_tokens=512,
            system=[{"type": "text", "text": "Return JSON only."}],
            messages=[{"role": "user", "content": [{"type": "text", "text": "summarize"}]}],
        )

    @pytest.mark.asyncio
    async def test_model_override(self, sdk_client):
        sdk_client.messages.create.return_value = _response(SimpleNamespace(type="text", text="ok"))
        client = TextCompletionClient(sdk_client, default_model="claude-haiku-4-5")

        await client.complete("p", system="s", max_tokens=10, model="claude-sonnet-4-5")

        assert sdk_client.messages.create.await_args.kwargs["model"] == "claude-sonnet-4-5"

    @pytest.mark.asyncio
    async def test_returns_first_text_block(self, sdk_client):
        sdk_client.messages.create.return_value = _response(
            SimpleNamespace(type="thinking", thinking="..."),
            SimpleNamespace(type="text", text="# Plan"),
            SimpleNamespace(type="text", text="ignored"),
        )
        client = TextCompletionClient(sdk_client, default_model="m")

        assert await client.complete("p", system="s", max_tokens=10) == "# Plan"

    @pytest.mark.asyncio
    async def test_no_text_block_gives_empty_string(self, sdk_client):
        sdk_client.messages.create.return_value = _response()
        client = TextCompletionClient(sdk_client, default_model="m")

        assert await client.complete("p", system="s", max_tokens=10) == ""

    @pytest.mark.asyncio
    async def test_sdk_errors_propagate(self, sdk_client):
        sdk_client.messages.create.side_effect = TimeoutError("upstream timeout")
        client = TextCompletionClient(sdk_client, default_model="m")

        with pytest.raises(TimeoutError):
            await client.complete("p", system="s", max_tokens=10)


class TestBuildClient:
    def test_wraps_async_anthropic(self):
        client = build_text_completion_client("sk-test", "claude-haiku-4-5")

        assert client.default_model == "claude-haiku-4-5"
        assert type(client.client).__name__ == "AsyncAnthropic"
