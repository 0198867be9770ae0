"""
Text Completion Client

Thin wrapper around the Anthropic Messages API: one system instruction,
one user message, first text block back. The client is constructed
explicitly and injected into the services that need it.
"""

import logging
import time
from typing import Any, Optional

from anthropic import AsyncAnthropic

logger = logging.getLogger(__name__)


class TextCompletionClient:
    """
    Async text completion over an Anthropic-style `messages.create`.

    `client` may be any object exposing an awaitable
    `messages.create(model=, max_tokens=, system=, messages=)`.
    """

    def __init__(self, client: Any, default_model: str):
        self.client = client
        self.default_model = default_model

    async def complete(
        self,
        prompt: str,
        *,
        system: str,
        max_tokens: int,
        model: Optional[str] = None,
    ) -> str:
        model = model or self.default_model
        started = time.monotonic()
        response = await self.client.messages.create(
            model=model,
            max_tokens=max_tokens,
            system=[{"type": "text", "text": system}],
            messages=[{"role": "user", "content": [{"type": "text", "text": prompt}]}],
        )

        text = ""
        for block in response.content:
            if getattr(block, "type", None) == "text":
                text = block.text
                break

        usage = getattr(response, "usage", None)
        logger.info(
            f"Text completion: model={model}, "
            f"input_tokens={getattr(usage, 'input_tokens', None)}, "
            f"output_tokens={getattr(usage, 'output_tokens', None)}, "
            f"elapsed_ms={int((time.monotonic() - started) * 1000)}"
        )
        return text


def build_text_completion_client(api_key: Optional[str], model: str) -> TextCompletionClient:
    """Construct the production client. `api_key=None` lets the SDK read ANTHROPIC_API_KEY."""
    return TextCompletionClient(AsyncAnthropic(api_key=api_key), default_model=model)
