"""
Best-effort parsing of free-text model output.

Callers depend on an object with a `parse(text) -> dict` method, so a
stricter strategy can replace `BalancedBraceJsonParser` without touching
them.
"""

import json
import re
from typing import Any, Dict

from core.exceptions import LLMOutputParseError

_LEADING_FENCE = re.compile(r"^```(?:markdown|md)?[ \t]*\r?\n?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\r?\n?```\s*$")
_HEADING = re.compile(r"^#[ \t]+\S", re.MULTILINE)


class BalancedBraceJsonParser:
    """Takes the text from the first `{` to the last `}` and loads it as JSON."""

    def parse(self, text: str) -> Dict[str, Any]:
        if not text:
            raise LLMOutputParseError("Empty model response")
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            raise LLMOutputParseError("No JSON object found in model response")
        try:
            parsed = json.loads(text[start:end + 1])
        except json.JSONDecodeError as e:
            raise LLMOutputParseError(f"Invalid JSON in model response: {e}") from e
        if not isinstance(parsed, dict):
            raise LLMOutputParseError("Model response JSON is not an object")
        return parsed


def strip_code_fences(text: str) -> str:
    """Remove a wrapping ``` / ```markdown fence, if present."""
    cleaned = (text or "").strip()
    cleaned, opened = _LEADING_FENCE.subn("", cleaned, count=1)
    if opened:
        cleaned = _TRAILING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def has_markdown_heading(text: str) -> bool:
    return bool(_HEADING.search(text or ""))
