"""
Program Document helpers

Render a structured program to markdown and read the few scheduling facts
the calendar needs back out of a (possibly model-rewritten) markdown
document.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from schemas import ProgramDocument

DEFAULT_SESSION_DURATION_MIN = 45
DEFAULT_SESSION_INTENSITY = "moderate"
DEFAULT_DAYS_PER_WEEK = 3

_TOP_HEADING = re.compile(r"^#\s+(.+?)\s*$")
_DAY_HEADING = re.compile(r"^##\s+Day\s+(\d+)\s*:\s*(.+?)\s*$", re.IGNORECASE)
# *45 minutes — moderate intensity*  (em dash, en dash or hyphen)
_DURATION_LINE = re.compile(
    r"^\*\s*~?(\d+)\s*min(?:ute)?s?(?:\s*[—–-]\s*([A-Za-z][\w-]*)\s+intensity)?\s*\*\s*$",
    re.IGNORECASE,
)
_DAYS_PER_WEEK = re.compile(r"\*\*(\d+)\*\*\s+days?\s+per\s+week", re.IGNORECASE)


@dataclass
class MarkdownSession:
    day_number: int
    name: str
    duration_min: int = DEFAULT_SESSION_DURATION_MIN
    intensity: str = DEFAULT_SESSION_INTENSITY


def load_program_document(program_json: Union[ProgramDocument, Dict[str, Any], None]) -> ProgramDocument:
    if isinstance(program_json, ProgramDocument):
        return program_json
    return ProgramDocument.model_validate(program_json if isinstance(program_json, dict) else {})


def parse_sessions_from_markdown(markdown: Optional[str]) -> List[MarkdownSession]:
    """
    Sessions listed under `# Training Sessions` as `## Day N: Name`.

    Each day may carry a `*45 minutes — moderate intensity*` line; missing
    values fall back to 45 minutes and moderate intensity.
    """
    if not markdown:
        return []

    sessions: List[MarkdownSession] = []
    in_section = False
    current: Optional[MarkdownSession] = None

    for raw_line in markdown.splitlines():
        line = raw_line.strip()

        top = _TOP_HEADING.match(line)
        if top:
            in_section = top.group(1).strip().lower() == "training sessions"
            current = None
            continue
        if not in_section:
            continue

        day = _DAY_HEADING.match(line)
        if day:
            current = MarkdownSession(day_number=int(day.group(1)), name=day.group(2))
            sessions.append(current)
            continue

        if current is not None:
            duration = _DURATION_LINE.match(line)
            if duration:
                current.duration_min = int(duration.group(1))
                if duration.group(2):
                    current.intensity = duration.group(2).lower()

    return sessions


def parse_days_per_week(markdown: Optional[str], default: int = DEFAULT_DAYS_PER_WEEK) -> int:
    match = _DAYS_PER_WEEK.search(markdown or "")
    return int(match.group(1)) if match else default


def program_to_markdown(program_json: Union[ProgramDocument, Dict[str, Any], None]) -> str:
    """Render the structured program as the markdown document users read."""
    doc = load_program_document(program_json)
    lines: List[str] = ["# Your Training Program", ""]

    if doc.goals:
        lines.append("# Goals")
        lines.append(f"**Primary:** {doc.goals.primary or ''}")
        if doc.goals.secondary:
            lines.append(f"**Secondary:** {doc.goals.secondary}")
        lines.append(f"**Timeline:** {doc.goals.timeline_weeks or '?'} weeks")
        if doc.goals.metrics:
            lines.extend(["", "**Success Metrics:**"])
            lines.extend(f"- {m}" for m in doc.goals.metrics)
        lines.append("")

    template = doc.weekly_template
    if "weekly_template" in doc.model_fields_set:
        lines.append("# Weekly Structure")
        # Bold count so parse_days_per_week can read it back
        if template.days_per_week:
            lines.append(f"You will train **{template.days_per_week}** days per week.")
        else:
            lines.append("**Days per week:** ?")
        if template.preferred_days:
            lines.append(f"**Preferred days:** {', '.join(template.preferred_days)}")
        if template.session_types:
            lines.append(f"**Session types:** {', '.join(template.session_types)}")
        lines.append("")

    if doc.sessions:
        lines.append("# Training Sessions")
        for i, session in enumerate(doc.sessions, start=1):
            lines.append(f"## Day {i}: {session.focus or 'Workout'}")
            duration = session.duration_min or DEFAULT_SESSION_DURATION_MIN
            intensity = session.intensity or DEFAULT_SESSION_INTENSITY
            lines.append(f"*{duration} minutes — {intensity} intensity*")
            if session.equipment:
                lines.append(f"**Equipment:** {', '.join(session.equipment)}")
            if session.notes:
                lines.append(session.notes)
            lines.append("")

    if "progression" in doc.model_fields_set:
        lines.append("# Progression Plan")
        lines.append(doc.progression.strategy or "")
        if doc.progression.deload_trigger:
            lines.append(f"**Deload trigger:** {doc.progression.deload_trigger}")
        if doc.progression.time_scaling:
            lines.extend(["", "**Time scaling options:**"])
            lines.extend(f"- {t} min" for t in doc.progression.time_scaling)
        lines.append("")

    rules = doc.exercise_rules
    if rules and (rules.prefer or rules.avoid):
        lines.append("# Exercise Rules")
        if rules.prefer:
            lines.append("**Preferred:**")
            lines.extend(f"- {e}" for e in rules.prefer)
        if rules.avoid:
            lines.append("**Avoid:**")
            lines.extend(f"- {e}" for e in rules.avoid)
        lines.append("")

    if doc.guardrails:
        lines.append("# Safety Guidelines")
        if doc.guardrails.pain_scale:
            lines.append(f"**Pain management:** {doc.guardrails.pain_scale}")
        if doc.guardrails.red_flags:
            lines.append("**Red flags:**")
            lines.extend(f"- {f}" for f in doc.guardrails.red_flags)
        lines.append("")

    if doc.coach_cues:
        lines.append("# Coach Notes")
        lines.extend(f"> {c}" for c in doc.coach_cues)
        lines.append("")

    return "\n".join(lines)
