"""
Tests for program document rendering and markdown schedule parsing.
"""

import pytest

from fixtures.program_markdown import MINIMAL_PROGRAM_MARKDOWN, SAMPLE_PROGRAM_MARKDOWN
from schemas import ProgramDocument
from services.program_document import (
    DEFAULT_SESSION_DURATION_MIN,
    load_program_document,
    parse_days_per_week,
    parse_sessions_from_markdown,
    program_to_markdown,
)


class TestParseSessionsFromMarkdown:
    def test_sample_program_sessions(self):
        sessions = parse_sessions_from_markdown(SAMPLE_PROGRAM_MARKDOWN)

        assert [(s.day_number, s.name) for s in sessions] == [
            (1, "Upper Body Push"),
            (2, "Lower Body"),
            (3, "Upper Body Pull"),
        ]
        assert [s.duration_min for s in sessions] == [45, 60, 45]
        assert [s.intensity for s in sessions] == ["moderate", "high", "moderate"]

    def test_minimal_program(self):
        sessions = parse_sessions_from_markdown(MINIMAL_PROGRAM_MARKDOWN)
        assert len(sessions) == 1
        assert sessions[0].name == "Full Body"
        assert sessions[0].duration_min == 30
        assert sessions[0].intensity == "low"

    def test_day_headings_outside_training_sessions_are_ignored(self):
        markdown = (
            "# Notes\n"
            "## Day 1: Not A Session\n"
            "# Training Sessions\n"
            "## Day 1: Real Session\n"
            "# Milestones\n"
            "## Day 9: Also Not A Session\n"
        )
        sessions = parse_sessions_from_markdown(markdown)
        assert [s.name for s in sessions] == ["Real Session"]

    def test_missing_duration_line_uses_defaults(self):
        sessions = parse_sessions_from_markdown("# Training Sessions\n## Day 1: Mobility\nJust stretch.\n")
        assert sessions[0].duration_min == DEFAULT_SESSION_DURATION_MIN
        assert sessions[0].intensity == "moderate"

    @pytest.mark.parametrize("line, minutes, intensity", [
        ("*30 minutes – low intensity*", 30, "low"),
        ("*~50 min - high intensity*", 50, "high"),
        ("*20 minutes*", 20, "moderate"),
    ])
    def test_duration_line_variants(self, line, minutes, intensity):
        sessions = parse_sessions_from_markdown(f"# Training Sessions\n## Day 1: Any\n{line}\n")
        assert sessions[0].duration_min == minutes
        assert sessions[0].intensity == intensity

    def test_empty_markdown(self):
        assert parse_sessions_from_markdown("") == []
        assert parse_sessions_from_markdown(None) == []


class TestParseDaysPerWeek:
    def test_reads_bold_count(self):
        assert parse_days_per_week(SAMPLE_PROGRAM_MARKDOWN) == 3
        assert parse_days_per_week(MINIMAL_PROGRAM_MARKDOWN) == 5

    def test_missing_count_uses_default(self):
        assert parse_days_per_week("# Your Training Program\nTrain often.") == 3
        assert parse_days_per_week(None, default=0) == 0


class TestLoadProgramDocument:
    def test_malformed_sections_degrade_to_defaults(self):
        doc = load_program_document({
            "weekly_template": "three days",
            "sessions": [{"focus": "Push", "duration_min": "40"}, "junk", None],
            "progression": None,
            "goals": ["not", "a", "dict"],
        })
        assert doc.weekly_template.days_per_week is None
        assert len(doc.sessions) == 1
        assert doc.sessions[0].duration_min == 40
        assert doc.progression.time_scaling == []
        assert doc.goals is None

    def test_non_numeric_days_per_week_is_absent(self):
        doc = load_program_document({"weekly_template": {"days_per_week": "a few"}})
        assert doc.weekly_template.days_per_week is None

    def test_none_and_existing_documents(self):
        assert load_program_document(None).sessions == []
        doc = ProgramDocument()
        assert load_program_document(doc) is doc


class TestProgramToMarkdown:
    def test_schedule_facts_survive_round_trip(self, sample_program_json):
        markdown = program_to_markdown(sample_program_json)

        assert markdown.startswith("# Your Training Program")
        assert parse_days_per_week(markdown, default=0) == 3
        sessions = parse_sessions_from_markdown(markdown)
        assert [(s.name, s.duration_min) for s in sessions] == [("Upper Body Push", 45), ("Lower Body", 60)]

    def test_renders_optional_sections(self, sample_program_json):
        markdown = program_to_markdown({
            **sample_program_json,
            "exercise_rules": {"prefer": ["goblet squat"], "avoid": ["behind-neck press"]},
            "guardrails": {"pain_scale": "Stop above 4/10", "red_flags": ["sharp pain"]},
        })

        assert "# Goals" in markdown
        assert "**Primary:** Build upper body strength" in markdown
        assert "# Progression Plan" in markdown
        assert "- 30 min" in markdown
        assert "# Exercise Rules" in markdown
        assert "- behind-neck press" in markdown
        assert "# Safety Guidelines" in markdown
        assert "> Brace before each rep." in markdown

    def test_empty_program_renders_title_only(self):
        assert program_to_markdown({}).strip() == "# Your Training Program"
