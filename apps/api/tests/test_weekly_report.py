"""
Tests for weekly report generation and history.
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from services.weekly_report import (
    ACTIVE_FOCUS,
    ACTIVE_WINS,
    IDLE_FOCUS,
    IDLE_WINS,
    WeeklyReportService,
    sanitize_limit,
    start_of_week,
)

MONDAY = datetime(2026, 2, 16, tzinfo=timezone.utc)


@pytest.fixture
def reports(store, fixed_clock):
    return WeeklyReportService(store, clock=fixed_clock)


class TestHelpers:
    def test_start_of_week(self):
        assert start_of_week(datetime(2026, 2, 18, 15, 30)) == date(2026, 2, 16)
        assert start_of_week(datetime(2026, 2, 16)) == date(2026, 2, 16)

    @pytest.mark.parametrize("value, expected", [
        (5, 5),
        ("12", 12),
        (0, 8),
        (-3, 8),
        ("lots", 8),
        (None, 8),
        (500, 52),
    ])
    def test_sanitize_limit(self, value, expected):
        assert sanitize_limit(value) == expected


class TestGenerateWeeklyReport:
    @pytest.mark.asyncio
    async def test_active_week(self, reports, user_id, add_workout):
        await add_workout(user_id, MONDAY + timedelta(hours=7), completed_at=MONDAY + timedelta(hours=8))
        await add_workout(user_id, MONDAY + timedelta(days=2, hours=7), completed_at=MONDAY + timedelta(days=2, hours=8))

        report = await reports.generate_weekly_report(user_id)

        assert report.week_start == date(2026, 2, 16)
        assert report.report_json == {
            "week_start": "2026-02-16",
            "sessions_completed": 2,
            "wins": ACTIVE_WINS,
            "focus": ACTIVE_FOCUS,
        }

    @pytest.mark.asyncio
    async def test_idle_week(self, reports, user_id):
        report = await reports.generate_weekly_report(user_id)

        assert report.report_json["sessions_completed"] == 0
        assert report.report_json["wins"] == IDLE_WINS
        assert report.report_json["focus"] == IDLE_FOCUS

    @pytest.mark.asyncio
    async def test_window_is_by_completion_and_excludes_next_monday(self, reports, user_id, add_workout):
        # Started last Sunday, finished this Monday: counts for this week
        await add_workout(user_id, MONDAY - timedelta(hours=1), completed_at=MONDAY + timedelta(minutes=20))
        # Finished exactly at the start of next week: does not count
        await add_workout(user_id, MONDAY + timedelta(days=6, hours=23), completed_at=MONDAY + timedelta(days=7))
        await add_workout(user_id, MONDAY + timedelta(hours=9), status="abandoned")

        report = await reports.generate_weekly_report(user_id)

        assert report.report_json["sessions_completed"] == 1

    @pytest.mark.asyncio
    async def test_explicit_week_start(self, reports, user_id, add_workout):
        previous_monday = MONDAY - timedelta(days=7)
        await add_workout(user_id, previous_monday + timedelta(hours=6), completed_at=previous_monday + timedelta(hours=7))

        report = await reports.generate_weekly_report(user_id, week_start=previous_monday.date())

        assert report.week_start == date(2026, 2, 9)
        assert report.report_json["sessions_completed"] == 1


class TestListReports:
    @pytest.mark.asyncio
    async def test_newest_first_and_limited(self, reports, user_id):
        for weeks_back in range(4):
            await reports.generate_weekly_report(user_id, week_start=MONDAY - timedelta(days=7 * weeks_back))

        recent = await reports.list_reports(user_id, limit=2)

        assert [r.week_start for r in recent] == [date(2026, 2, 16), date(2026, 2, 9)]

    @pytest.mark.asyncio
    async def test_invalid_limit_uses_default(self, reports, user_id):
        for weeks_back in range(10):
            await reports.generate_weekly_report(user_id, week_start=MONDAY - timedelta(days=7 * weeks_back))

        assert len(await reports.list_reports(user_id, limit="all")) == 8
