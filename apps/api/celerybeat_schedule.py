"""
Celery Beat Schedule Configuration

Defines periodic tasks that run on a schedule.
"""

from celery.schedules import crontab

# Schedule configuration
beat_schedule = {
    # Weekly program review - every Sunday at 23:00 UTC, after the
    # training week closes. Rewrites each active program and re-projects
    # the calendar.
    'run-weekly-reviews': {
        'task': 'tasks.run_all_weekly_reviews',
        'schedule': crontab(hour=23, minute=0, day_of_week=0),  # Sunday
    },
}
