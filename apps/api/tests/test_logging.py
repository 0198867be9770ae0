"""
Tests for structured logging setup.
"""

import json
import logging
import sys

import pytest

from core.logging import JSONFormatter, setup_logging


def _record(msg="hello", exc_info=None, **extra):
    record = logging.LogRecord("services.weekly_review", logging.INFO, __file__, 42, msg, (), exc_info)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:
    def test_core_fields(self):
        payload = json.loads(JSONFormatter().format(_record("Review complete")))

        assert payload["message"] == "Review complete"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "services.weekly_review"
        assert payload["line"] == 42
        assert "environment" in payload
        # Outside a Celery task there is no task context
        assert "task_id" not in payload

    def test_extra_fields_are_merged(self):
        payload = json.loads(JSONFormatter().format(_record(extra_fields={"user_id": "u-1", "version": 3})))
        assert payload["user_id"] == "u-1"
        assert payload["version"] == 3

    def test_exception_is_included(self):
        try:
            raise ValueError("bad markdown")
        except ValueError:
            record = _record("failed", exc_info=sys.exc_info())

        payload = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad markdown" in payload["exception"]


class TestSetupLogging:
    def test_json_handler(self, restore_root_logger):
        root = setup_logging(level="debug", json_format=True)

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_text_handler_and_repeat_calls(self, restore_root_logger):
        setup_logging(level="INFO", json_format=False)
        root = setup_logging(level="INFO", json_format=False)

        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)
