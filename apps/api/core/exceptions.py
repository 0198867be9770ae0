"""
Custom exception classes and error helpers.

Domain errors carry a stable `error_code` so batch callers and any outer
layer can map them consistently. Storage errors are SQLAlchemy exceptions
and are never wrapped.
"""
from typing import Optional

from sqlalchemy.exc import IntegrityError

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION_SQLSTATE = "23505"


class TrainerError(Exception):
    """Base exception with consistent structure."""

    error_code = "TRAINER_ERROR"

    def __init__(self, detail: str, error_code: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if error_code:
            self.error_code = error_code


class NotFoundError(TrainerError):
    """Resource not found."""

    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier):
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class MissingActiveProgramError(TrainerError):
    """A write needed the user's active program and there is none."""

    error_code = "NO_ACTIVE_PROGRAM"

    def __init__(self, user_id):
        super().__init__(f"No active program found for user {user_id}")
        self.user_id = user_id


class LLMOutputParseError(TrainerError):
    """Model output could not be turned into the expected shape."""

    error_code = "LLM_OUTPUT_PARSE_ERROR"


class SynthesisParseError(LLMOutputParseError):
    """Baseline synthesis response was not a parseable JSON object."""

    error_code = "SYNTHESIS_PARSE_ERROR"


class ProgramRewriteError(LLMOutputParseError):
    """Weekly rewrite response was empty or had no markdown heading."""

    error_code = "PROGRAM_REWRITE_ERROR"


def is_unique_violation(exc: BaseException) -> bool:
    """
    True when `exc` is a uniqueness-constraint violation.

    PostgreSQL drivers expose SQLSTATE 23505 (`pgcode` on psycopg,
    `sqlstate` on asyncpg); SQLite only reports it in the message.
    """
    if not isinstance(exc, IntegrityError):
        return False
    orig = getattr(exc, "orig", None)
    for attr in ("pgcode", "sqlstate"):
        if getattr(orig, attr, None) == UNIQUE_VIOLATION_SQLSTATE:
            return True
    # asyncpg errors arrive wrapped by the SQLAlchemy adapter
    cause = getattr(orig, "__cause__", None)
    if getattr(cause, "sqlstate", None) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    message = str(orig if orig is not None else exc)
    return "UNIQUE constraint failed" in message or "duplicate key value" in message
