"""Error taxonomy for the task lifecycle engine.

Every error carries an HTTP status code and a short machine-readable reason so the
API layer can surface it verbatim.
"""

from typing import Optional


class TaskEngineError(Exception):
    """Base class for errors raised by the lifecycle engine."""

    status_code: int = 400
    default_reason: str = "task_engine_error"

    def __init__(self, message: str, *, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason or self.default_reason

    def to_dict(self) -> dict:
        return {"error": self.message, "reason": self.reason}


class ValidationError(TaskEngineError):
    """Malformed status, date or recurrence input."""

    status_code = 400
    default_reason = "validation_failed"


class AuthorizationError(TaskEngineError):
    """Actor lacks rights for the requested field set."""

    status_code = 403
    default_reason = "not_authorized"


class NotFoundError(TaskEngineError):
    """Task, subtask, parent or employee does not exist."""

    status_code = 404
    default_reason = "not_found"


class StateError(TaskEngineError):
    """Operation is not legal for the current lifecycle state."""

    status_code = 409
    default_reason = "invalid_state"
