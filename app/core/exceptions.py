"""Typed failures raised by the progression engine and service."""

from typing import Any, Dict, Optional


class ProgressionError(Exception):
    """Base class for all progression errors."""

    status_code = 500
    error_code = "progression_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class InvalidInputError(ProgressionError):
    """Malformed or out-of-range arguments."""

    status_code = 422
    error_code = "invalid_input"


class NotFoundError(ProgressionError):
    """Requested learner state does not exist."""

    status_code = 404
    error_code = "not_found"


class DuplicateEventError(ProgressionError):
    """An event id was already applied for this learner."""

    status_code = 409
    error_code = "duplicate_event"


class ExternalUnavailableError(ProgressionError):
    """The content generator failed, timed out or returned garbage."""

    status_code = 503
    error_code = "content_generator_unavailable"
