from __future__ import annotations

from typing import Any

from pydantic import ValidationError as PydanticValidationError


class SchedulingError(Exception):
    """Base for every failure the scheduling core surfaces to callers.

    None of these leave state behind: the unit of work is rolled back before
    the error reaches the caller.
    """

    error_code = "INVALID_ARGS"
    status_code = 400
    default_message = "Invalid request."

    def __init__(self, human_message: str | None = None, error_code: str | None = None):
        self.human_message = human_message or self.default_message
        if error_code:
            self.error_code = error_code
        super().__init__(self.human_message)

    def to_response(self) -> dict[str, Any]:
        return {
            "ok": False,
            "error_code": self.error_code,
            "human_message": self.human_message,
        }


class ValidationError(SchedulingError):
    error_code = "INVALID_ARGS"
    status_code = 400
    default_message = "Invalid request."


class NotFoundError(SchedulingError):
    error_code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found."


class ConflictError(SchedulingError):
    error_code = "TIME_CONFLICT"
    status_code = 409
    default_message = "Time conflict with existing booking or event."


class OwnershipError(SchedulingError):
    error_code = "FORBIDDEN"
    status_code = 403
    default_message = "Unauthorized."


class InvalidTransitionError(SchedulingError):
    error_code = "INVALID_STATUS_TRANSITION"
    status_code = 409
    default_message = "Booking is no longer pending."


class AuthenticationError(SchedulingError):
    error_code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Invalid credentials."


def map_validation_error(error: PydanticValidationError) -> dict[str, str]:
    return {
        "error_code": "INVALID_ARGS",
        "human_message": f"Invalid args: {error.errors()[0]['msg']}",
    }
