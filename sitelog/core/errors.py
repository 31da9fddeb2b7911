"""Error taxonomy for work-log operations and their user-facing responses."""

from enum import Enum

from pydantic import BaseModel


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_STORAGE = "ERR_STORAGE"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class SitelogError(Exception):
    """Base class for every error raised by the work-log core."""

    code: str = ErrorCode.ERR_UNKNOWN


class ValidationError(SitelogError):
    """Input data is missing or malformed."""

    code = ErrorCode.ERR_VALIDATION


class AuthorizationError(SitelogError):
    """The actor lacks the role or ownership the action requires."""

    code = ErrorCode.ERR_PERMISSION_DENIED


class InvalidStateError(SitelogError):
    """The action is not legal from the record's current status."""

    code = ErrorCode.ERR_INVALID_STATE_TRANSITION


class NotFoundError(SitelogError):
    """A referenced log, notification, user or project does not exist."""

    code = ErrorCode.ERR_NOT_FOUND


class StorageError(SitelogError):
    """The underlying persistence layer failed."""

    code = ErrorCode.ERR_STORAGE


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


_SUGGESTIONS: dict[type[SitelogError], tuple[str, ErrorSeverity]] = {
    ValidationError: ("Check the highlighted fields and try again.", ErrorSeverity.LOW),
    AuthorizationError: ("This action is not available for your role or account.", ErrorSeverity.MEDIUM),
    InvalidStateError: ("Refresh the log to see its current status.", ErrorSeverity.LOW),
    NotFoundError: ("The item may have been deleted. Refresh the list and try again.", ErrorSeverity.LOW),
    StorageError: ("Please try again later. If the problem persists, contact support.", ErrorSeverity.HIGH),
}


def build_error_response(exception: Exception) -> ErrorResponse:
    """Convert an exception into a structured response with a recovery suggestion.

    Args:
        exception: The exception raised while handling a request

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    for error_type, (suggestion, severity) in _SUGGESTIONS.items():
        if isinstance(exception, error_type):
            return ErrorResponse(
                code=exception.code,
                message=str(exception),
                suggestion=suggestion,
                severity=severity,
            )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )
