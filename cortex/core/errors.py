"""Domain exceptions and error classification utilities."""

from enum import Enum

from pydantic import BaseModel


class DatabaseError(RuntimeError):
    """Raised when a persistence operation fails."""


class RecordNotFoundError(KeyError):
    """Raised when a record ID does not exist in a collection."""


class InvalidTimeRangeError(ValueError):
    """Raised when a time slot is malformed, half-specified, or ends before it starts."""


class InvalidStateTransitionError(ValueError):
    """Raised when a user action requests a disallowed task status change."""


class ConditionalAlreadyResolvedError(ValueError):
    """Raised when resolving a conditional that already has a terminal outcome."""


class OutcomeNotFoundError(KeyError):
    """Raised when a conditional has no outcome with the requested ID."""


class NotAuthenticatedError(PermissionError):
    """Raised when a session has been cleared or has expired."""


class ErrorCategory(Enum):
    """Categories of errors surfaced to the presentation layer."""

    INVALID_TIME_RANGE = "invalid_time_range"
    INVALID_STATE_TRANSITION = "invalid_state_transition"
    ALREADY_RESOLVED = "already_resolved"
    NOT_FOUND = "not_found"
    NOT_AUTHENTICATED = "not_authenticated"
    PERSISTENCE = "persistence"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Scheduling errors
    ERR_INVALID_TIME_RANGE = "ERR_INVALID_TIME_RANGE"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"

    # Conditional errors
    ERR_CONDITIONAL_ALREADY_RESOLVED = "ERR_CONDITIONAL_ALREADY_RESOLVED"
    ERR_OUTCOME_NOT_FOUND = "ERR_OUTCOME_NOT_FOUND"

    # Lookup errors
    ERR_RECORD_NOT_FOUND = "ERR_RECORD_NOT_FOUND"

    # Session errors
    ERR_NOT_AUTHENTICATED = "ERR_NOT_AUTHENTICATED"

    # Storage errors
    ERR_DATABASE = "ERR_DATABASE"

    # Generic errors
    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


_HTTP_STATUS_BY_CODE: dict[str, int] = {
    ErrorCode.ERR_INVALID_TIME_RANGE: 422,
    ErrorCode.ERR_INVALID_STATE_TRANSITION: 422,
    ErrorCode.ERR_VALIDATION: 422,
    ErrorCode.ERR_CONDITIONAL_ALREADY_RESOLVED: 409,
    ErrorCode.ERR_OUTCOME_NOT_FOUND: 404,
    ErrorCode.ERR_RECORD_NOT_FOUND: 404,
    ErrorCode.ERR_NOT_AUTHENTICATED: 401,
    ErrorCode.ERR_DATABASE: 503,
    ErrorCode.ERR_UNKNOWN: 500,
}


def classify_error(exception: Exception) -> ErrorCategory:
    """Return the broad category of an exception."""
    if isinstance(exception, InvalidTimeRangeError):
        return ErrorCategory.INVALID_TIME_RANGE
    if isinstance(exception, InvalidStateTransitionError):
        return ErrorCategory.INVALID_STATE_TRANSITION
    if isinstance(exception, ConditionalAlreadyResolvedError):
        return ErrorCategory.ALREADY_RESOLVED
    if isinstance(exception, RecordNotFoundError | OutcomeNotFoundError):
        return ErrorCategory.NOT_FOUND
    if isinstance(exception, NotAuthenticatedError):
        return ErrorCategory.NOT_AUTHENTICATED
    if isinstance(exception, DatabaseError):
        return ErrorCategory.PERSISTENCE
    return ErrorCategory.UNKNOWN


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Domain exceptions are matched by type first; plain ``ValueError``/``KeyError``
    raised by lower layers fall back to message patterns.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    error_str = str(exception).lower()
    category = classify_error(exception)

    if category is ErrorCategory.INVALID_TIME_RANGE or "time range" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_TIME_RANGE,
            message="That time slot is not valid.",
            suggestion="Use HH:MM times and make sure the end time is after the start time.",
            severity=ErrorSeverity.LOW,
        )

    if category is ErrorCategory.INVALID_STATE_TRANSITION or "cannot transition" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_STATE_TRANSITION,
            message="This action cannot be performed in the task's current state.",
            suggestion="Blocked tasks are released automatically once their milestone or conditional clears.",
            severity=ErrorSeverity.LOW,
        )

    if category is ErrorCategory.ALREADY_RESOLVED or "already resolved" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_CONDITIONAL_ALREADY_RESOLVED,
            message="This conditional has already been resolved.",
            suggestion="Create a new conditional or unlink the affected tasks instead.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, OutcomeNotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_OUTCOME_NOT_FOUND,
            message="That outcome does not belong to this conditional.",
            suggestion="Pick one of the outcomes listed on the conditional.",
            severity=ErrorSeverity.LOW,
        )

    if category is ErrorCategory.NOT_FOUND or (isinstance(exception, KeyError) and "not found" in error_str):
        return ErrorResponse(
            code=ErrorCode.ERR_RECORD_NOT_FOUND,
            message="The requested item could not be found.",
            suggestion="It may have been deleted. Refresh the view and try again.",
            severity=ErrorSeverity.LOW,
        )

    if category is ErrorCategory.NOT_AUTHENTICATED:
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_AUTHENTICATED,
            message="Your session has ended.",
            suggestion="Log in again to continue.",
            severity=ErrorSeverity.MEDIUM,
        )

    if category is ErrorCategory.PERSISTENCE:
        return ErrorResponse(
            code=ErrorCode.ERR_DATABASE,
            message="The change could not be saved.",
            suggestion="Please try again. If the problem persists, check the database file.",
            severity=ErrorSeverity.HIGH,
        )

    if isinstance(exception, ValueError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(exception) or "The request was not valid.",
            suggestion="Check the submitted values and try again.",
            severity=ErrorSeverity.LOW,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later.",
        severity=ErrorSeverity.MEDIUM,
    )


def http_status_for(response: ErrorResponse) -> int:
    """Map an error response code to an HTTP status code."""
    return _HTTP_STATUS_BY_CODE.get(response.code, 500)
