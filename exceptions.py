"""Quiz error taxonomy shared by the engine and the HTTP layer."""
from enum import Enum


class ErrorCode(str, Enum):
    """Stable machine-readable error codes."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_SELECTION = "INVALID_SELECTION"
    BOUNDARY = "BOUNDARY"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    PERSISTENCE_UNAVAILABLE = "PERSISTENCE_UNAVAILABLE"


class QuizError(Exception):
    """Base class for quiz errors.

    Carries the HTTP status code and detail message the API answers with.
    """

    status_code = 500
    error_code = ErrorCode.NOT_FOUND
    default_detail = "Quiz error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFoundError(QuizError):
    """Exam, category or filter result does not exist."""

    status_code = 404
    error_code = ErrorCode.NOT_FOUND
    default_detail = "Exam not found"


class InvalidSelectionError(QuizError):
    """Answer references a missing option or there is no current question."""

    status_code = 400
    error_code = ErrorCode.INVALID_SELECTION
    default_detail = "Invalid answer selection"


class BoundaryError(QuizError):
    """Navigation past either end of the working set. Callers ignore it."""

    status_code = 409
    error_code = ErrorCode.BOUNDARY
    default_detail = "No question in that direction"


class AuthRequiredError(QuizError):
    """Training exams requested without an open training gate."""

    status_code = 401
    error_code = ErrorCode.AUTH_REQUIRED
    default_detail = "Training code required"


class PersistenceUnavailable(QuizError):
    """Progress store failed. Never surfaced to the user as a hard failure."""

    status_code = 503
    error_code = ErrorCode.PERSISTENCE_UNAVAILABLE
    default_detail = "Could not save progress, continuing without saving"
