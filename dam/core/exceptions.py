from enum import StrEnum


class ErrorKind(StrEnum):
    """Closed set of error kinds surfaced by the service layer."""
    VALIDATION = "validation_error"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal_error"


class AppException(Exception):
    """Base application exception with message, status code, and optional data.

    Subclasses fix the error kind and default HTTP status; callers may
    override the status when an endpoint contract demands a different code.
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None, data: dict | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.data = data or {}
        super().__init__(self.message)


class ValidationError(AppException):
    """Malformed input."""
    kind = ErrorKind.VALIDATION
    status_code = 400


class ConflictError(AppException):
    """Resource already exists."""
    kind = ErrorKind.CONFLICT
    status_code = 400


class NotFoundError(AppException):
    """Unknown identity or resource."""
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class UnauthorizedError(AppException):
    """Bad credential or missing token."""
    kind = ErrorKind.UNAUTHORIZED
    status_code = 401


class ForbiddenError(AppException):
    """Invalid, expired, or reused token."""
    kind = ErrorKind.FORBIDDEN
    status_code = 403


class RateLimitedError(AppException):
    kind = ErrorKind.RATE_LIMITED
    status_code = 429


class InternalError(AppException):
    """Unexpected store failure."""
    kind = ErrorKind.INTERNAL
    status_code = 500
