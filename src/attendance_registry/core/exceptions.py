from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    ``code`` is the stable machine-readable kind; ``message`` is for humans.
    """

    default_code = "DOMAIN_ERROR"

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    default_code = "VALIDATION_ERROR"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    default_code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden", *, code: Optional[str] = None):
        super().__init__(message, code=code)


class MonthClosedError(AuthorizationError):
    """Raised when the target month has been closed by finance."""

    default_code = "MONTH_CLOSED"

    def __init__(self, message: str = "Attendance for this month is locked", *, code: Optional[str] = None):
        super().__init__(message, code=code)


class NotFoundError(DomainError):
    default_code = "NOT_FOUND"


class ConflictError(DomainError):
    """Raised when a write collides with an existing record."""

    default_code = "CONFLICT"


class AuditWriteError(RuntimeError):
    """Raised when the audit trail could not be appended.

    Not a DomainError: it aborts the surrounding transaction, including bulk batches.
    """
