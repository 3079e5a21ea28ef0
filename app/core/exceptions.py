"""
Application exception hierarchy and the closed set of error kinds.

Every domain failure is classified by exactly one ErrorKind. Callers branch
on the kind (or on the exception class), never on the message text.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError       - ErrorKind.INVALID_ARGUMENT
    ├── NotFoundError         - ErrorKind.NOT_FOUND
    ├── PermissionDeniedError - ErrorKind.FORBIDDEN
    ├── ConflictError         - ErrorKind.CONFLICT
    └── InfrastructureError   - ErrorKind.INFRASTRUCTURE

Usage:
    from core.exceptions import ErrorKind, NotFoundError

    raise NotFoundError("Conversation not found", error_code="CONVERSATION_NOT_FOUND")

    try:
        ...
    except BaseApplicationError as e:
        if e.kind is ErrorKind.NOT_FOUND:
            ...

Note:
    Expected business failures are usually returned as
    ServiceResult.failure(..., kind=ErrorKind.X) instead of raised.
    See core.services.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class ErrorKind(str, enum.Enum):
    """Closed enumeration of failure categories."""

    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    INFRASTRUCTURE = "infrastructure"


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, metadata, etc.)
        kind: ErrorKind classifying the failure
    """

    default_error_code: str = "APPLICATION_ERROR"
    kind: ErrorKind = ErrorKind.INFRASTRUCTURE

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Conversation not found",
                "error_code": "CONVERSATION_NOT_FOUND",
                "error_kind": "not_found",
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
            "error_kind": self.kind.value,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input is malformed or contradictory.

    Example:
        raise ValidationError(
            "A private conversation needs exactly two participants",
            error_code="INVALID_PARTICIPANT_COUNT",
        )
    """

    default_error_code: str = "VALIDATION_ERROR"
    kind = ErrorKind.INVALID_ARGUMENT


class NotFoundError(BaseApplicationError):
    """
    Raised when a resource is missing or not visible to the caller.

    The two cases are deliberately indistinguishable to avoid leaking
    existence of resources the caller cannot access.
    """

    default_error_code: str = "NOT_FOUND"
    kind = ErrorKind.NOT_FOUND


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when a visible resource does not allow the requested operation.

    Example:
        raise PermissionDeniedError(
            "Only group admins can update the conversation",
            error_code="NOT_ADMIN",
        )
    """

    default_error_code: str = "PERMISSION_DENIED"
    kind = ErrorKind.FORBIDDEN


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current state.

    Use for duplicates (participant already present) and lost uniqueness
    races surfaced by the database. HTTP 409.
    """

    default_error_code: str = "CONFLICT"
    kind = ErrorKind.CONFLICT


class InfrastructureError(BaseApplicationError):
    """
    Raised when a backing store or collaborator is unavailable.

    Wraps the original exception as __cause__. Never retried internally.
    HTTP 503.
    """

    default_error_code: str = "INFRASTRUCTURE_ERROR"
    kind = ErrorKind.INFRASTRUCTURE
