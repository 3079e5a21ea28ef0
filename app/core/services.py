"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, business rules).
      Every failure carries an ErrorKind.
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.exceptions import ErrorKind
    from core.services import BaseService, ServiceResult

    class ConversationService(BaseService):
        @classmethod
        def get_conversation(cls, conversation_id, user) -> ServiceResult[Conversation]:
            conversation = ...
            if conversation is None:
                return ServiceResult.failure(
                    "Conversation not found",
                    error_code="CONVERSATION_NOT_FOUND",
                    kind=ErrorKind.NOT_FOUND,
                )
            return ServiceResult.success(conversation)

    # In view
    result = ConversationService.get_conversation(pk, request.user)
    if not result.success:
        return error_response(result)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

from core.exceptions import ErrorKind

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        error_kind: ErrorKind of the failure (None if successful)
        errors: Field-level errors for validation failures
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    error_kind: ErrorKind | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
        kind: ErrorKind = ErrorKind.INVALID_ARGUMENT,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
            kind: Failure category; defaults to INVALID_ARGUMENT

        Example:
            return ServiceResult.failure(
                "User is already a participant",
                error_code="ALREADY_PARTICIPANT",
                kind=ErrorKind.CONFLICT,
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            error_kind=kind,
            errors=errors,
        )

    def to_response(self) -> dict[str, Any]:
        """Convert to API response format."""
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.error_kind:
            response["error_kind"] = self.error_kind.value
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get a logger named after the service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """Execute operations in a database transaction."""
        with transaction.atomic():
            yield

