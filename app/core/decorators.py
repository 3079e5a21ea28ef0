"""
Custom decorators for service functions.

This module provides generic infrastructure decorators for:
- Translating store failures into the application error hierarchy

Usage:
    from core.decorators import infrastructure_errors

    class ConversationService(BaseService):
        @classmethod
        @infrastructure_errors
        def get_conversation(cls, conversation_id, user):
            ...
"""

from __future__ import annotations

import functools
import logging
from typing import Callable

from django.db import DatabaseError, IntegrityError

from core.exceptions import ConflictError, InfrastructureError

logger = logging.getLogger(__name__)


def infrastructure_errors(func: Callable) -> Callable:
    """
    Re-raise database failures as application errors.

    IntegrityError (a uniqueness race lost to a concurrent writer) becomes
    ConflictError. Any other DatabaseError becomes InfrastructureError.
    The original exception is kept as __cause__. Nothing is retried.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError as exc:
            logger.warning(f"Integrity conflict in {func.__qualname__}: {exc}")
            raise ConflictError(
                "The resource was modified concurrently",
                error_code="CONCURRENT_MODIFICATION",
            ) from exc
        except DatabaseError as exc:
            logger.error(f"Store failure in {func.__qualname__}: {exc}", exc_info=True)
            raise InfrastructureError(
                "The data store is unavailable",
                error_code="STORE_UNAVAILABLE",
            ) from exc

    return wrapper
