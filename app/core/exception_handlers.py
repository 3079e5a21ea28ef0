"""
HTTP translation of application errors.

ErrorKind is mapped to an HTTP status in exactly one place. Views return
error_response(result) for failed ServiceResults; raised application
errors reach api_exception_handler, which DRF calls for every exception
escaping a view.

Configured in settings:
    REST_FRAMEWORK = {
        "EXCEPTION_HANDLER": "core.exception_handlers.api_exception_handler",
    }
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError, ErrorKind, InfrastructureError

if TYPE_CHECKING:
    from core.services import ServiceResult

logger = logging.getLogger(__name__)

ERROR_KIND_STATUS = {
    ErrorKind.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INFRASTRUCTURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for_kind(kind: ErrorKind | None) -> int:
    """Return the HTTP status for an error kind (400 when unknown)."""
    return ERROR_KIND_STATUS.get(kind, status.HTTP_400_BAD_REQUEST)


def error_response(result: ServiceResult) -> Response:
    """Build the HTTP response for a failed ServiceResult."""
    return Response(result.to_response(), status=status_for_kind(result.error_kind))


def api_exception_handler(exc, context):
    """
    DRF exception handler aware of the application error hierarchy.

    DRF's own exceptions (validation, authentication, throttling) keep the
    default handling. A raw DatabaseError that escaped a view is reported
    as an infrastructure failure.
    """
    if isinstance(exc, DatabaseError):
        logger.error(f"Unhandled store failure: {exc}", exc_info=True)
        exc = InfrastructureError(
            "The data store is unavailable",
            error_code="STORE_UNAVAILABLE",
        )

    if isinstance(exc, BaseApplicationError):
        return Response(exc.to_dict(), status=status_for_kind(exc.kind))

    return exception_handler(exc, context)
