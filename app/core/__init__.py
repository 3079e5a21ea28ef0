"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by the domain apps. Business logic
does not belong here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Managers (import from core.managers):
    - SoftDeleteQuerySet: active() filter

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - ErrorKind: Closed enumeration of failure categories
    - BaseApplicationError and one subclass per ErrorKind

HTTP (import from core.exception_handlers):
    - api_exception_handler, error_response, status_for_kind

Protocols (import from core.protocols):
    - UserDirectory, PresenceBackend, EventSink, UserInfo

Decorators (import from core.decorators):
    - infrastructure_errors: DatabaseError -> InfrastructureError/ConflictError

Helpers (import from core.helpers):
    - calculate_pagination, clamp, start_of_local_day, load_collaborator

Note:
    Django models, managers and anything needing settings at import time are
    NOT imported here. Import them directly from their modules.
"""

from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ErrorKind,
    InfrastructureError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .protocols import EventSink, PresenceBackend, UserDirectory, UserInfo
from .services import BaseService, ServiceResult

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "ErrorKind",
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    "InfrastructureError",
    # Protocols
    "UserDirectory",
    "PresenceBackend",
    "EventSink",
    "UserInfo",
]
