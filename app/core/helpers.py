"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- Pagination metadata
- Local calendar boundaries
- Loading swappable collaborator implementations from settings

Usage:
    from core.helpers import calculate_pagination, load_collaborator

    meta = calculate_pagination(total=95, page=2, per_page=20)
    directory = load_collaborator("CHAT_USER_DIRECTORY", "authentication.directory.DjangoUserDirectory")
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any


def calculate_pagination(total: int, page: int, per_page: int) -> dict:
    """
    Calculate pagination metadata.

    The requested page is kept as-is (minimum 1) even when it lies past the
    last page, in which case the page is simply empty.

    Args:
        total: Total number of items
        page: Current page number (1-indexed)
        per_page: Items per page

    Returns:
        Dict with pagination metadata

    Example:
        calculate_pagination(total=100, page=3, per_page=20)
        # {"total": 100, "page": 3, "per_page": 20, "total_pages": 5,
        #  "has_next": True, "has_previous": True, "offset": 40}
    """
    total_pages = math.ceil(total / per_page) if per_page > 0 else 0
    page = max(1, page)

    return {
        "total": total,
        "page": page,
        "per_page": per_page,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1,
        "offset": (page - 1) * per_page,
    }


def clamp(value: int, lower: int, upper: int) -> int:
    """Clamp value into [lower, upper]."""
    return max(lower, min(value, upper))


def start_of_local_day(now: datetime | None = None) -> datetime:
    """Return local midnight (in settings.TIME_ZONE) as an aware datetime."""
    local_now = timezone.localtime(now or timezone.now())
    return local_now.replace(hour=0, minute=0, second=0, microsecond=0)


def load_collaborator(setting_name: str, default: str) -> Any:
    """
    Instantiate the class named by a dotted-path setting.

    Resolved on every call so tests can swap implementations with
    override_settings.
    """
    path = getattr(settings, setting_name, None) or default
    return import_string(path)()
