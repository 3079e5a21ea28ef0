"""
Page/limit pagination for chat listings.

Services slice querysets into a PageResult; views render it with
paginated_response() so every listing shares one response shape:

    {
        "results": [...],
        "total": 42,
        "page": 2,
        "limit": 20,
        "total_pages": 3,
        "has_next": true,
        "has_prev": true
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from rest_framework.response import Response

from core.helpers import calculate_pagination, clamp

if TYPE_CHECKING:
    from django.db.models import QuerySet

T = TypeVar("T")


@dataclass
class PageResult(Generic[T]):
    """One page of a listing plus its metadata."""

    items: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 0
    total_pages: int = 0
    has_next: bool = False
    has_prev: bool = False

    def meta(self) -> dict:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


def normalize_page_params(page, limit, default_limit: int, max_limit: int) -> tuple[int, int]:
    """Coerce page to >= 1 and clamp limit into [1, max_limit]."""
    page = max(1, int(page or 1))
    limit = clamp(int(limit or default_limit), 1, max_limit)
    return page, limit


def paginate(queryset: QuerySet, page: int, limit: int) -> PageResult:
    """Count the queryset and slice out the requested page."""
    meta = calculate_pagination(total=queryset.count(), page=page, per_page=limit)
    offset = meta["offset"]
    return PageResult(
        items=list(queryset[offset : offset + limit]),
        total=meta["total"],
        page=meta["page"],
        limit=limit,
        total_pages=meta["total_pages"],
        has_next=meta["has_next"],
        has_prev=meta["has_previous"],
    )


def paginated_response(page_result: PageResult, results: list) -> Response:
    return Response({"results": results, **page_result.meta()})
