"""
Custom QuerySet for soft-deletable models.

Usage:
    from core.managers import SoftDeleteQuerySet

    class Conversation(SoftDeleteMixin, BaseModel):
        objects = SoftDeleteQuerySet.as_manager()

    Conversation.objects.active()          # Only active rows

Related:
    - core.model_mixins.SoftDeleteMixin: Model mixin for soft delete fields
"""

from __future__ import annotations

from django.db import models


class SoftDeleteQuerySet(models.QuerySet):
    """QuerySet for models carrying SoftDeleteMixin fields."""

    def active(self) -> SoftDeleteQuerySet:
        return self.filter(is_deleted=False)
