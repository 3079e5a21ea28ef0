"""
User Directory backed by the authentication User table.

Other domains never query User directly for display data; they go through
a UserDirectory (see core.protocols) so lookups are always batched.

Usage:
    from authentication.directory import DjangoUserDirectory

    directory = DjangoUserDirectory()
    users = directory.get_users([author_id, *participant_ids])
    users[str(author_id)].full_name
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from authentication.models import User
from core.protocols import UserInfo

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

logger = logging.getLogger(__name__)


def _parse_ids(user_ids: Iterable[Any]) -> set[uuid.UUID]:
    """Parse ids into UUIDs, dropping anything malformed."""
    parsed = set()
    for raw in user_ids:
        if isinstance(raw, uuid.UUID):
            parsed.add(raw)
            continue
        try:
            parsed.add(uuid.UUID(str(raw)))
        except (TypeError, ValueError):
            logger.debug(f"Ignoring malformed user id {raw!r}")
    return parsed


class DjangoUserDirectory:
    """UserDirectory implementation issuing one query per lookup."""

    def get_users(self, user_ids: Iterable[Any]) -> dict[str, UserInfo]:
        ids = _parse_ids(user_ids)
        if not ids:
            return {}

        rows = User.objects.filter(id__in=ids, is_active=True).values(
            "id", "first_name", "last_name", "avatar", "role"
        )
        return {
            str(row["id"]): UserInfo(
                id=str(row["id"]),
                name=row["first_name"],
                last_name=row["last_name"],
                avatar=row["avatar"] or None,
                role=row["role"],
            )
            for row in rows
        }

    def missing_ids(self, user_ids: Iterable[Any]) -> set[str]:
        requested = {str(uid) for uid in user_ids}
        ids = _parse_ids(requested)
        found = {
            str(pk)
            for pk in User.objects.filter(id__in=ids, is_active=True).values_list(
                "id", flat=True
            )
        }
        # Compare on canonical UUID text so "ABC..." and "abc..." match
        canonical = {}
        for raw in requested:
            try:
                canonical[raw] = str(uuid.UUID(raw))
            except ValueError:
                canonical[raw] = None
        return {raw for raw, key in canonical.items() if key not in found}
