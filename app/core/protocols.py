"""
Protocol definitions for collaborators consumed across apps.

Protocols define contracts that implementations must fulfill, enabling:
- Dependency inversion (depend on abstractions, not concretions)
- Swapping implementations per deployment via settings
- Easy in-memory replacements in tests

Available Protocols:
    UserDirectory: Batched lookup of user identity and display data
    PresenceBackend: Externally owned record of who is online
    EventSink: Fire-and-forget realtime event publishing

Usage:
    from core.protocols import UserDirectory

    def author_names(directory: UserDirectory, ids):
        users = directory.get_users(ids)
        return {uid: info.full_name for uid, info in users.items()}

Note:
    - Protocols are primarily for type checking
    - @runtime_checkable allows isinstance() checks
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any


@dataclass(frozen=True)
class UserInfo:
    """Display-ready identity of a user as seen by other domains."""

    id: str
    name: str
    last_name: str
    avatar: str | None
    role: str | None

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.last_name}".strip()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@runtime_checkable
class UserDirectory(Protocol):
    """
    Authoritative lookup of users by id.

    Implementations must resolve a whole id set in one round-trip.
    Ids that do not resolve are simply absent from the result.
    """

    def get_users(self, user_ids: Iterable[Any]) -> dict[str, UserInfo]:
        """Return {str(user_id): UserInfo} for every id that exists."""
        ...

    def missing_ids(self, user_ids: Iterable[Any]) -> set[str]:
        """Return the subset of ids that do not resolve to an active user."""
        ...


@runtime_checkable
class PresenceBackend(Protocol):
    """Externally owned online-user registry."""

    def mark_online(self, user_id: Any) -> None:
        ...

    def mark_offline(self, user_id: Any) -> None:
        ...

    def online_user_ids(self) -> set[str]:
        """Return ids (as strings) of users currently considered online."""
        ...


@runtime_checkable
class EventSink(Protocol):
    """
    Realtime fan-out of state changes to connected clients.

    publish() is fire-and-forget: implementations must not raise.
    """

    def publish(self, conversation_id: Any, event: str, payload: dict[str, Any]) -> None:
        ...
