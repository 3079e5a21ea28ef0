"""
Presence tracking.

The chat core holds no online-user state of its own. It asks a
PresenceBackend (see core.protocols) which users are online.

CachePresenceBackend stores one cache entry per online user
(presence:user:<id> -> last_seen_epoch) written with the heartbeat TTL, so
a heartbeat never rewrites another user's state. A small index of user ids
lets online_user_ids() fetch every entry with one get_many(). The index is
only changed under a lock taken with cache.add(), which is atomic in both
Redis (SET NX) and the local-memory cache.

Usage:
    from chat.presence import PresenceService

    PresenceService.heartbeat(request.user)
    PresenceService.online_count()
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.cache import cache

from chat.constants import COLLABORATORS, PRESENCE_CONFIG
from chat.models import Conversation
from core.exceptions import ErrorKind
from core.helpers import load_collaborator
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

    from core.protocols import PresenceBackend

logger = logging.getLogger(__name__)

LOCK_POLL_SECONDS = 0.01


def presence_ttl() -> int:
    return getattr(settings, "CHAT_PRESENCE_TTL_SECONDS", PRESENCE_CONFIG.PRESENCE_TTL_SECONDS)


class CachePresenceBackend:
    """PresenceBackend over the default Django cache."""

    index_key = PRESENCE_CONFIG.INDEX_CACHE_KEY
    lock_key = PRESENCE_CONFIG.INDEX_LOCK_KEY

    @property
    def ttl(self) -> int:
        return presence_ttl()

    @staticmethod
    def user_key(user_id: Any) -> str:
        return f"{PRESENCE_CONFIG.KEY_PREFIX_USER_PRESENCE}:{user_id}"

    @contextmanager
    def _index_lock(self) -> Generator[None, None, None]:
        timeout = PRESENCE_CONFIG.INDEX_LOCK_TIMEOUT_SECONDS
        deadline = time.monotonic() + timeout
        acquired = cache.add(self.lock_key, 1, timeout=timeout)
        while not acquired and time.monotonic() < deadline:
            time.sleep(LOCK_POLL_SECONDS)
            acquired = cache.add(self.lock_key, 1, timeout=timeout)
        if not acquired:
            logger.warning("Presence index lock not acquired within %ss", timeout)
        try:
            yield
        finally:
            if acquired:
                cache.delete(self.lock_key)

    def _read_index(self) -> set[str]:
        return set(cache.get(self.index_key) or ())

    def _live_entries(self, user_ids: set[str], now: float) -> dict[str, float]:
        keys = {self.user_key(uid): uid for uid in user_ids}
        found = cache.get_many(list(keys))
        return {
            keys[key]: seen for key, seen in found.items() if now - seen < self.ttl
        }

    def mark_online(self, user_id: Any) -> None:
        uid = str(user_id)
        now = time.time()
        cache.set(self.user_key(uid), now, timeout=self.ttl)
        with self._index_lock():
            index = self._read_index()
            live = set(self._live_entries(index, now))
            live.add(uid)
            cache.set(self.index_key, sorted(live), timeout=None)

    def mark_offline(self, user_id: Any) -> None:
        uid = str(user_id)
        cache.delete(self.user_key(uid))
        with self._index_lock():
            index = self._read_index()
            if uid in index:
                index.discard(uid)
                cache.set(self.index_key, sorted(index), timeout=None)

    def online_user_ids(self) -> set[str]:
        return set(self._live_entries(self._read_index(), time.time()))


def get_presence_backend() -> PresenceBackend:
    return load_collaborator("CHAT_PRESENCE_BACKEND", COLLABORATORS.PRESENCE_BACKEND)


class PresenceService(BaseService):
    """Presence operations exposed to the API."""

    @classmethod
    def heartbeat(cls, user) -> dict:
        get_presence_backend().mark_online(user.id)
        return {
            "user_id": str(user.id),
            "status": "online",
            "expires_in": presence_ttl(),
        }

    @classmethod
    def go_offline(cls, user) -> None:
        get_presence_backend().mark_offline(user.id)

    @classmethod
    def online_count(cls) -> int:
        return len(get_presence_backend().online_user_ids())

    @classmethod
    def conversation_presence(cls, conversation_id, user) -> ServiceResult[list[str]]:
        """
        Online participants of a conversation, in join order.

        Fails with NOT_FOUND unless the caller is an active participant.
        """
        conversation = (
            Conversation.objects.active()
            .filter(pk=conversation_id, members__user_id=user.id)
            .prefetch_related("members")
            .first()
        )
        if conversation is None:
            return ServiceResult.failure(
                "Conversation not found",
                error_code="CONVERSATION_NOT_FOUND",
                kind=ErrorKind.NOT_FOUND,
            )

        online = get_presence_backend().online_user_ids()
        return ServiceResult.success(
            [uid for uid in conversation.participant_ids() if uid in online]
        )
