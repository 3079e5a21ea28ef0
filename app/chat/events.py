"""
Realtime event dispatch for chat state changes.

Events are published to the channels group of the conversation
("chat_<conversation_id>") once the surrounding transaction commits.
Delivery is fire-and-forget: a failing channel layer is logged and never
affects the operation that triggered the event.

Usage:
    from chat.events import publish_on_commit, message_payload
    from chat.constants import CHAT_EVENTS

    publish_on_commit(conversation.id, CHAT_EVENTS.NEW_MESSAGE, message_payload(message))

The sink implementation is swappable through settings.CHAT_EVENT_SINK.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

from chat.constants import CHAT_EVENTS, COLLABORATORS
from core.helpers import load_collaborator

if TYPE_CHECKING:
    from typing import Any

    from chat.models import Conversation, Message
    from core.protocols import EventSink

logger = logging.getLogger(__name__)


class ChannelLayerEventSink:
    """EventSink that forwards events to a Django Channels group."""

    message_type = "chat.event"

    def publish(self, conversation_id: Any, event: str, payload: dict[str, Any]) -> None:
        channel_layer = get_channel_layer()
        if channel_layer is None:
            logger.debug(f"No channel layer configured; dropping {event}")
            return

        group = CHAT_EVENTS.GROUP_NAME_TEMPLATE.format(conversation_id=conversation_id)
        try:
            async_to_sync(channel_layer.group_send)(
                group,
                {"type": self.message_type, "event": event, "payload": payload},
            )
        except Exception:  # channel layers raise backend-specific errors
            logger.warning(f"Failed to publish {event} to {group}", exc_info=True)


def get_event_sink() -> EventSink:
    return load_collaborator("CHAT_EVENT_SINK", COLLABORATORS.EVENT_SINK)


def publish_on_commit(conversation_id: Any, event: str, payload: dict[str, Any]) -> None:
    """Publish the event after the current transaction commits."""

    def _publish():
        try:
            get_event_sink().publish(conversation_id, event, payload)
        except Exception:  # a misconfigured sink must not break the request
            logger.warning(f"Event sink failed for {event}", exc_info=True)

    transaction.on_commit(_publish)


# =============================================================================
# Payload builders
# =============================================================================


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def conversation_payload(conversation: Conversation) -> dict[str, Any]:
    return {
        "conversation_id": conversation.id,
        "kind": conversation.kind,
        "name": conversation.name or None,
        "description": conversation.description or None,
        "config": {
            "notifications_enabled": conversation.notifications_enabled,
            "only_admins_can_post": conversation.only_admins_can_post,
        },
        "updated_at": _iso(conversation.updated_at),
    }


def message_payload(message: Message) -> dict[str, Any]:
    return {
        "conversation_id": message.conversation_id,
        "message_id": message.id,
        "author_id": str(message.author_id),
        "content": message.content,
        "kind": message.kind,
        "attachments": message.attachments,
        "reply_to_id": message.reply_to_id,
        "edited": message.edited,
        "edited_at": _iso(message.edited_at),
        "created_at": _iso(message.created_at),
    }


def membership_payload(conversation_id: Any, user_id: Any, actor_id: Any) -> dict[str, Any]:
    return {
        "conversation_id": conversation_id,
        "user_id": str(user_id),
        "actor_id": str(actor_id),
    }


def reaction_payload(message: Message, user_id: Any, emoji: str | None) -> dict[str, Any]:
    return {
        "conversation_id": message.conversation_id,
        "message_id": message.id,
        "user_id": str(user_id),
        "emoji": emoji,
    }


def read_payload(conversation_id: Any, message_id: Any, user_id: Any, read_at) -> dict[str, Any]:
    return {
        "conversation_id": conversation_id,
        "message_id": message_id,
        "user_id": str(user_id),
        "read_at": _iso(read_at),
    }
