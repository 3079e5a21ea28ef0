"""
Serializers for chat API.

This module provides serializers for the chat system:
- Output serializers: the single denormalization step per entity
- Input serializers: request parsing for every endpoint

Serializer Hierarchy:
    ConversationSerializer: Conversation with resolved participants,
        last-message preview and the viewer's unread count
    MessageSerializer: Message with resolved author, reply preview and reactions
    StatisticsSerializer / HeartbeatSerializer / ConversationPresenceSerializer

    ConversationCreateSerializer / ConversationUpdateSerializer
    ConversationQuerySerializer / MessageQuerySerializer
    MessageCreateSerializer / MessageEditSerializer
    ParticipantAddSerializer / MarkReadSerializer / ReactionCreateSerializer

Design Decisions:
    - Input serializers only parse types. Business limits (lengths, counts,
      kinds) are enforced by the services so every rule lives in one place.
    - Output serializers resolve user ids through the UserDirectory. With
      many=True the lookup is batched across the whole page (see
      BatchedListSerializer); a single instance prepares itself.
    - A user that no longer resolves is rendered with the name "User" and
      null avatar/role instead of being dropped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from drf_spectacular.utils import extend_schema_field
from rest_framework import serializers

from chat.constants import CONVERSATION_CONFIG
from chat.models import Conversation, ConversationKind, Message, MessageKind
from chat.services import ReadStateService, get_user_directory

if TYPE_CHECKING:
    from core.protocols import UserInfo

FALLBACK_USER_NAME = "User"


def user_entry(users: dict[str, UserInfo], user_id) -> dict:
    """Render a user reference, falling back when the directory misses it."""
    info = users.get(str(user_id))
    if info is None:
        return {
            "id": str(user_id),
            "name": FALLBACK_USER_NAME,
            "last_name": "",
            "avatar": None,
            "role": None,
        }
    return info.to_dict()


def display_name(users: dict[str, UserInfo], user_id) -> str:
    info = users.get(str(user_id))
    if info is None:
        return FALLBACK_USER_NAME
    return info.full_name or FALLBACK_USER_NAME


class BatchedListSerializer(serializers.ListSerializer):
    """ListSerializer that lets the child resolve lookups for the whole page."""

    def to_representation(self, data):
        items = list(data.all() if hasattr(data, "all") else data)
        self.child.prepare(items)
        return super().to_representation(items)


class UserSummarySerializer(serializers.Serializer):
    """Schema of a resolved user reference."""

    id = serializers.CharField()
    name = serializers.CharField()
    last_name = serializers.CharField()
    avatar = serializers.CharField(allow_null=True)
    role = serializers.CharField(allow_null=True)


class ParticipantSummarySerializer(UserSummarySerializer):
    is_admin = serializers.BooleanField()


# =============================================================================
# Conversation Serializers
# =============================================================================


class ConversationConfigSerializer(serializers.Serializer):
    notifications_enabled = serializers.BooleanField(required=False)
    only_admins_can_post = serializers.BooleanField(required=False)


class LastMessageSerializer(serializers.Serializer):
    content = serializers.CharField()
    author_id = serializers.CharField()
    author_name = serializers.CharField()
    timestamp = serializers.DateTimeField()


class ConversationSerializer(serializers.ModelSerializer):
    """
    Conversation as seen by a participant.

    Includes computed fields:
    - creator / participants: Resolved user info (participants carry is_admin)
    - admins: Admin user ids
    - config: {notifications_enabled, only_admins_can_post}
    - last_message: Cached preview of the latest message, or null
    - unread_count: Messages by others since the viewer's last read
    """

    name = serializers.SerializerMethodField()
    description = serializers.SerializerMethodField()
    creator = serializers.SerializerMethodField()
    participants = serializers.SerializerMethodField()
    admins = serializers.SerializerMethodField()
    config = serializers.SerializerMethodField()
    last_message = serializers.SerializerMethodField()
    unread_count = serializers.SerializerMethodField(
        help_text="Number of unread messages for the current user"
    )
    active = serializers.BooleanField(read_only=True)

    class Meta:
        model = Conversation
        list_serializer_class = BatchedListSerializer
        fields = [
            "id",
            "kind",
            "name",
            "description",
            "creator",
            "participants",
            "admins",
            "config",
            "last_message",
            "unread_count",
            "active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._users: dict[str, UserInfo] | None = None
        self._unread: dict[int, int] = {}

    def prepare(self, conversations: list[Conversation]) -> None:
        """Resolve users and unread counts for a batch in one go."""
        user_ids = set()
        for conversation in conversations:
            user_ids.update(conversation.participant_ids())
            user_ids.add(str(conversation.creator_id))
            if conversation.last_message_author_id:
                user_ids.add(str(conversation.last_message_author_id))
        self._users = get_user_directory().get_users(user_ids)

        request = self.context.get("request")
        if request is not None and request.user.is_authenticated:
            self._unread = ReadStateService.unread_counts(
                request.user.id, [c.id for c in conversations]
            )

    def to_representation(self, instance):
        if self._users is None:
            self.prepare([instance])
        return super().to_representation(instance)

    def get_name(self, obj: Conversation) -> str | None:
        return obj.name or None

    def get_description(self, obj: Conversation) -> str | None:
        return obj.description or None

    @extend_schema_field(UserSummarySerializer)
    def get_creator(self, obj: Conversation) -> dict:
        return user_entry(self._users, obj.creator_id)

    @extend_schema_field(ParticipantSummarySerializer(many=True))
    def get_participants(self, obj: Conversation) -> list[dict]:
        return [
            {**user_entry(self._users, member.user_id), "is_admin": member.is_admin}
            for member in obj.members.all()
        ]

    @extend_schema_field(serializers.ListField(child=serializers.CharField()))
    def get_admins(self, obj: Conversation) -> list[str]:
        return obj.admin_ids()

    @extend_schema_field(ConversationConfigSerializer)
    def get_config(self, obj: Conversation) -> dict:
        return {
            "notifications_enabled": obj.notifications_enabled,
            "only_admins_can_post": obj.only_admins_can_post,
        }

    @extend_schema_field(LastMessageSerializer(allow_null=True))
    def get_last_message(self, obj: Conversation) -> dict | None:
        if obj.last_message_at is None:
            return None
        return {
            "content": obj.last_message_content,
            "author_id": str(obj.last_message_author_id),
            "author_name": display_name(self._users, obj.last_message_author_id),
            "timestamp": serializers.DateTimeField().to_representation(obj.last_message_at),
        }

    def get_unread_count(self, obj: Conversation) -> int:
        return self._unread.get(obj.id, 0)


class ConversationCreateSerializer(serializers.Serializer):
    """
    Serializer for creating conversations.

    The creator is added to participants automatically.
    """

    kind = serializers.ChoiceField(choices=ConversationKind.choices)
    participants = serializers.ListField(
        child=serializers.CharField(),
        allow_empty=True,
        help_text="User ids to include in the conversation",
    )
    name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    config = ConversationConfigSerializer(required=False)


class ConversationUpdateSerializer(serializers.Serializer):
    """Partial update; only the keys sent are applied."""

    name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    config = ConversationConfigSerializer(required=False)


class ConversationQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, default=1)
    limit = serializers.IntegerField(required=False)
    kind = serializers.ChoiceField(choices=ConversationKind.choices, required=False)
    search = serializers.CharField(required=False, allow_blank=True)
    active = serializers.BooleanField(required=False, default=True)
    order_by = serializers.ChoiceField(
        choices=CONVERSATION_CONFIG.ORDER_FIELDS,
        required=False,
        default=CONVERSATION_CONFIG.DEFAULT_ORDER_BY,
    )
    order = serializers.ChoiceField(choices=["asc", "desc"], required=False, default="desc")


# =============================================================================
# Message Serializers
# =============================================================================


class AttachmentSerializer(serializers.Serializer):
    """Descriptor of an already hosted file."""

    name = serializers.CharField()
    url = serializers.CharField()
    mime_type = serializers.CharField()
    size_bytes = serializers.IntegerField()


class ReplyPreviewSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    author_id = serializers.CharField()
    author_name = serializers.CharField()
    content = serializers.CharField()
    kind = serializers.CharField()


class ReactionSerializer(serializers.Serializer):
    user_id = serializers.CharField()
    emoji = serializers.CharField()
    timestamp = serializers.DateTimeField()


class MessageSerializer(serializers.ModelSerializer):
    """
    Message with its author resolved.

    reply_to is resolved one level deep; a reply whose target was deleted
    renders reply_to as null.
    """

    author = serializers.SerializerMethodField()
    author_name = serializers.SerializerMethodField()
    attachments = serializers.SerializerMethodField()
    reply_to = serializers.SerializerMethodField()
    reactions = serializers.SerializerMethodField()

    class Meta:
        model = Message
        list_serializer_class = BatchedListSerializer
        fields = [
            "id",
            "conversation_id",
            "author",
            "author_name",
            "content",
            "kind",
            "attachments",
            "status",
            "edited",
            "edited_at",
            "reply_to_id",
            "reply_to",
            "reactions",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._users: dict[str, UserInfo] | None = None
        self._replies: dict[int, dict] = {}

    def prepare(self, messages: list[Message]) -> None:
        reply_ids = {m.reply_to_id for m in messages if m.reply_to_id is not None}
        replies = (
            Message.objects.filter(id__in=reply_ids).values("id", "author_id", "content", "kind")
            if reply_ids
            else []
        )
        self._replies = {row["id"]: row for row in replies}

        user_ids = {str(m.author_id) for m in messages}
        user_ids.update(str(row["author_id"]) for row in self._replies.values())
        self._users = get_user_directory().get_users(user_ids)

    def to_representation(self, instance):
        if self._users is None:
            self.prepare([instance])
        return super().to_representation(instance)

    @extend_schema_field(UserSummarySerializer)
    def get_author(self, obj: Message) -> dict:
        return user_entry(self._users, obj.author_id)

    def get_author_name(self, obj: Message) -> str:
        return display_name(self._users, obj.author_id)

    @extend_schema_field(AttachmentSerializer(many=True))
    def get_attachments(self, obj: Message) -> list[dict]:
        return list(obj.attachments or [])

    @extend_schema_field(ReplyPreviewSerializer(allow_null=True))
    def get_reply_to(self, obj: Message) -> dict | None:
        row = self._replies.get(obj.reply_to_id)
        if row is None:
            return None
        return {
            "id": row["id"],
            "author_id": str(row["author_id"]),
            "author_name": display_name(self._users, row["author_id"]),
            "content": row["content"],
            "kind": row["kind"],
        }

    @extend_schema_field(ReactionSerializer(many=True))
    def get_reactions(self, obj: Message) -> list[dict]:
        reactions = sorted(obj.reactions.all(), key=lambda r: (r.updated_at, r.id))
        return [
            {
                "user_id": str(reaction.user_id),
                "emoji": reaction.emoji,
                "timestamp": serializers.DateTimeField().to_representation(reaction.updated_at),
            }
            for reaction in reactions
        ]


class MessageCreateSerializer(serializers.Serializer):
    """
    Serializer for sending messages.

    Supports:
    - Text content with an optional kind (defaults to text)
    - Already hosted attachments
    - Replies (reply_to is a message id)
    """

    content = serializers.CharField(allow_blank=True, help_text="Message text (1-2000 characters)")
    kind = serializers.ChoiceField(choices=MessageKind.choices, required=False)
    attachments = AttachmentSerializer(many=True, required=False)
    reply_to = serializers.IntegerField(required=False, allow_null=True)


class MessageEditSerializer(serializers.Serializer):
    content = serializers.CharField(allow_blank=True, help_text="New message text")


class MessageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, default=1)
    limit = serializers.IntegerField(required=False)
    date_from = serializers.DateTimeField(required=False)
    date_to = serializers.DateTimeField(required=False)
    kind = serializers.ChoiceField(choices=MessageKind.choices, required=False)
    author_id = serializers.CharField(required=False)
    search = serializers.CharField(required=False, allow_blank=True)
    order = serializers.ChoiceField(choices=["asc", "desc"], required=False, default="desc")


# =============================================================================
# Participant / Read / Reaction input
# =============================================================================


class ParticipantAddSerializer(serializers.Serializer):
    user_id = serializers.CharField(help_text="User id to add to the group")


class MarkReadSerializer(serializers.Serializer):
    message_id = serializers.IntegerField(help_text="Id of the last message read")


class ReactionCreateSerializer(serializers.Serializer):
    emoji = serializers.CharField(allow_blank=True, help_text="Emoji (1-10 characters)")


# =============================================================================
# Statistics / Presence
# =============================================================================


class MostActiveConversationSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    kind = serializers.CharField()
    name = serializers.CharField(allow_null=True)
    message_count = serializers.IntegerField()


class StatisticsSerializer(serializers.Serializer):
    total_conversations = serializers.IntegerField()
    active_conversations = serializers.IntegerField()
    total_messages = serializers.IntegerField()
    messages_today = serializers.IntegerField()
    online_users = serializers.IntegerField()
    most_active_conversations = MostActiveConversationSerializer(many=True)


class HeartbeatSerializer(serializers.Serializer):
    user_id = serializers.CharField()
    status = serializers.CharField()
    expires_in = serializers.IntegerField(help_text="Seconds until presence expires")


class ConversationPresenceSerializer(serializers.Serializer):
    conversation_id = serializers.IntegerField()
    online_user_ids = serializers.ListField(child=serializers.CharField())


