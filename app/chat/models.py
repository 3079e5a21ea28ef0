"""
Chat system models.

This module defines the data models for the chat system supporting:
- Private conversations between exactly two users
- Group conversations with a designated admin subset

Models:
    Conversation: Conversation header, config and last-message cache
    ConversationMember: Ordered membership with the admin flag
    Message: Individual message within a conversation
    MessageReaction: One reaction per user per message
    ReadState: Per-user read cursor into a conversation

Design Decisions:
    - Conversations and messages are related by id, not containment
    - Conversations are only ever soft deleted (is_deleted); messages hard delete
    - User references are weak (no FK constraint): the user directory is an
      external store and a deleted account stays listed until removed
    - Message.reply_to_id and ReadState.last_read_message_id are plain ids
      that may dangle after the target is deleted
    - At most one active private conversation per unordered user pair,
      enforced by a partial unique constraint on private_key
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.managers import SoftDeleteQuerySet
from core.model_mixins import SoftDeleteMixin
from core.models import BaseModel


def _weak_user_fk(related_name: str, **kwargs) -> models.ForeignKey:
    """ForeignKey to the user model without a database constraint."""
    return models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name=related_name,
        **kwargs,
    )


class ConversationKind(models.TextChoices):
    """
    Kind of conversation.

    PRIVATE: Exactly two participants, no admin concept
    GROUP: Any number of participants, admins moderate
    """

    PRIVATE = "private", "Private"
    GROUP = "group", "Group"


class MessageKind(models.TextChoices):
    """Kind of message content."""

    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    VIDEO = "video", "Video"
    FILE = "file", "File"
    SYSTEM = "system", "System"


class MessageStatus(models.TextChoices):
    """
    Delivery status of a message.

    A single value per message, not per recipient. READ means at least one
    participant acknowledged it.
    """

    SENT = "sent", "Sent"
    DELIVERED = "delivered", "Delivered"
    READ = "read", "Read"


def private_pair_key(user_a, user_b) -> str:
    """Canonical key of an unordered user pair."""
    low, high = sorted([str(user_a), str(user_b)])
    return f"{low}:{high}"


class Conversation(SoftDeleteMixin, BaseModel):
    """
    Conversation header.

    Membership lives in ConversationMember; messages reference the
    conversation by id.

    Fields:
        kind: PRIVATE or GROUP
        name / description: Group display data (empty for private)
        creator: Immutable; always a participant, always an admin of a group
        notifications_enabled / only_admins_can_post: Conversation config
        last_message_*: Display cache of the latest message
        private_key: "<low>:<high>" user pair for private conversations
    """

    kind = models.CharField(
        max_length=10,
        choices=ConversationKind.choices,
        help_text="Private (two users) or group",
    )
    name = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Group name",
    )
    description = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Group description",
    )
    creator = _weak_user_fk("created_conversations", help_text="User who created the conversation")

    notifications_enabled = models.BooleanField(default=True)
    only_admins_can_post = models.BooleanField(default=False)

    last_message_content = models.TextField(blank=True, default="")
    last_message_author = _weak_user_fk("+", null=True, blank=True)
    last_message_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Timestamp of the most recent message",
    )

    private_key = models.CharField(
        max_length=80,
        null=True,
        blank=True,
        help_text="Canonical user pair of a private conversation",
    )

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        db_table = "chat_conversations"
        ordering = ["-created_at", "id"]
        indexes = [
            models.Index(
                fields=["kind", "is_deleted"],
                name="chat_conv_kind_deleted_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["private_key"],
                condition=Q(kind="private", is_deleted=False),
                name="chat_unique_active_private_pair",
            ),
        ]

    def __str__(self) -> str:
        if self.kind == ConversationKind.GROUP and self.name:
            return f"Group: {self.name}"
        return f"{self.get_kind_display()}({self.pk})"

    @property
    def is_group(self) -> bool:
        return self.kind == ConversationKind.GROUP

    @property
    def active(self) -> bool:
        return not self.is_deleted

    # Membership helpers read self.members.all() so a prefetch is reused.

    def participant_ids(self) -> list[str]:
        """Participant user ids (as strings) in join order."""
        return [str(m.user_id) for m in self.members.all()]

    def admin_ids(self) -> list[str]:
        """Admin user ids (as strings) in join order."""
        return [str(m.user_id) for m in self.members.all() if m.is_admin]

    def has_participant(self, user_id) -> bool:
        return str(user_id) in self.participant_ids()

    def has_admin(self, user_id) -> bool:
        return str(user_id) in self.admin_ids()


class ConversationMember(BaseModel):
    """
    Participation of a user in a conversation.

    created_at doubles as the join time and orders the participant list.
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="members",
    )
    user = _weak_user_fk("chat_memberships")
    is_admin = models.BooleanField(
        default=False,
        help_text="Group admin (always False in private conversations)",
    )

    class Meta:
        db_table = "chat_conversation_members"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["conversation", "user"],
                name="chat_unique_conversation_member",
            ),
        ]
        indexes = [
            models.Index(
                fields=["user", "conversation"],
                name="chat_member_user_conv_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Member({self.user_id} in {self.conversation_id})"


class Attachment:
    """Keys of an attachment descriptor stored in Message.attachments."""

    NAME = "name"
    URL = "url"
    MIME_TYPE = "mime_type"
    SIZE_BYTES = "size_bytes"

    KEYS = (NAME, URL, MIME_TYPE, SIZE_BYTES)


class Message(BaseModel):
    """
    A message posted to a conversation.

    Fields:
        conversation: Owning conversation
        author: Immutable
        content: Text body (trimmed, bounded)
        kind: TEXT, IMAGE, VIDEO, FILE or SYSTEM
        attachments: Ordered list of {name, url, mime_type, size_bytes}
        status: SENT, DELIVERED or READ (single value)
        edited / edited_at: Edit marker
        reply_to_id: Weak reference to another message
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="messages",
    )
    author = _weak_user_fk("chat_messages")
    content = models.TextField(help_text="Message text")
    kind = models.CharField(
        max_length=10,
        choices=MessageKind.choices,
        default=MessageKind.TEXT,
    )
    attachments = models.JSONField(
        default=list,
        blank=True,
        help_text="Ordered list of hosted attachment descriptors",
    )
    status = models.CharField(
        max_length=10,
        choices=MessageStatus.choices,
        default=MessageStatus.SENT,
    )
    edited = models.BooleanField(default=False)
    edited_at = models.DateTimeField(null=True, blank=True)
    reply_to_id = models.BigIntegerField(
        null=True,
        blank=True,
        help_text="Id of the message this one replies to (may dangle)",
    )

    class Meta:
        db_table = "chat_messages"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["conversation", "created_at", "id"],
                name="chat_msg_conv_created_idx",
            ),
            models.Index(
                fields=["author", "-created_at"],
                name="chat_msg_author_idx",
            ),
        ]

    def __str__(self) -> str:
        preview = self.content[:30]
        return f"Message({self.pk}): {preview}"


class MessageReaction(BaseModel):
    """A user's single reaction to a message."""

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="reactions",
    )
    user = _weak_user_fk("chat_reactions")
    emoji = models.CharField(max_length=32)

    class Meta:
        db_table = "chat_message_reactions"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user"],
                name="chat_unique_reaction_per_user",
            ),
        ]

    def __str__(self) -> str:
        return f"Reaction({self.emoji} by {self.user_id} on {self.message_id})"


class ReadState(BaseModel):
    """
    Read cursor of one user in one conversation.

    Upserted on every read acknowledgement.
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="read_states",
    )
    user = _weak_user_fk("chat_read_states")
    last_read_message_id = models.BigIntegerField(
        null=True,
        blank=True,
        help_text="Id of the last message read (may dangle)",
    )
    last_read_at = models.DateTimeField()

    class Meta:
        db_table = "chat_read_states"
        constraints = [
            models.UniqueConstraint(
                fields=["conversation", "user"],
                name="chat_unique_read_state",
            ),
        ]

    def __str__(self) -> str:
        return f"ReadState({self.user_id} in {self.conversation_id})"
