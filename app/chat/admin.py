"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Conversation management
- Membership viewing
- Message moderation
"""

from django.contrib import admin

from chat.models import Conversation, ConversationMember, Message, MessageReaction, ReadState


class ConversationMemberInline(admin.TabularInline):
    """Inline display of members in conversation admin."""

    model = ConversationMember
    extra = 0
    readonly_fields = ["created_at"]
    raw_id_fields = ["user"]


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    """Admin interface for Conversation model."""

    list_display = [
        "id",
        "kind",
        "name",
        "only_admins_can_post",
        "is_deleted",
        "created_at",
        "last_message_at",
    ]
    list_filter = ["kind", "is_deleted", "created_at"]
    search_fields = ["name", "description", "id"]
    readonly_fields = [
        "created_at",
        "updated_at",
        "deleted_at",
        "private_key",
        "last_message_content",
        "last_message_author",
        "last_message_at",
    ]
    raw_id_fields = ["creator"]
    inlines = [ConversationMemberInline]
    ordering = ["-created_at"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = [
        "id",
        "conversation",
        "author",
        "kind",
        "content_preview",
        "status",
        "edited",
        "created_at",
    ]
    list_filter = ["kind", "status", "edited", "created_at"]
    search_fields = ["content", "author__email"]
    readonly_fields = ["created_at", "updated_at", "edited_at"]
    raw_id_fields = ["conversation", "author"]
    ordering = ["-created_at"]

    @admin.display(description="Content Preview")
    def content_preview(self, obj: Message) -> str:
        """Return truncated content for list display."""
        max_length = 50
        if len(obj.content) > max_length:
            return obj.content[:max_length] + "..."
        return obj.content


@admin.register(MessageReaction)
class MessageReactionAdmin(admin.ModelAdmin):
    list_display = ["id", "message", "user", "emoji", "updated_at"]
    raw_id_fields = ["message", "user"]


@admin.register(ReadState)
class ReadStateAdmin(admin.ModelAdmin):
    list_display = ["id", "conversation", "user", "last_read_message_id", "last_read_at"]
    raw_id_fields = ["conversation", "user"]
