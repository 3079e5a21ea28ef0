"""
Chat application configuration.

This app provides the chat system with:
- Private (two user) and group conversations
- Group admins and posting restrictions
- Messages with attachments, replies, edits and reactions
- Read tracking and unread counts
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
