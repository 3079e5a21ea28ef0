"""
Constants and configuration for chat module features.

This module centralizes configuration values for:
- Conversation limits (group name/description, listing page sizes)
- Message operations (content and attachment limits, listing page sizes)
- Reaction validation
- Presence tracking
- Realtime event names
- Default collaborator implementations

Import example:
    from chat.constants import MESSAGE_CONFIG, REACTION_CONFIG
"""

from typing import Final


# =============================================================================
# Conversation Configuration
# =============================================================================


class CONVERSATION_CONFIG:
    """Configuration for conversations."""

    PRIVATE_PARTICIPANT_COUNT: Final[int] = 2

    MAX_NAME_LENGTH: Final[int] = 100
    MAX_DESCRIPTION_LENGTH: Final[int] = 500

    # Listing
    DEFAULT_PAGE_SIZE: Final[int] = 20
    MAX_PAGE_SIZE: Final[int] = 50
    ORDER_FIELDS: Final[tuple] = ("last_message", "created_at", "updated_at")
    DEFAULT_ORDER_BY: Final[str] = "last_message"


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Content limits (after trimming whitespace)
    MAX_CONTENT_LENGTH: Final[int] = 2000
    MIN_CONTENT_LENGTH: Final[int] = 1

    # Listing
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 100


# =============================================================================
# Attachment Configuration
# =============================================================================


class ATTACHMENT_CONFIG:
    """
    Configuration for message attachments.

    Attachments arrive already hosted; only their descriptors are stored.
    """

    MAX_ATTACHMENTS_PER_MESSAGE: Final[int] = 10
    MAX_NAME_LENGTH: Final[int] = 255
    MAX_URL_LENGTH: Final[int] = 2000
    MAX_MIME_TYPE_LENGTH: Final[int] = 100


# =============================================================================
# Reaction Configuration
# =============================================================================


class REACTION_CONFIG:
    """Configuration for message reactions."""

    # Compound emojis (skin tones, ZWJ sequences) span several code points
    MIN_EMOJI_LENGTH: Final[int] = 1
    MAX_EMOJI_LENGTH: Final[int] = 10


# =============================================================================
# Presence Configuration
# =============================================================================


class PRESENCE_CONFIG:
    """Configuration for presence tracking."""

    # How long a heartbeat keeps a user online
    PRESENCE_TTL_SECONDS: Final[int] = 60

    # Cache keys: one entry per online user, plus the index of their ids
    KEY_PREFIX_USER_PRESENCE: Final[str] = "presence:user"
    INDEX_CACHE_KEY: Final[str] = "presence:index"
    INDEX_LOCK_KEY: Final[str] = "presence:index:lock"

    # Expiry of the index lock, so a crashed holder cannot block heartbeats
    INDEX_LOCK_TIMEOUT_SECONDS: Final[int] = 5

    # How often clients should send a heartbeat
    HEARTBEAT_INTERVAL_SECONDS: Final[int] = 30


# =============================================================================
# Statistics Configuration
# =============================================================================


class STATISTICS_CONFIG:
    """Configuration for chat statistics."""

    MOST_ACTIVE_LIMIT: Final[int] = 5


# =============================================================================
# Realtime Events
# =============================================================================


class CHAT_EVENTS:
    """Event names published to conversation groups."""

    CONVERSATION_CREATED: Final[str] = "conversation_created"
    CONVERSATION_UPDATED: Final[str] = "conversation_updated"
    USER_JOINED: Final[str] = "user_joined"
    USER_LEFT: Final[str] = "user_left"
    NEW_MESSAGE: Final[str] = "new_message"
    MESSAGE_UPDATED: Final[str] = "message_updated"
    MESSAGE_DELETED: Final[str] = "message_deleted"
    MESSAGE_READ: Final[str] = "message_read"
    REACTION_ADDED: Final[str] = "reaction_added"
    REACTION_REMOVED: Final[str] = "reaction_removed"

    GROUP_NAME_TEMPLATE: Final[str] = "chat_{conversation_id}"


# =============================================================================
# Collaborators
# =============================================================================


class COLLABORATORS:
    """Default implementations, overridable via the CHAT_* settings."""

    USER_DIRECTORY: Final[str] = "authentication.directory.DjangoUserDirectory"
    PRESENCE_BACKEND: Final[str] = "chat.presence.CachePresenceBackend"
    EVENT_SINK: Final[str] = "chat.events.ChannelLayerEventSink"
