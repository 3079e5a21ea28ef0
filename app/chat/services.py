"""
Chat service layer.

All chat business rules are enforced here, before any store write:
- ConversationService: create, list, get, update
- ParticipantService: add and remove group participants
- MessageService: send, list, edit, delete
- ReadStateService: read cursors and unread counts
- ReactionService: one reaction per user per message
- ChatStatisticsService: aggregate counts

Access rule:
    A conversation that is missing, inactive, or that the caller does not
    participate in yields the same NOT_FOUND failure. The same applies to
    messages the caller did not author (edit/delete) or cannot see
    (reactions).

Failures are returned as ServiceResult.failure(..., kind=ErrorKind.X).
Store failures raise InfrastructureError (see core.decorators).

Every mutating operation writes one line to the "chat.audit" logger:
    action=<op> actor=<user id> entity=<type>:<id> outcome=<ok|error kind>
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.db.models import Count, F, OuterRef, Q, Subquery
from django.utils import timezone

from chat.constants import (
    ATTACHMENT_CONFIG,
    CHAT_EVENTS,
    COLLABORATORS,
    CONVERSATION_CONFIG,
    MESSAGE_CONFIG,
    REACTION_CONFIG,
    STATISTICS_CONFIG,
)
from chat.events import (
    conversation_payload,
    membership_payload,
    message_payload,
    publish_on_commit,
    reaction_payload,
    read_payload,
)
from chat.models import (
    Attachment,
    Conversation,
    ConversationKind,
    ConversationMember,
    Message,
    MessageKind,
    MessageReaction,
    MessageStatus,
    ReadState,
    private_pair_key,
)
from chat.pagination import PageResult, normalize_page_params, paginate
from chat.presence import PresenceService
from core.decorators import infrastructure_errors
from core.exceptions import ErrorKind
from core.helpers import load_collaborator, start_of_local_day
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from typing import Any

    from authentication.models import User
    from core.protocols import UserDirectory

audit_logger = logging.getLogger("chat.audit")

ORDER_DIRECTIONS = ("asc", "desc")


def get_user_directory() -> UserDirectory:
    return load_collaborator("CHAT_USER_DIRECTORY", COLLABORATORS.USER_DIRECTORY)


def audit(action: str, actor_id, entity: str, outcome: str = "ok") -> None:
    level = logging.INFO if outcome == "ok" else logging.WARNING
    audit_logger.log(
        level,
        f"action={action} actor={actor_id} entity={entity} outcome={outcome}",
    )


def normalize_user_id(raw) -> str:
    """Canonical text form of a user id (malformed ids pass through as-is)."""
    try:
        return str(uuid.UUID(str(raw)))
    except ValueError:
        return str(raw)


def _unique_user_ids(raw_ids: Iterable[Any]) -> list[str]:
    seen: dict[str, None] = {}
    for raw in raw_ids:
        seen.setdefault(normalize_user_id(raw), None)
    return list(seen)


def _rejected(action: str, actor_id, entity: str, result: ServiceResult) -> ServiceResult:
    audit(action, actor_id, entity, result.error_kind.value)
    return result


def _conversation_not_found() -> ServiceResult:
    return ServiceResult.failure(
        "Conversation not found",
        error_code="CONVERSATION_NOT_FOUND",
        kind=ErrorKind.NOT_FOUND,
    )


def _message_not_found() -> ServiceResult:
    return ServiceResult.failure(
        "Message not found",
        error_code="MESSAGE_NOT_FOUND",
        kind=ErrorKind.NOT_FOUND,
    )


def _invalid(message: str, error_code: str, field: str | None = None) -> ServiceResult:
    return ServiceResult.failure(
        message,
        error_code=error_code,
        errors={field: [message]} if field else None,
        kind=ErrorKind.INVALID_ARGUMENT,
    )


def _load_conversation(conversation_id, user_id, *, lock: bool = False) -> Conversation | None:
    """
    Active conversation the user participates in, or None.

    With lock=True the conversation row is locked until the end of the
    surrounding transaction.
    """
    queryset = Conversation.objects.active()
    if lock:
        queryset = queryset.select_for_update()
    conversation = queryset.filter(pk=conversation_id).first()
    if conversation is None or not conversation.has_participant(user_id):
        return None
    return conversation


def _reload(conversation: Conversation) -> Conversation:
    return Conversation.objects.prefetch_related("members").get(pk=conversation.pk)


def _validate_group_text(name, description) -> ServiceResult | None:
    if name is not None and len(name) > CONVERSATION_CONFIG.MAX_NAME_LENGTH:
        return _invalid(
            f"Name cannot exceed {CONVERSATION_CONFIG.MAX_NAME_LENGTH} characters",
            "NAME_TOO_LONG",
            "name",
        )
    if description is not None and len(description) > CONVERSATION_CONFIG.MAX_DESCRIPTION_LENGTH:
        return _invalid(
            f"Description cannot exceed {CONVERSATION_CONFIG.MAX_DESCRIPTION_LENGTH} characters",
            "DESCRIPTION_TOO_LONG",
            "description",
        )
    return None


def _validate_config(config) -> ServiceResult | None:
    if config is None:
        return None
    if not isinstance(config, dict):
        return _invalid("Config must be an object", "INVALID_CONFIG", "config")
    for key, value in config.items():
        if key not in ("notifications_enabled", "only_admins_can_post"):
            return _invalid(f"Unknown config option: {key}", "INVALID_CONFIG", "config")
        if not isinstance(value, bool):
            return _invalid(f"Config option {key} must be a boolean", "INVALID_CONFIG", "config")
    return None


# =============================================================================
# Conversation Service
# =============================================================================


class ConversationService(BaseService):
    """
    Conversation lifecycle.

    Invariants kept by every write:
        - the creator is a participant
        - a group's creator is an admin
        - a private conversation has exactly two participants and no admins
        - at most one active private conversation per user pair
    """

    @classmethod
    @infrastructure_errors
    def create_conversation(
        cls,
        creator: User,
        kind: str,
        participant_ids: Iterable[Any],
        name: str | None = None,
        description: str | None = None,
        config: dict | None = None,
    ) -> ServiceResult[tuple[Conversation, bool]]:
        """
        Create a conversation, or return the existing private one.

        Args:
            creator: Calling user; appended to participants if missing
            kind: "private" or "group"
            participant_ids: User ids to include
            name / description: Group display data
            config: Optional {notifications_enabled, only_admins_can_post}

        Returns:
            ServiceResult with (conversation, created). created is False when
            an active private conversation for the same pair already existed.

        Error codes:
            INVALID_KIND, INVALID_PARTICIPANT_COUNT, NAME_TOO_LONG,
            DESCRIPTION_TOO_LONG, INVALID_CONFIG: INVALID_ARGUMENT
            PARTICIPANTS_NOT_FOUND: NOT_FOUND
        """
        creator_id = normalize_user_id(creator.id)

        if kind not in ConversationKind.values:
            return _rejected(
                "create_conversation",
                creator_id,
                "conversation:new",
                _invalid(f"Invalid conversation kind: {kind}", "INVALID_KIND", "kind"),
            )

        participants = _unique_user_ids(participant_ids or [])
        if creator_id not in participants:
            participants.append(creator_id)

        problem = _validate_group_text(name, description) or _validate_config(config)
        if problem is None and kind == ConversationKind.PRIVATE:
            if len(participants) != CONVERSATION_CONFIG.PRIVATE_PARTICIPANT_COUNT:
                problem = _invalid(
                    "A private conversation needs exactly two participants",
                    "INVALID_PARTICIPANT_COUNT",
                    "participants",
                )
        if problem is not None:
            return _rejected("create_conversation", creator_id, "conversation:new", problem)

        pair_key = None
        if kind == ConversationKind.PRIVATE:
            pair_key = private_pair_key(*participants)
            existing = cls._find_private(pair_key)
            if existing is not None:
                cls.get_logger().info(
                    f"Returning existing private conversation {existing.id} for {pair_key}"
                )
                return ServiceResult.success((existing, False))

        missing = get_user_directory().missing_ids(participants)
        if missing:
            return _rejected(
                "create_conversation",
                creator_id,
                "conversation:new",
                ServiceResult.failure(
                    "Some participants do not exist",
                    error_code="PARTICIPANTS_NOT_FOUND",
                    errors={"participants": sorted(missing)},
                    kind=ErrorKind.NOT_FOUND,
                ),
            )

        config = config or {}
        is_group = kind == ConversationKind.GROUP
        try:
            with cls.atomic():
                conversation = Conversation.objects.create(
                    kind=kind,
                    name=(name or "") if is_group else "",
                    description=(description or "") if is_group else "",
                    creator_id=creator_id,
                    notifications_enabled=config.get("notifications_enabled", True),
                    only_admins_can_post=config.get("only_admins_can_post", False),
                    private_key=pair_key,
                )
                ConversationMember.objects.bulk_create(
                    [
                        ConversationMember(
                            conversation=conversation,
                            user_id=user_id,
                            is_admin=is_group and user_id == creator_id,
                        )
                        for user_id in participants
                    ]
                )
        except IntegrityError:
            # Lost a race against a concurrent create of the same private pair
            existing = cls._find_private(pair_key) if pair_key else None
            if existing is None:
                raise
            return ServiceResult.success((existing, False))

        audit("create_conversation", creator_id, f"conversation:{conversation.id}")
        publish_on_commit(
            conversation.id,
            CHAT_EVENTS.CONVERSATION_CREATED,
            conversation_payload(conversation),
        )
        return ServiceResult.success((_reload(conversation), True))

    @classmethod
    def _find_private(cls, pair_key: str) -> Conversation | None:
        return (
            Conversation.objects.active()
            .filter(kind=ConversationKind.PRIVATE, private_key=pair_key)
            .prefetch_related("members")
            .first()
        )

    @classmethod
    @infrastructure_errors
    def list_conversations(
        cls,
        user: User,
        *,
        page: int = 1,
        limit: int = CONVERSATION_CONFIG.DEFAULT_PAGE_SIZE,
        kind: str | None = None,
        search: str | None = None,
        active: bool = True,
        order_by: str = CONVERSATION_CONFIG.DEFAULT_ORDER_BY,
        order: str = "desc",
    ) -> ServiceResult[PageResult[Conversation]]:
        """
        Conversations the user participates in, one page at a time.

        Conversations without messages sort after those with messages when
        ordering by last message descending, and before them ascending.
        Ties fall back to insertion order.
        """
        if order_by not in CONVERSATION_CONFIG.ORDER_FIELDS:
            return _invalid(f"Cannot order by {order_by}", "INVALID_ORDER_BY", "order_by")
        if order not in ORDER_DIRECTIONS:
            return _invalid(f"Invalid order direction: {order}", "INVALID_ORDER", "order")
        if kind is not None and kind not in ConversationKind.values:
            return _invalid(f"Invalid conversation kind: {kind}", "INVALID_KIND", "kind")

        page, limit = normalize_page_params(
            page, limit, CONVERSATION_CONFIG.DEFAULT_PAGE_SIZE, CONVERSATION_CONFIG.MAX_PAGE_SIZE
        )

        queryset = Conversation.objects.filter(
            is_deleted=not active,
            members__user_id=user.id,
        )
        if kind:
            queryset = queryset.filter(kind=kind)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(description__icontains=search)
            )

        sort_field = "last_message_at" if order_by == "last_message" else order_by
        if order == "desc":
            sort = F(sort_field).desc(nulls_last=True)
        else:
            sort = F(sort_field).asc(nulls_first=True)
        queryset = queryset.order_by(sort, "id").prefetch_related("members")

        return ServiceResult.success(paginate(queryset, page, limit))

    @classmethod
    @infrastructure_errors
    def get_conversation(cls, conversation_id, user: User) -> ServiceResult[Conversation]:
        conversation = (
            Conversation.objects.active()
            .filter(pk=conversation_id, members__user_id=user.id)
            .prefetch_related("members")
            .first()
        )
        if conversation is None:
            return _conversation_not_found()
        return ServiceResult.success(conversation)

    @classmethod
    @infrastructure_errors
    def update_conversation(
        cls,
        conversation_id,
        user: User,
        changes: dict,
    ) -> ServiceResult[Conversation]:
        """
        Partially update name, description and config.

        Only keys present in changes are applied; config is merged key by key.

        Error codes:
            CONVERSATION_NOT_FOUND: NOT_FOUND
            NOT_ADMIN: FORBIDDEN (groups only)
            NAME_TOO_LONG, DESCRIPTION_TOO_LONG, INVALID_CONFIG: INVALID_ARGUMENT
        """
        entity = f"conversation:{conversation_id}"
        problem = _validate_group_text(
            changes.get("name"), changes.get("description")
        ) or _validate_config(changes.get("config"))
        if problem is not None:
            return _rejected("update_conversation", user.id, entity, problem)

        with cls.atomic():
            conversation = _load_conversation(conversation_id, user.id, lock=True)
            if conversation is None:
                return _rejected("update_conversation", user.id, entity, _conversation_not_found())

            if conversation.is_group and not conversation.has_admin(user.id):
                return _rejected(
                    "update_conversation",
                    user.id,
                    entity,
                    ServiceResult.failure(
                        "Only group admins can update the conversation",
                        error_code="NOT_ADMIN",
                        kind=ErrorKind.FORBIDDEN,
                    ),
                )

            update_fields = ["updated_at"]
            for field_name in ("name", "description"):
                if field_name in changes:
                    setattr(conversation, field_name, changes[field_name] or "")
                    update_fields.append(field_name)
            for option, value in (changes.get("config") or {}).items():
                setattr(conversation, option, value)
                update_fields.append(option)
            conversation.save(update_fields=update_fields)

        audit("update_conversation", user.id, entity)
        publish_on_commit(
            conversation.id,
            CHAT_EVENTS.CONVERSATION_UPDATED,
            conversation_payload(conversation),
        )
        return ServiceResult.success(_reload(conversation))


# =============================================================================
# Participant Service
# =============================================================================


class ParticipantService(BaseService):
    """Group membership management."""

    @classmethod
    @infrastructure_errors
    def add_participant(cls, conversation_id, caller: User, new_user_id) -> ServiceResult[Conversation]:
        """
        Add a user to a group.

        Error codes:
            CONVERSATION_NOT_FOUND: NOT_FOUND
            GROUP_ONLY: INVALID_ARGUMENT
            NOT_ADMIN: FORBIDDEN
            USER_NOT_FOUND: NOT_FOUND
            ALREADY_PARTICIPANT: CONFLICT
        """
        entity = f"conversation:{conversation_id}"
        new_user_id = normalize_user_id(new_user_id)

        with cls.atomic():
            conversation = _load_conversation(conversation_id, caller.id, lock=True)
            failure = cls._check_group_admin(conversation, caller, action="add")
            if failure is None:
                if get_user_directory().missing_ids([new_user_id]):
                    failure = ServiceResult.failure(
                        "User not found",
                        error_code="USER_NOT_FOUND",
                        kind=ErrorKind.NOT_FOUND,
                    )
                elif conversation.has_participant(new_user_id):
                    failure = ServiceResult.failure(
                        "User is already a participant",
                        error_code="ALREADY_PARTICIPANT",
                        kind=ErrorKind.CONFLICT,
                    )
            if failure is not None:
                return _rejected("add_participant", caller.id, entity, failure)

            ConversationMember.objects.create(conversation=conversation, user_id=new_user_id)
            conversation.save(update_fields=["updated_at"])

        audit("add_participant", caller.id, f"{entity}/user:{new_user_id}")
        publish_on_commit(
            conversation.id,
            CHAT_EVENTS.USER_JOINED,
            membership_payload(conversation.id, new_user_id, caller.id),
        )
        return ServiceResult.success(_reload(conversation))

    @classmethod
    @infrastructure_errors
    def remove_participant(cls, conversation_id, caller: User, target_user_id) -> ServiceResult[Conversation]:
        """
        Remove a user from a group (admins, or the user themselves).

        The creator can never be removed.

        Error codes:
            CONVERSATION_NOT_FOUND: NOT_FOUND
            GROUP_ONLY: INVALID_ARGUMENT
            NOT_ADMIN: FORBIDDEN
            CREATOR_CANNOT_LEAVE: FORBIDDEN
            NOT_PARTICIPANT: NOT_FOUND
        """
        entity = f"conversation:{conversation_id}"
        target_user_id = normalize_user_id(target_user_id)
        caller_id = normalize_user_id(caller.id)

        with cls.atomic():
            conversation = _load_conversation(conversation_id, caller_id, lock=True)
            is_self = target_user_id == caller_id
            failure = cls._check_group_admin(conversation, caller, action="remove", allow_self=is_self)
            if failure is None:
                if target_user_id == normalize_user_id(conversation.creator_id):
                    failure = ServiceResult.failure(
                        "The creator cannot leave the group",
                        error_code="CREATOR_CANNOT_LEAVE",
                        kind=ErrorKind.FORBIDDEN,
                    )
                elif not conversation.has_participant(target_user_id):
                    failure = ServiceResult.failure(
                        "User is not a participant",
                        error_code="NOT_PARTICIPANT",
                        kind=ErrorKind.NOT_FOUND,
                    )
            if failure is not None:
                return _rejected("remove_participant", caller_id, entity, failure)

            ConversationMember.objects.filter(
                conversation=conversation, user_id=target_user_id
            ).delete()
            conversation.save(update_fields=["updated_at"])

        audit("remove_participant", caller_id, f"{entity}/user:{target_user_id}")
        publish_on_commit(
            conversation.id,
            CHAT_EVENTS.USER_LEFT,
            membership_payload(conversation.id, target_user_id, caller_id),
        )
        return ServiceResult.success(_reload(conversation))

    @classmethod
    def _check_group_admin(
        cls,
        conversation: Conversation | None,
        caller: User,
        action: str,
        allow_self: bool = False,
    ) -> ServiceResult | None:
        if conversation is None:
            return _conversation_not_found()
        if not conversation.is_group:
            return ServiceResult.failure(
                f"Only groups support {'adding' if action == 'add' else 'removing'} participants",
                error_code="GROUP_ONLY",
                kind=ErrorKind.INVALID_ARGUMENT,
            )
        if not allow_self and not conversation.has_admin(caller.id):
            return ServiceResult.failure(
                "Only group admins can manage participants",
                error_code="NOT_ADMIN",
                kind=ErrorKind.FORBIDDEN,
            )
        return None


# =============================================================================
# Message Service
# =============================================================================


class MessageService(BaseService):
    """Sending, listing, editing and deleting messages."""

    @classmethod
    def _validate_content(cls, content) -> tuple[str, ServiceResult | None]:
        content = content.strip() if isinstance(content, str) else ""
        if len(content) < MESSAGE_CONFIG.MIN_CONTENT_LENGTH:
            return content, _invalid("Message content cannot be empty", "EMPTY_CONTENT", "content")
        if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            return content, _invalid(
                f"Message content cannot exceed {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                "CONTENT_TOO_LONG",
                "content",
            )
        return content, None

    @classmethod
    def _validate_attachments(cls, attachments) -> tuple[list[dict], ServiceResult | None]:
        if attachments is None:
            return [], None
        if not isinstance(attachments, list):
            return [], _invalid("Attachments must be a list", "INVALID_ATTACHMENTS", "attachments")
        if len(attachments) > ATTACHMENT_CONFIG.MAX_ATTACHMENTS_PER_MESSAGE:
            return [], _invalid(
                f"At most {ATTACHMENT_CONFIG.MAX_ATTACHMENTS_PER_MESSAGE} attachments per message",
                "TOO_MANY_ATTACHMENTS",
                "attachments",
            )

        cleaned = []
        for item in attachments:
            if not isinstance(item, dict):
                return [], _invalid("Attachment must be an object", "INVALID_ATTACHMENTS", "attachments")
            name = item.get(Attachment.NAME)
            url = item.get(Attachment.URL)
            mime_type = item.get(Attachment.MIME_TYPE)
            size = item.get(Attachment.SIZE_BYTES)
            valid = (
                isinstance(name, str)
                and 0 < len(name) <= ATTACHMENT_CONFIG.MAX_NAME_LENGTH
                and isinstance(url, str)
                and 0 < len(url) <= ATTACHMENT_CONFIG.MAX_URL_LENGTH
                and isinstance(mime_type, str)
                and 0 < len(mime_type) <= ATTACHMENT_CONFIG.MAX_MIME_TYPE_LENGTH
                and isinstance(size, int)
                and not isinstance(size, bool)
                and size >= 0
            )
            if not valid:
                return [], _invalid(
                    "Attachment needs name, url, mime_type and a non-negative size_bytes",
                    "INVALID_ATTACHMENTS",
                    "attachments",
                )
            cleaned.append(
                {
                    Attachment.NAME: name,
                    Attachment.URL: url,
                    Attachment.MIME_TYPE: mime_type,
                    Attachment.SIZE_BYTES: size,
                }
            )
        return cleaned, None

    @classmethod
    @infrastructure_errors
    def send_message(
        cls,
        conversation_id,
        author: User,
        content: str,
        kind: str | None = None,
        attachments: list[dict] | None = None,
        reply_to: int | None = None,
    ) -> ServiceResult[Message]:
        """
        Post a message and refresh the conversation's last-message cache.

        Error codes:
            EMPTY_CONTENT, CONTENT_TOO_LONG, INVALID_KIND,
            INVALID_ATTACHMENTS, TOO_MANY_ATTACHMENTS, INVALID_REPLY: INVALID_ARGUMENT
            CONVERSATION_NOT_FOUND: NOT_FOUND
            ADMINS_ONLY: FORBIDDEN
        """
        entity = f"conversation:{conversation_id}"
        kind = kind or MessageKind.TEXT

        content, problem = cls._validate_content(content)
        if problem is None and kind not in MessageKind.values:
            problem = _invalid(f"Invalid message kind: {kind}", "INVALID_KIND", "kind")
        if problem is None:
            attachments, problem = cls._validate_attachments(attachments)
        if problem is not None:
            return _rejected("send_message", author.id, entity, problem)

        conversation = _load_conversation(conversation_id, author.id)
        if conversation is None:
            return _rejected("send_message", author.id, entity, _conversation_not_found())

        if conversation.only_admins_can_post and not conversation.has_admin(author.id):
            return _rejected(
                "send_message",
                author.id,
                entity,
                ServiceResult.failure(
                    "Only admins can post in this conversation",
                    error_code="ADMINS_ONLY",
                    kind=ErrorKind.FORBIDDEN,
                ),
            )

        if reply_to is not None and not cls._visible_message_exists(reply_to, author.id):
            return _rejected(
                "send_message",
                author.id,
                entity,
                _invalid("Reply target not found", "INVALID_REPLY", "reply_to"),
            )

        with cls.atomic():
            message = Message.objects.create(
                conversation=conversation,
                author_id=author.id,
                content=content,
                kind=kind,
                attachments=attachments,
                reply_to_id=reply_to,
            )
            # Conditional so a slower concurrent send never rolls the cache back
            Conversation.objects.filter(pk=conversation.pk).filter(
                Q(last_message_at__isnull=True) | Q(last_message_at__lte=message.created_at)
            ).update(
                last_message_content=message.content,
                last_message_author_id=message.author_id,
                last_message_at=message.created_at,
                updated_at=timezone.now(),
            )

        audit("send_message", author.id, f"message:{message.id}")
        publish_on_commit(conversation.id, CHAT_EVENTS.NEW_MESSAGE, message_payload(message))
        return ServiceResult.success(message)

    @classmethod
    def _visible_message_exists(cls, message_id, user_id) -> bool:
        return Message.objects.filter(
            pk=message_id,
            conversation__is_deleted=False,
            conversation__members__user_id=user_id,
        ).exists()

    @classmethod
    @infrastructure_errors
    def list_messages(
        cls,
        conversation_id,
        user: User,
        *,
        page: int = 1,
        limit: int = MESSAGE_CONFIG.DEFAULT_PAGE_SIZE,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        kind: str | None = None,
        author_id=None,
        search: str | None = None,
        order: str = "desc",
    ) -> ServiceResult[PageResult[Message]]:
        """Messages of a conversation, newest first by default."""
        if order not in ORDER_DIRECTIONS:
            return _invalid(f"Invalid order direction: {order}", "INVALID_ORDER", "order")
        if kind is not None and kind not in MessageKind.values:
            return _invalid(f"Invalid message kind: {kind}", "INVALID_KIND", "kind")
        if author_id is not None:
            try:
                author_id = uuid.UUID(str(author_id))
            except ValueError:
                return _invalid("Invalid author id", "INVALID_AUTHOR", "author_id")

        conversation = _load_conversation(conversation_id, user.id)
        if conversation is None:
            return _conversation_not_found()

        page, limit = normalize_page_params(
            page, limit, MESSAGE_CONFIG.DEFAULT_PAGE_SIZE, MESSAGE_CONFIG.MAX_PAGE_SIZE
        )

        queryset = Message.objects.filter(conversation=conversation)
        if date_from is not None:
            queryset = queryset.filter(created_at__gte=date_from)
        if date_to is not None:
            queryset = queryset.filter(created_at__lte=date_to)
        if kind:
            queryset = queryset.filter(kind=kind)
        if author_id is not None:
            queryset = queryset.filter(author_id=author_id)
        if search:
            queryset = queryset.filter(content__icontains=search)

        ordering = ("created_at", "id") if order == "asc" else ("-created_at", "-id")
        queryset = queryset.order_by(*ordering).prefetch_related("reactions")

        return ServiceResult.success(paginate(queryset, page, limit))

    @classmethod
    def _own_message(cls, message_id, user_id, *, lock: bool = False) -> Message | None:
        queryset = Message.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        return queryset.filter(
            pk=message_id,
            author_id=user_id,
            conversation__is_deleted=False,
        ).first()

    @classmethod
    @infrastructure_errors
    def edit_message(cls, message_id, user: User, content: str) -> ServiceResult[Message]:
        """
        Replace the content of the caller's own message.

        Error codes:
            EMPTY_CONTENT, CONTENT_TOO_LONG: INVALID_ARGUMENT
            MESSAGE_NOT_FOUND: NOT_FOUND (also when the caller is not the author)
        """
        entity = f"message:{message_id}"
        content, problem = cls._validate_content(content)
        if problem is not None:
            return _rejected("edit_message", user.id, entity, problem)

        with cls.atomic():
            message = cls._own_message(message_id, user.id, lock=True)
            if message is None:
                return _rejected("edit_message", user.id, entity, _message_not_found())

            message.content = content
            message.edited = True
            message.edited_at = timezone.now()
            message.save(update_fields=["content", "edited", "edited_at", "updated_at"])

        audit("edit_message", user.id, entity)
        publish_on_commit(
            message.conversation_id, CHAT_EVENTS.MESSAGE_UPDATED, message_payload(message)
        )
        return ServiceResult.success(message)

    @classmethod
    @infrastructure_errors
    def delete_message(cls, message_id, user: User) -> ServiceResult[None]:
        """
        Hard delete the caller's own message.

        Replies pointing at it keep a dangling reply_to_id which renders as
        absent.
        """
        entity = f"message:{message_id}"
        message = cls._own_message(message_id, user.id)
        if message is None:
            return _rejected("delete_message", user.id, entity, _message_not_found())

        conversation_id = message.conversation_id
        message.delete()

        audit("delete_message", user.id, entity)
        publish_on_commit(
            conversation_id,
            CHAT_EVENTS.MESSAGE_DELETED,
            {"conversation_id": conversation_id, "message_id": int(message_id)},
        )
        return ServiceResult.success(None)


# =============================================================================
# Read State Service
# =============================================================================


class ReadStateService(BaseService):
    """Per-user read cursors."""

    @classmethod
    @infrastructure_errors
    def mark_read(cls, conversation_id, message_id, user: User) -> ServiceResult[ReadState]:
        """
        Move the caller's read cursor to message_id.

        Also flips the message's single status to READ.

        Error codes:
            CONVERSATION_NOT_FOUND, MESSAGE_NOT_FOUND: NOT_FOUND
        """
        entity = f"conversation:{conversation_id}"
        conversation = _load_conversation(conversation_id, user.id)
        if conversation is None:
            return _rejected("mark_read", user.id, entity, _conversation_not_found())
        if not Message.objects.filter(pk=message_id, conversation=conversation).exists():
            return _rejected("mark_read", user.id, entity, _message_not_found())

        now = timezone.now()
        with cls.atomic():
            read_state, _ = ReadState.objects.update_or_create(
                conversation=conversation,
                user_id=user.id,
                defaults={"last_read_message_id": message_id, "last_read_at": now},
            )
            Message.objects.filter(pk=message_id).update(status=MessageStatus.READ, updated_at=now)

        audit("mark_read", user.id, f"{entity}/message:{message_id}")
        publish_on_commit(
            conversation.id,
            CHAT_EVENTS.MESSAGE_READ,
            read_payload(conversation.id, message_id, user.id, now),
        )
        return ServiceResult.success(read_state)

    @classmethod
    def unread_counts(cls, user_id, conversation_ids: Iterable[int]) -> dict[int, int]:
        """
        Unread message count per conversation, in one grouped query.

        Unread means authored by someone else and created after the user's
        last read acknowledgement (every such message when never read).
        """
        conversation_ids = list(conversation_ids)
        if not conversation_ids:
            return {}

        last_read = ReadState.objects.filter(
            conversation_id=OuterRef("conversation_id"), user_id=user_id
        ).values("last_read_at")[:1]
        rows = (
            Message.objects.filter(conversation_id__in=conversation_ids)
            .exclude(author_id=user_id)
            .annotate(last_read_at=Subquery(last_read))
            .filter(Q(last_read_at__isnull=True) | Q(created_at__gt=F("last_read_at")))
            .values("conversation_id")
            .annotate(unread=Count("id"))
            .order_by()
        )
        counts = {conversation_id: 0 for conversation_id in conversation_ids}
        counts.update({row["conversation_id"]: row["unread"] for row in rows})
        return counts


# =============================================================================
# Reaction Service
# =============================================================================


class ReactionService(BaseService):
    """One reaction per user per message."""

    @classmethod
    def _validate_emoji(cls, emoji) -> str | None:
        """Return the trimmed emoji, or None when invalid."""
        if not isinstance(emoji, str):
            return None
        emoji = emoji.strip()
        if not REACTION_CONFIG.MIN_EMOJI_LENGTH <= len(emoji) <= REACTION_CONFIG.MAX_EMOJI_LENGTH:
            return None
        return emoji

    @classmethod
    def _visible_message(cls, message_id, user_id) -> Message | None:
        message = Message.objects.select_related("conversation").filter(pk=message_id).first()
        if message is None or message.conversation.is_deleted:
            return None
        if not message.conversation.has_participant(user_id):
            return None
        return message

    @classmethod
    @infrastructure_errors
    def add_reaction(cls, message_id, user: User, emoji: str) -> ServiceResult[Message]:
        """
        React to a message, replacing any previous reaction by the same user.

        Error codes:
            INVALID_EMOJI: INVALID_ARGUMENT
            MESSAGE_NOT_FOUND: NOT_FOUND (also when the caller cannot see it)
        """
        entity = f"message:{message_id}"
        cleaned = cls._validate_emoji(emoji)
        if cleaned is None:
            return _rejected(
                "add_reaction",
                user.id,
                entity,
                _invalid(
                    f"Emoji must be {REACTION_CONFIG.MIN_EMOJI_LENGTH}-"
                    f"{REACTION_CONFIG.MAX_EMOJI_LENGTH} characters",
                    "INVALID_EMOJI",
                    "emoji",
                ),
            )

        message = cls._visible_message(message_id, user.id)
        if message is None:
            return _rejected("add_reaction", user.id, entity, _message_not_found())

        MessageReaction.objects.update_or_create(
            message=message,
            user_id=user.id,
            defaults={"emoji": cleaned},
        )

        audit("add_reaction", user.id, entity)
        publish_on_commit(
            message.conversation_id,
            CHAT_EVENTS.REACTION_ADDED,
            reaction_payload(message, user.id, cleaned),
        )
        return ServiceResult.success(message)

    @classmethod
    @infrastructure_errors
    def remove_reaction(cls, message_id, user: User) -> ServiceResult[Message]:
        """Remove the caller's reaction; a no-op when there is none."""
        entity = f"message:{message_id}"
        message = cls._visible_message(message_id, user.id)
        if message is None:
            return _rejected("remove_reaction", user.id, entity, _message_not_found())

        deleted, _ = MessageReaction.objects.filter(message=message, user_id=user.id).delete()

        audit("remove_reaction", user.id, entity)
        if deleted:
            publish_on_commit(
                message.conversation_id,
                CHAT_EVENTS.REACTION_REMOVED,
                reaction_payload(message, user.id, None),
            )
        return ServiceResult.success(message)


# =============================================================================
# Statistics Service
# =============================================================================


class ChatStatisticsService(BaseService):
    """Read-only aggregate counts."""

    @classmethod
    @infrastructure_errors
    def get_statistics(cls) -> ServiceResult[dict]:
        most_active = (
            Conversation.objects.active()
            .annotate(message_count=Count("messages"))
            .filter(message_count__gt=0)
            .order_by("-message_count", "id")
            .values("id", "kind", "name", "message_count")[: STATISTICS_CONFIG.MOST_ACTIVE_LIMIT]
        )
        return ServiceResult.success(
            {
                "total_conversations": Conversation.objects.count(),
                "active_conversations": Conversation.objects.active().count(),
                "total_messages": Message.objects.count(),
                "messages_today": Message.objects.filter(
                    created_at__gte=start_of_local_day()
                ).count(),
                "online_users": PresenceService.online_count(),
                "most_active_conversations": [
                    {**row, "name": row["name"] or None} for row in most_active
                ],
            }
        )
