"""
Tests for the chat service layer.

Test Organization:
    - TestCreateConversation / TestListConversations / TestGetConversation /
      TestUpdateConversation: ConversationService
    - TestAddParticipant / TestRemoveParticipant: ParticipantService
    - TestSendMessage / TestListMessages / TestEditMessage / TestDeleteMessage:
      MessageService
    - TestMarkRead / TestUnreadCounts: ReadStateService
    - TestReactions: ReactionService
    - TestStatistics: ChatStatisticsService
    - TestScenarios: End-to-end flows across services
    - TestAuditLog: One audit line per mutating operation

Every failure is asserted by error kind and code, never by message text.
"""

import logging
import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import OperationalError
from django.utils import timezone

from authentication.tests.factories import UserFactory
from chat.models import (
    Conversation,
    ConversationKind,
    ConversationMember,
    Message,
    MessageKind,
    MessageReaction,
    MessageStatus,
    ReadState,
)
from chat.services import (
    ChatStatisticsService,
    ConversationService,
    MessageService,
    ParticipantService,
    ReactionService,
    ReadStateService,
    normalize_user_id,
)
from chat.tests.factories import (
    GroupConversationFactory,
    MessageFactory,
    MessageReactionFactory,
    ReadStateFactory,
    deactivate,
)
from core.exceptions import ErrorKind, InfrastructureError


def ids(*users):
    return [str(u.id) for u in users]


def assert_failure(result, kind, code):
    assert result.success is False
    assert result.error_kind is kind
    assert result.error_code == code


# =============================================================================
# ConversationService
# =============================================================================


class TestCreateConversation:
    def test_group_creator_becomes_admin(self, alice, bob):
        result = ConversationService.create_conversation(
            alice, ConversationKind.GROUP, [bob.id], name="Backend Team"
        )

        assert result.success
        conversation, created = result.data
        assert created is True
        assert conversation.participant_ids() == ids(bob, alice)
        assert conversation.admin_ids() == ids(alice)
        assert conversation.name == "Backend Team"

    def test_creator_listed_once_in_position(self, alice, bob):
        conversation, _ = ConversationService.create_conversation(
            alice, "group", [alice.id, bob.id, str(bob.id).upper()]
        ).data

        assert conversation.participant_ids() == ids(alice, bob)

    def test_group_with_only_creator(self, alice):
        conversation, _ = ConversationService.create_conversation(alice, "group", []).data

        assert conversation.participant_ids() == ids(alice)

    def test_config_is_applied(self, alice, bob):
        conversation, _ = ConversationService.create_conversation(
            alice,
            "group",
            [bob.id],
            config={"only_admins_can_post": True},
        ).data

        assert conversation.only_admins_can_post is True
        assert conversation.notifications_enabled is True

    def test_private_has_no_admins_and_no_name(self, alice, bob):
        conversation, created = ConversationService.create_conversation(
            alice, "private", [bob.id], name="ignored"
        ).data

        assert created is True
        assert conversation.admin_ids() == []
        assert conversation.name == ""
        assert sorted(conversation.participant_ids()) == sorted(ids(alice, bob))

    def test_private_is_idempotent(self, alice, bob):
        first, _ = ConversationService.create_conversation(alice, "private", [bob.id]).data
        second, created = ConversationService.create_conversation(bob, "private", [alice.id]).data

        assert second.id == first.id
        assert created is False
        assert Conversation.objects.filter(kind="private").count() == 1

    def test_private_after_deactivation_creates_new(self, private, alice, bob):
        deactivate(private)

        conversation, created = ConversationService.create_conversation(
            alice, "private", [bob.id]
        ).data

        assert created is True
        assert conversation.id != private.id

    def test_private_lost_race_returns_winner(self, private, alice, bob):
        with patch.object(ConversationService, "_find_private", side_effect=[None, private]):
            result = ConversationService.create_conversation(alice, "private", [bob.id])

        conversation, created = result.data
        assert conversation.id == private.id
        assert created is False

    @pytest.mark.parametrize("participants", [[], ["b", "c"]])
    def test_private_needs_exactly_two(self, alice, participants):
        result = ConversationService.create_conversation(alice, "private", participants)

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "INVALID_PARTICIPANT_COUNT")

    def test_private_with_self_only_is_rejected(self, alice):
        result = ConversationService.create_conversation(alice, "private", [alice.id])

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "INVALID_PARTICIPANT_COUNT")

    def test_invalid_kind(self, alice):
        result = ConversationService.create_conversation(alice, "channel", [])

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "INVALID_KIND")

    def test_unknown_participants_are_reported(self, alice):
        ghost = str(uuid.uuid4())
        inactive = UserFactory(is_active=False)

        result = ConversationService.create_conversation(
            alice, "group", [ghost, inactive.id, "not-a-uuid"]
        )

        assert_failure(result, ErrorKind.NOT_FOUND, "PARTICIPANTS_NOT_FOUND")
        assert result.errors["participants"] == sorted([ghost, str(inactive.id), "not-a-uuid"])
        assert not Conversation.objects.exists()

    def test_name_too_long(self, alice):
        result = ConversationService.create_conversation(alice, "group", [], name="n" * 101)

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "NAME_TOO_LONG")

    def test_description_too_long(self, alice):
        result = ConversationService.create_conversation(
            alice, "group", [], description="d" * 501
        )

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "DESCRIPTION_TOO_LONG")

    @pytest.mark.parametrize(
        "config",
        [{"mute": True}, {"only_admins_can_post": "yes"}, ["notifications_enabled"]],
    )
    def test_invalid_config(self, alice, config):
        result = ConversationService.create_conversation(alice, "group", [], config=config)

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "INVALID_CONFIG")

    def test_store_failure_is_infrastructure(self, alice, bob):
        with patch("chat.services.Conversation.objects.create", side_effect=OperationalError):
            with pytest.raises(InfrastructureError):
                ConversationService.create_conversation(alice, "group", [bob.id])


class TestListConversations:
    def test_only_own_active_conversations(self, group, private, alice, dave):
        other = GroupConversationFactory(creator=dave)
        deleted = GroupConversationFactory(creator=alice)
        deactivate(deleted)

        page = ConversationService.list_conversations(alice).data

        assert {c.id for c in page.items} == {group.id, private.id}
        assert other.id not in {c.id for c in page.items}

    def test_inactive_listing(self, group, alice):
        deactivate(group)

        page = ConversationService.list_conversations(alice, active=False).data

        assert [c.id for c in page.items] == [group.id]

    def test_filter_by_kind(self, group, private, alice):
        page = ConversationService.list_conversations(alice, kind="private").data

        assert [c.id for c in page.items] == [private.id]

    def test_search_matches_name_or_description(self, group, private, alice):
        by_name = ConversationService.list_conversations(alice, search="frontend").data
        by_description = ConversationService.list_conversations(alice, search="LOOP").data

        assert [c.id for c in by_name.items] == [group.id]
        assert [c.id for c in by_description.items] == [group.id]

    def test_orders_by_last_message_with_silent_conversations_last(self, alice, bob):
        silent = GroupConversationFactory(creator=alice)
        older = GroupConversationFactory(creator=alice)
        newer = GroupConversationFactory(creator=alice)
        now = timezone.now()
        Conversation.objects.filter(pk=older.pk).update(last_message_at=now - timedelta(hours=1))
        Conversation.objects.filter(pk=newer.pk).update(last_message_at=now)

        desc = ConversationService.list_conversations(alice).data
        asc = ConversationService.list_conversations(alice, order="asc").data

        assert [c.id for c in desc.items] == [newer.id, older.id, silent.id]
        assert [c.id for c in asc.items] == [silent.id, older.id, newer.id]

    def test_pagination_metadata(self, alice):
        for _ in range(5):
            GroupConversationFactory(creator=alice)

        page = ConversationService.list_conversations(alice, page=2, limit=2).data

        assert len(page.items) == 2
        assert page.total == 5
        assert page.total_pages == 3
        assert page.has_next is True
        assert page.has_prev is True

    def test_limit_is_clamped(self, alice):
        page = ConversationService.list_conversations(alice, limit=1000).data

        assert page.limit == 50

    def test_invalid_order_by(self, alice):
        result = ConversationService.list_conversations(alice, order_by="name")

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "INVALID_ORDER_BY")

    def test_invalid_order(self, alice):
        result = ConversationService.list_conversations(alice, order="sideways")

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "INVALID_ORDER")


class TestGetConversation:
    def test_participant_gets_conversation(self, group, bob):
        result = ConversationService.get_conversation(group.id, bob)

        assert result.data.id == group.id

    def test_non_participant_and_missing_look_the_same(self, group, dave):
        hidden = ConversationService.get_conversation(group.id, dave)
        missing = ConversationService.get_conversation(999999, dave)

        assert_failure(hidden, ErrorKind.NOT_FOUND, "CONVERSATION_NOT_FOUND")
        assert_failure(missing, ErrorKind.NOT_FOUND, "CONVERSATION_NOT_FOUND")
        assert hidden.to_response() == missing.to_response()

    def test_inactive_is_not_found(self, group, alice):
        deactivate(group)

        result = ConversationService.get_conversation(group.id, alice)

        assert_failure(result, ErrorKind.NOT_FOUND, "CONVERSATION_NOT_FOUND")


class TestUpdateConversation:
    def test_admin_updates_name_and_config(self, group, alice):
        result = ConversationService.update_conversation(
            group.id,
            alice,
            {"name": "Platform Hiring", "config": {"only_admins_can_post": True}},
        )

        conversation = result.data
        assert conversation.name == "Platform Hiring"
        assert conversation.description == "Interview loop"
        assert conversation.only_admins_can_post is True
        assert conversation.notifications_enabled is True

    def test_clearing_description(self, group, alice):
        conversation = ConversationService.update_conversation(
            group.id, alice, {"description": None}
        ).data

        assert conversation.description == ""

    def test_non_admin_member_is_forbidden(self, group, bob):
        result = ConversationService.update_conversation(group.id, bob, {"name": "Mine"})

        assert_failure(result, ErrorKind.FORBIDDEN, "NOT_ADMIN")
        group.refresh_from_db()
        assert group.name == "Frontend Hiring"

    def test_outsider_gets_not_found(self, group, dave):
        result = ConversationService.update_conversation(group.id, dave, {"name": "x"})

        assert_failure(result, ErrorKind.NOT_FOUND, "CONVERSATION_NOT_FOUND")

    def test_any_private_participant_can_update_config(self, private, bob):
        result = ConversationService.update_conversation(
            private.id, bob, {"config": {"notifications_enabled": False}}
        )

        assert result.data.notifications_enabled is False

    def test_validation_runs_before_access_check(self, group, dave):
        result = ConversationService.update_conversation(group.id, dave, {"name": "n" * 101})

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "NAME_TOO_LONG")


# =============================================================================
# ParticipantService
# =============================================================================


class TestAddParticipant:
    def test_admin_adds_user(self, group, alice, dave):
        result = ParticipantService.add_participant(group.id, alice, dave.id)

        assert result.data.participant_ids()[-1] == str(dave.id)
        assert not result.data.has_admin(dave.id)

    def test_non_admin_is_forbidden(self, group, bob, dave):
        result = ParticipantService.add_participant(group.id, bob, dave.id)

        assert_failure(result, ErrorKind.FORBIDDEN, "NOT_ADMIN")

    def test_already_participant_conflicts(self, group, alice, bob):
        result = ParticipantService.add_participant(group.id, alice, bob.id)

        assert_failure(result, ErrorKind.CONFLICT, "ALREADY_PARTICIPANT")

    def test_unknown_user(self, group, alice):
        result = ParticipantService.add_participant(group.id, alice, uuid.uuid4())

        assert_failure(result, ErrorKind.NOT_FOUND, "USER_NOT_FOUND")

    def test_private_conversation_rejected(self, private, alice, dave):
        result = ParticipantService.add_participant(private.id, alice, dave.id)

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "GROUP_ONLY")

    def test_outsider_gets_not_found(self, group, dave, carol):
        result = ParticipantService.add_participant(group.id, dave, carol.id)

        assert_failure(result, ErrorKind.NOT_FOUND, "CONVERSATION_NOT_FOUND")


class TestRemoveParticipant:
    def test_admin_removes_member(self, group, alice, bob, carol):
        result = ParticipantService.remove_participant(group.id, alice, bob.id)

        assert result.data.participant_ids() == ids(alice, carol)

    def test_member_leaves(self, group, bob):
        result = ParticipantService.remove_participant(group.id, bob, bob.id)

        assert result.success
        assert not ConversationMember.objects.filter(conversation=group, user=bob).exists()

    def test_member_cannot_remove_others(self, group, bob, carol):
        result = ParticipantService.remove_participant(group.id, bob, carol.id)

        assert_failure(result, ErrorKind.FORBIDDEN, "NOT_ADMIN")

    def test_creator_cannot_leave(self, group, alice):
        result = ParticipantService.remove_participant(group.id, alice, alice.id)

        assert_failure(result, ErrorKind.FORBIDDEN, "CREATOR_CANNOT_LEAVE")

    def test_other_admin_cannot_remove_creator(self, alice, bob):
        conversation = GroupConversationFactory(creator=alice, members=[bob], admins=[bob])

        result = ParticipantService.remove_participant(conversation.id, bob, alice.id)

        assert_failure(result, ErrorKind.FORBIDDEN, "CREATOR_CANNOT_LEAVE")

    def test_removing_non_participant(self, group, alice, dave):
        result = ParticipantService.remove_participant(group.id, alice, dave.id)

        assert_failure(result, ErrorKind.NOT_FOUND, "NOT_PARTICIPANT")

    def test_private_conversation_rejected(self, private, alice, bob):
        result = ParticipantService.remove_participant(private.id, alice, bob.id)

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "GROUP_ONLY")

    def test_removed_member_loses_access(self, group, alice, bob):
        ParticipantService.remove_participant(group.id, alice, bob.id)

        result = ConversationService.get_conversation(group.id, bob)

        assert_failure(result, ErrorKind.NOT_FOUND, "CONVERSATION_NOT_FOUND")


# =============================================================================
# MessageService
# =============================================================================


class TestSendMessage:
    def test_sends_and_updates_last_message(self, group, bob):
        result = MessageService.send_message(group.id, bob, "  Hello team  ")

        message = result.data
        assert message.content == "Hello team"
        assert message.kind == MessageKind.TEXT
        assert message.status == MessageStatus.SENT
        group.refresh_from_db()
        assert group.last_message_content == "Hello team"
        assert str(group.last_message_author_id) == str(bob.id)
        assert group.last_message_at == message.created_at

    def test_stale_send_does_not_roll_cache_back(self, group, alice, bob):
        future = timezone.now() + timedelta(minutes=5)
        Conversation.objects.filter(pk=group.pk).update(
            last_message_at=future, last_message_content="later", last_message_author_id=alice.id
        )

        MessageService.send_message(group.id, bob, "earlier")

        group.refresh_from_db()
        assert group.last_message_content == "later"

    @pytest.mark.parametrize("content", ["", "   ", None])
    def test_empty_content(self, group, bob, content):
        result = MessageService.send_message(group.id, bob, content)

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "EMPTY_CONTENT")

    def test_content_length_bounds(self, group, bob):
        assert MessageService.send_message(group.id, bob, "x" * 2000).success

        result = MessageService.send_message(group.id, bob, "x" * 2001)

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "CONTENT_TOO_LONG")

    def test_invalid_kind(self, group, bob):
        result = MessageService.send_message(group.id, bob, "hi", kind="sticker")

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "INVALID_KIND")

    def test_attachments_are_stored_in_order(self, group, bob):
        attachments = [
            {"name": "cv.pdf", "url": "https://cdn.example.com/cv.pdf", "mime_type": "application/pdf", "size_bytes": 2048},
            {"name": "photo.png", "url": "https://cdn.example.com/p.png", "mime_type": "image/png", "size_bytes": 0},
        ]

        message = MessageService.send_message(
            group.id, bob, "my files", kind="file", attachments=attachments
        ).data

        message.refresh_from_db()
        assert message.attachments == attachments

    @pytest.mark.parametrize(
        "attachments",
        [
            "cv.pdf",
            [{"name": "cv.pdf"}],
            [{"name": "a", "url": "u", "mime_type": "m", "size_bytes": -1}],
            [{"name": "a", "url": "u", "mime_type": "m", "size_bytes": True}],
        ],
    )
    def test_invalid_attachments(self, group, bob, attachments):
        result = MessageService.send_message(group.id, bob, "hi", attachments=attachments)

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "INVALID_ATTACHMENTS")

    def test_too_many_attachments(self, group, bob):
        item = {"name": "a", "url": "u", "mime_type": "m", "size_bytes": 1}

        result = MessageService.send_message(group.id, bob, "hi", attachments=[item] * 11)

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "TOO_MANY_ATTACHMENTS")

    def test_outsider_gets_not_found(self, group, dave):
        result = MessageService.send_message(group.id, dave, "hi")

        assert_failure(result, ErrorKind.NOT_FOUND, "CONVERSATION_NOT_FOUND")

    def test_only_admins_can_post(self, alice, bob):
        conversation = GroupConversationFactory(
            creator=alice, members=[bob], only_admins_can_post=True
        )

        denied = MessageService.send_message(conversation.id, bob, "hi")
        allowed = MessageService.send_message(conversation.id, alice, "announcement")

        assert_failure(denied, ErrorKind.FORBIDDEN, "ADMINS_ONLY")
        assert allowed.success
        conversation.refresh_from_db()
        assert conversation.last_message_content == "announcement"

    def test_reply_to_visible_message(self, group, alice, bob):
        original = MessageFactory(conversation=group, author=alice)

        reply = MessageService.send_message(group.id, bob, "agreed", reply_to=original.id).data

        assert reply.reply_to_id == original.id

    def test_reply_to_unknown_or_hidden_message(self, group, bob, dave):
        hidden = MessageFactory(conversation=GroupConversationFactory(creator=dave))

        unknown = MessageService.send_message(group.id, bob, "?", reply_to=999999)
        not_visible = MessageService.send_message(group.id, bob, "?", reply_to=hidden.id)

        assert_failure(unknown, ErrorKind.INVALID_ARGUMENT, "INVALID_REPLY")
        assert_failure(not_visible, ErrorKind.INVALID_ARGUMENT, "INVALID_REPLY")


class TestListMessages:
    @pytest.fixture
    def history(self, group, alice, bob):
        now = timezone.now()
        messages = [
            MessageFactory(conversation=group, author=alice, content="Kickoff at 10"),
            MessageFactory(conversation=group, author=bob, content="see the attached", kind="file"),
            MessageFactory(conversation=group, author=alice, content="Kickoff moved"),
        ]
        for offset, message in enumerate(messages):
            Message.objects.filter(pk=message.pk).update(
                created_at=now - timedelta(hours=len(messages) - offset)
            )
        return messages

    def test_newest_first_by_default(self, group, alice, history):
        page = MessageService.list_messages(group.id, alice).data

        assert [m.id for m in page.items] == [m.id for m in reversed(history)]

    def test_ascending(self, group, alice, history):
        page = MessageService.list_messages(group.id, alice, order="asc").data

        assert [m.id for m in page.items] == [m.id for m in history]

    def test_filters(self, group, alice, bob, history):
        by_author = MessageService.list_messages(group.id, alice, author_id=str(bob.id)).data
        by_kind = MessageService.list_messages(group.id, alice, kind="file").data
        by_text = MessageService.list_messages(group.id, alice, search="kickoff").data

        assert [m.id for m in by_author.items] == [history[1].id]
        assert [m.id for m in by_kind.items] == [history[1].id]
        assert {m.id for m in by_text.items} == {history[0].id, history[2].id}

    def test_date_range(self, group, alice, history):
        history[1].refresh_from_db()
        start = history[1].created_at

        page = MessageService.list_messages(group.id, alice, date_from=start, date_to=start).data

        assert [m.id for m in page.items] == [history[1].id]

    def test_pagination(self, group, alice, history):
        page = MessageService.list_messages(group.id, alice, page=2, limit=2).data

        assert [m.id for m in page.items] == [history[0].id]
        assert page.total == 3
        assert page.has_next is False

    def test_malformed_author_id(self, group, alice):
        result = MessageService.list_messages(group.id, alice, author_id="nope")

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "INVALID_AUTHOR")

    def test_outsider_gets_not_found(self, group, dave, history):
        result = MessageService.list_messages(group.id, dave)

        assert_failure(result, ErrorKind.NOT_FOUND, "CONVERSATION_NOT_FOUND")


class TestEditMessage:
    def test_author_edits(self, group, bob):
        message = MessageFactory(conversation=group, author=bob, content="teh plan")

        edited = MessageService.edit_message(message.id, bob, " the plan ").data

        assert edited.content == "the plan"
        assert edited.edited is True
        assert edited.edited_at is not None

    def test_non_author_gets_not_found(self, group, alice, bob):
        message = MessageFactory(conversation=group, author=bob)

        result = MessageService.edit_message(message.id, alice, "hijack")

        assert_failure(result, ErrorKind.NOT_FOUND, "MESSAGE_NOT_FOUND")

    def test_empty_content(self, group, bob):
        message = MessageFactory(conversation=group, author=bob)

        result = MessageService.edit_message(message.id, bob, " ")

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "EMPTY_CONTENT")

    def test_message_in_inactive_conversation(self, group, bob):
        message = MessageFactory(conversation=group, author=bob)
        deactivate(group)

        result = MessageService.edit_message(message.id, bob, "update")

        assert_failure(result, ErrorKind.NOT_FOUND, "MESSAGE_NOT_FOUND")


class TestDeleteMessage:
    def test_author_deletes(self, group, bob):
        message = MessageFactory(conversation=group, author=bob)

        result = MessageService.delete_message(message.id, bob)

        assert result.success
        assert not Message.objects.filter(pk=message.pk).exists()

    def test_non_author_gets_not_found(self, group, alice, bob):
        message = MessageFactory(conversation=group, author=bob)

        result = MessageService.delete_message(message.id, alice)

        assert_failure(result, ErrorKind.NOT_FOUND, "MESSAGE_NOT_FOUND")
        assert Message.objects.filter(pk=message.pk).exists()


# =============================================================================
# ReadStateService
# =============================================================================


class TestMarkRead:
    def test_creates_then_moves_cursor(self, group, alice, bob):
        first = MessageFactory(conversation=group, author=alice)
        second = MessageFactory(conversation=group, author=alice)

        ReadStateService.mark_read(group.id, first.id, bob)
        ReadStateService.mark_read(group.id, second.id, bob)

        state = ReadState.objects.get(conversation=group, user=bob)
        assert state.last_read_message_id == second.id
        assert ReadState.objects.filter(conversation=group).count() == 1

    def test_flips_message_status(self, group, alice, bob):
        message = MessageFactory(conversation=group, author=alice)

        ReadStateService.mark_read(group.id, message.id, bob)

        message.refresh_from_db()
        assert message.status == MessageStatus.READ

    def test_author_reading_own_message_flips_status(self, group, alice):
        message = MessageFactory(conversation=group, author=alice)

        ReadStateService.mark_read(group.id, message.id, alice)

        message.refresh_from_db()
        assert message.status == MessageStatus.READ

    def test_message_from_other_conversation(self, group, private, alice, bob):
        elsewhere = MessageFactory(conversation=private, author=alice)

        result = ReadStateService.mark_read(group.id, elsewhere.id, bob)

        assert_failure(result, ErrorKind.NOT_FOUND, "MESSAGE_NOT_FOUND")

    def test_outsider_gets_not_found(self, group, alice, dave):
        message = MessageFactory(conversation=group, author=alice)

        result = ReadStateService.mark_read(group.id, message.id, dave)

        assert_failure(result, ErrorKind.NOT_FOUND, "CONVERSATION_NOT_FOUND")


class TestUnreadCounts:
    def test_counts_messages_by_others_after_cursor(self, group, private, alice, bob):
        now = timezone.now()
        read_at = now - timedelta(minutes=10)
        ReadStateFactory(conversation=group, user=bob, last_read_at=read_at)
        before = MessageFactory(conversation=group, author=alice)
        after = MessageFactory(conversation=group, author=alice)
        MessageFactory(conversation=group, author=bob)
        Message.objects.filter(pk=before.pk).update(created_at=read_at - timedelta(minutes=1))
        Message.objects.filter(pk=after.pk).update(created_at=now)
        MessageFactory(conversation=private, author=alice)

        counts = ReadStateService.unread_counts(bob.id, [group.id, private.id])

        assert counts == {group.id: 1, private.id: 1}

    def test_never_read_counts_everything_from_others(self, group, alice, carol):
        MessageFactory.create_batch(3, conversation=group, author=alice)

        assert ReadStateService.unread_counts(carol.id, [group.id]) == {group.id: 3}

    def test_zero_for_quiet_conversations(self, group, alice):
        assert ReadStateService.unread_counts(alice.id, [group.id]) == {group.id: 0}

    def test_empty_input(self, alice):
        assert ReadStateService.unread_counts(alice.id, []) == {}


# =============================================================================
# ReactionService
# =============================================================================


class TestReactions:
    def test_second_reaction_replaces_first(self, group, alice, bob):
        message = MessageFactory(conversation=group, author=alice)

        ReactionService.add_reaction(message.id, bob, "👍")
        ReactionService.add_reaction(message.id, bob, "😂")

        reactions = MessageReaction.objects.filter(message=message, user=bob)
        assert [r.emoji for r in reactions] == ["😂"]

    def test_reactions_from_different_users_coexist(self, group, alice, bob):
        message = MessageFactory(conversation=group, author=alice)

        ReactionService.add_reaction(message.id, alice, "🎉")
        ReactionService.add_reaction(message.id, bob, "🎉")

        assert message.reactions.count() == 2

    def test_compound_emoji_accepted(self, group, bob):
        message = MessageFactory(conversation=group)

        result = ReactionService.add_reaction(message.id, bob, "👍🏽")

        assert result.success

    @pytest.mark.parametrize("emoji", ["", "   ", "x" * 11, None])
    def test_invalid_emoji(self, group, bob, emoji):
        message = MessageFactory(conversation=group)

        result = ReactionService.add_reaction(message.id, bob, emoji)

        assert_failure(result, ErrorKind.INVALID_ARGUMENT, "INVALID_EMOJI")

    def test_hidden_message_is_not_found(self, group, dave):
        message = MessageFactory(conversation=group)

        result = ReactionService.add_reaction(message.id, dave, "👍")

        assert_failure(result, ErrorKind.NOT_FOUND, "MESSAGE_NOT_FOUND")

    def test_remove_reaction(self, group, bob):
        message = MessageFactory(conversation=group)
        MessageReactionFactory(message=message, user=bob)

        result = ReactionService.remove_reaction(message.id, bob)

        assert result.success
        assert not message.reactions.exists()

    def test_remove_without_reaction_is_noop(self, group, bob):
        message = MessageFactory(conversation=group)

        assert ReactionService.remove_reaction(message.id, bob).success

    def test_remove_on_hidden_message(self, group, dave):
        message = MessageFactory(conversation=group)

        result = ReactionService.remove_reaction(message.id, dave)

        assert_failure(result, ErrorKind.NOT_FOUND, "MESSAGE_NOT_FOUND")


# =============================================================================
# ChatStatisticsService
# =============================================================================


class TestStatistics:
    def test_counts(self, group, private, alice, bob, presence):
        busy = group
        MessageFactory.create_batch(3, conversation=busy, author=alice)
        old = MessageFactory(conversation=private, author=bob)
        Message.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=2))
        deleted = GroupConversationFactory(creator=alice)
        deactivate(deleted)
        presence.online = {str(alice.id), str(bob.id)}

        stats = ChatStatisticsService.get_statistics().data

        assert stats["total_conversations"] == 3
        assert stats["active_conversations"] == 2
        assert stats["total_messages"] == 4
        assert stats["messages_today"] == 3
        assert stats["online_users"] == 2
        assert stats["most_active_conversations"] == [
            {"id": busy.id, "kind": "group", "name": "Frontend Hiring", "message_count": 3},
            {"id": private.id, "kind": "private", "name": None, "message_count": 1},
        ]

    def test_empty_store(self, db, presence):
        stats = ChatStatisticsService.get_statistics().data

        assert stats["total_conversations"] == 0
        assert stats["most_active_conversations"] == []


# =============================================================================
# Scenarios
# =============================================================================


class TestScenarios:
    def test_group_moderation_flow(self, alice, bob):
        conversation, _ = ConversationService.create_conversation(alice, "group", [alice.id, bob.id]).data
        assert conversation.participant_ids() == ids(alice, bob)
        assert conversation.admin_ids() == ids(alice)

        assert MessageService.send_message(conversation.id, bob, "hello").success
        conversation.refresh_from_db()
        assert str(conversation.last_message_author_id) == str(bob.id)

        ConversationService.update_conversation(
            conversation.id, alice, {"config": {"only_admins_can_post": True}}
        )
        denied = MessageService.send_message(conversation.id, bob, "again")
        assert denied.error_kind is ErrorKind.FORBIDDEN

        result = ParticipantService.remove_participant(conversation.id, alice, bob.id)
        assert result.data.participant_ids() == ids(alice)

    def test_private_read_flow(self, alice, bob):
        conversation, _ = ConversationService.create_conversation(alice, "private", [bob.id]).data
        message = MessageService.send_message(conversation.id, alice, "hi").data

        ReadStateService.mark_read(conversation.id, message.id, bob)

        state = ReadState.objects.get(conversation=conversation, user=bob)
        assert state.last_read_message_id == message.id
        message.refresh_from_db()
        assert message.status == MessageStatus.READ

    def test_edit_then_delete_leaves_dangling_reply(self, group, alice, bob):
        message = MessageService.send_message(group.id, alice, "draft").data
        reply = MessageService.send_message(group.id, bob, "re: draft", reply_to=message.id).data

        edited = MessageService.edit_message(message.id, alice, "final").data
        assert edited.edited is True
        assert edited.content == "final"
        assert edited.edited_at is not None

        MessageService.delete_message(message.id, alice)

        page = MessageService.list_messages(group.id, alice).data
        assert [m.id for m in page.items] == [reply.id]
        assert page.items[0].reply_to_id == message.id


# =============================================================================
# Audit log
# =============================================================================


class TestAuditLog:
    def test_success_logged_at_info(self, group, bob):
        with patch("chat.services.audit_logger") as audit_logger:
            message = MessageService.send_message(group.id, bob, "hello").data

        audit_logger.log.assert_called_once_with(
            logging.INFO,
            f"action=send_message actor={bob.id} entity=message:{message.id} outcome=ok",
        )

    def test_rejection_logged_with_kind(self, group, dave):
        with patch("chat.services.audit_logger") as audit_logger:
            MessageService.send_message(group.id, dave, "hello")

        level, line = audit_logger.log.call_args.args
        assert level == logging.WARNING
        assert line.endswith("outcome=not_found")

    def test_reads_are_not_audited(self, group, alice):
        with patch("chat.services.audit_logger") as audit_logger:
            ConversationService.get_conversation(group.id, alice)
            ConversationService.list_conversations(alice)

        audit_logger.log.assert_not_called()


def test_normalize_user_id():
    value = uuid.uuid4()

    assert normalize_user_id(str(value).upper()) == str(value)
    assert normalize_user_id("not-a-uuid") == "not-a-uuid"
