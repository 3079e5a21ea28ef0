"""
Chat app for job platform messaging.

This app handles:
- Private (two user) and group conversations
- Group admins and posting restrictions
- Message sending, history, edits, replies and reactions
- Read cursors and unread counts
- Presence and chat statistics

Related apps:
    - authentication: User Directory for participant display data

Realtime Support:
    State changes are published to Django Channels groups after commit.
    See events.py.

Usage:
    from chat.services import ConversationService, MessageService

    conversation, created = ConversationService.create_conversation(
        creator=user,
        kind="group",
        participant_ids=[other_user.id],
        name="Frontend Hiring",
    ).data

    message = MessageService.send_message(conversation.id, user, "Hello!").data
"""
