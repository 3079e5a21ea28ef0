"""
Test configuration and fixtures for chat tests.

This module provides:
- Users with fixed display names (alice creates, bob and carol join,
  dave is an outsider)
- Conversation fixtures (private and group)
- In-memory event sink and presence backend
- API client helpers for authenticated requests

Usage:
    def test_example(group, alice_client):
        response = alice_client.get(f"/api/v1/chat/conversations/{group.id}/")
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from chat.tests.factories import GroupConversationFactory, PrivateConversationFactory
from chat.tests.fakes import RecordingEventSink, StaticPresenceBackend


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def alice(db):
    """Creator of the test conversations."""
    return UserFactory(first_name="Alice", last_name="Moreau")


@pytest.fixture
def bob(db):
    return UserFactory(first_name="Bob", last_name="Tanaka")


@pytest.fixture
def carol(db):
    return UserFactory(first_name="Carol", last_name="Diaz")


@pytest.fixture
def dave(db):
    """Not a participant in any test conversation."""
    return UserFactory(first_name="Dave", last_name="Okafor")


# =============================================================================
# Conversation Fixtures
# =============================================================================


@pytest.fixture
def group(alice, bob, carol):
    """Group created by alice; bob and carol are plain members."""
    return GroupConversationFactory(
        creator=alice,
        members=[bob, carol],
        name="Frontend Hiring",
        description="Interview loop",
    )


@pytest.fixture
def private(alice, bob):
    """Private conversation between alice and bob."""
    return PrivateConversationFactory(creator=alice, other=bob)


# =============================================================================
# Collaborator Fixtures
# =============================================================================


@pytest.fixture
def event_sink(settings):
    """
    Record published events instead of sending them to the channel layer.

    Events are published on commit; wrap the call under test in
    django_capture_on_commit_callbacks(execute=True).
    """
    settings.CHAT_EVENT_SINK = "chat.tests.fakes.RecordingEventSink"
    RecordingEventSink.events = []
    yield RecordingEventSink
    RecordingEventSink.events = []


@pytest.fixture
def presence(settings):
    """Presence backend whose online set is controlled by the test."""
    settings.CHAT_PRESENCE_BACKEND = "chat.tests.fakes.StaticPresenceBackend"
    StaticPresenceBackend.online = set()
    yield StaticPresenceBackend
    StaticPresenceBackend.online = set()


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory(db):
    """
    Factory to create authenticated clients for any user.

    Usage:
        def test_example(authenticated_client_factory, some_user):
            client = authenticated_client_factory(some_user)
            response = client.get("/api/v1/chat/conversations/")
    """

    def _make_client(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _make_client


@pytest.fixture
def alice_client(authenticated_client_factory, alice):
    return authenticated_client_factory(alice)


@pytest.fixture
def bob_client(authenticated_client_factory, bob):
    return authenticated_client_factory(bob)


@pytest.fixture
def dave_client(authenticated_client_factory, dave):
    return authenticated_client_factory(dave)
