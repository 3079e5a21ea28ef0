"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Conversation, membership, message model tests
- test_services.py: Service layer rules and scenarios
- test_serializers.py: Output shapes and batched lookups
- test_events.py: Realtime event dispatch
- test_presence.py: Presence backend and service
- test_views.py: REST API endpoint tests

Usage:
    pytest chat/tests/
    pytest chat/tests/test_services.py
"""
