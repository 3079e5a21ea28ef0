"""
Test configuration and fixtures for authentication tests.

This module provides:
- User fixtures for directory lookups

Usage:
    def test_example(user):
        assert user.is_active
"""

import pytest

from authentication.models import UserRole
from authentication.tests.factories import UserFactory


@pytest.fixture
def user(db):
    """Active student with a full display name."""
    return UserFactory(first_name="Ana", last_name="Silva", role=UserRole.STUDENT)


@pytest.fixture
def company_user(db):
    """Active company account without an avatar."""
    return UserFactory(first_name="Acme", last_name="", avatar="", role=UserRole.COMPANY)


@pytest.fixture
def inactive_user(db):
    """Deactivated account (no longer resolves in the directory)."""
    return UserFactory(is_active=False)
