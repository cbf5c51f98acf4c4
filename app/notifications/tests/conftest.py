"""Pytest fixtures for notification tests."""

import pytest

from notifications.tests.factories import NotificationFactory, UserFactory


@pytest.fixture
def user(db):
    """Create a notification recipient."""
    return UserFactory()


@pytest.fixture
def other_user(db):
    """Create a second user who does not own the fixtures' notifications."""
    return UserFactory()


@pytest.fixture
def unread_notification(db, user):
    """Create an unread notification for ``user``."""
    return NotificationFactory(recipient=user)
