"""
Factory Boy factories for notification test data.

Usage:
    from notifications.tests.factories import NotificationFactory, UserFactory

    notification = NotificationFactory(recipient=user, is_read=False)
"""

import factory
from django.contrib.auth import get_user_model

from notifications.models import Notification, NotificationKind


class UserFactory(factory.django.DjangoModelFactory):
    """Minimal user factory for notification tests."""

    class Meta:
        model = get_user_model()
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f"notify_user{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    password = factory.PostGenerationMethodCall("set_password", "testpass123")
    is_active = True


class NotificationFactory(factory.django.DjangoModelFactory):
    """Factory for Notification rows; defaults to an unread new-order notice."""

    class Meta:
        model = Notification
        skip_postgeneration_save = True

    recipient = factory.SubFactory(UserFactory)
    kind = NotificationKind.NEW_ORDER
    title = "New Order Received"
    body = factory.Sequence(lambda n: f"You have received a new order ({n:07d})")
    data = factory.LazyFunction(dict)
    is_read = False
