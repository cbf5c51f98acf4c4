"""
Notification service layer.

All notifications are created through NotificationService so that the
idempotency rules live in one place. Settlement code calls it from inside
its own transactions; a duplicate key is reported as a failed result, never
raised, so webhook redeliveries stay harmless.

Usage:
    from notifications.models import NotificationKind
    from notifications.services import NotificationService

    result = NotificationService.create_notification(
        recipient=order.seller,
        kind=NotificationKind.NEW_ORDER,
        title="New Order Received",
        body="You have received a new order (3f2a9c1) for ₦100,000.00",
        data={"order_id": str(order.id)},
        idempotency_key=f"new_order:{order.id}",
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.services import BaseService, ServiceResult

from notifications.models import Notification

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser


class NotificationService(BaseService):
    """
    Service for notification operations.

    Methods:
        create_notification: Persist a rendered notification (idempotent per key)
        mark_as_read: Mark a single notification as read
        mark_all_as_read: Mark all user's unread notifications as read
    """

    @classmethod
    def create_notification(
        cls,
        recipient: AbstractBaseUser,
        kind: str,
        title: str,
        body: str = "",
        data: dict | None = None,
        idempotency_key: str | None = None,
    ) -> ServiceResult[Notification]:
        """
        Create a notification for a user.

        Args:
            recipient: User receiving the notification
            kind: NotificationKind value
            title: Rendered title
            body: Rendered body
            data: JSON context for deep links
            idempotency_key: Optional key; a second call with the same key
                creates nothing

        Returns:
            ServiceResult with the created Notification, or a failure with
            error_code DUPLICATE when the key was already used
        """
        if idempotency_key and Notification.objects.filter(
            idempotency_key=idempotency_key
        ).exists():
            cls.get_logger().info(
                "Duplicate notification prevented",
                extra={"idempotency_key": idempotency_key},
            )
            return ServiceResult.failure(
                f"Notification with idempotency_key already exists: {idempotency_key}",
                error_code="DUPLICATE",
            )

        try:
            # Savepoint so a racing duplicate does not poison the caller's transaction
            with transaction.atomic():
                notification = Notification.objects.create(
                    recipient=recipient,
                    kind=kind,
                    title=title,
                    body=body,
                    data=data or {},
                    idempotency_key=idempotency_key,
                )
        except IntegrityError:
            cls.get_logger().info(
                "Duplicate notification prevented (concurrent insert)",
                extra={"idempotency_key": idempotency_key},
            )
            return ServiceResult.failure(
                f"Notification with idempotency_key already exists: {idempotency_key}",
                error_code="DUPLICATE",
            )

        cls.get_logger().info(
            "Notification created",
            extra={
                "notification_id": notification.pk,
                "recipient_id": recipient.pk,
                "kind": kind,
            },
        )
        return ServiceResult.ok(notification)

    @classmethod
    def mark_as_read(
        cls,
        notification: Notification,
        user: AbstractBaseUser,
    ) -> ServiceResult[Notification]:
        """
        Mark a single notification as read.

        Idempotent. Fails with NOT_OWNER when the user is not the recipient.
        """
        if notification.recipient_id != user.pk:
            cls.get_logger().warning(
                f"User {user.pk} attempted to mark notification {notification.pk} "
                f"owned by user {notification.recipient_id}"
            )
            return ServiceResult.failure(
                "Cannot mark notification you don't own",
                error_code="NOT_OWNER",
            )

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=["is_read", "read_at", "updated_at"])

        return ServiceResult.ok(notification)

    @classmethod
    def mark_all_as_read(cls, user: AbstractBaseUser) -> ServiceResult[int]:
        """Mark every unread notification of the user as read in one query."""
        count = Notification.objects.filter(
            recipient=user,
            is_read=False,
        ).update(is_read=True, read_at=timezone.now())

        cls.get_logger().info(
            f"Marked {count} notifications as read for user {user.pk}"
        )
        return ServiceResult.ok(count)
