"""
Notification sink models.

The settlement engine records every user-facing event here (new order,
payout outcome, dispute opened/resolved). Delivery over push/email/SMS is
handled by an external consumer that reads unread rows; this service only
persists them.

Design Decisions:
    - Notification inherits from BaseModel (timestamps, ordering)
    - Kinds are a closed TextChoices set rather than a lookup table
    - idempotency_key is unique when present, so webhook redeliveries
      never notify twice

Usage:
    from notifications.models import Notification, NotificationKind

    unread = Notification.objects.filter(recipient=user, is_read=False)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class NotificationKind(models.TextChoices):
    """Closed set of notification kinds emitted by the settlement engine."""

    NEW_ORDER = "new_order", "New Order"
    ORDER_CONFIRMED = "order_confirmed", "Order Confirmed"
    PAYOUT_COMPLETED = "payout_completed", "Payout Completed"
    PAYOUT_FAILED = "payout_failed", "Payout Failed"
    PAYOUT_REVERSED = "payout_reversed", "Payout Reversed"
    DISPUTE_OPENED = "dispute_opened", "Dispute Opened"
    DISPUTE_RESOLVED = "dispute_resolved", "Dispute Resolved"


class Notification(BaseModel):
    """
    A single notification addressed to one user.

    Title and body are fully rendered at creation time and never change;
    only the read flag is mutable.

    Fields:
        recipient: User receiving the notification (scopes all queries)
        kind: NotificationKind value
        title: Rendered title
        body: Rendered body
        data: JSON context for deep links (order_id, payout_id, amounts)
        is_read / read_at: Read tracking
        idempotency_key: Optional unique key preventing duplicates
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="User receiving this notification",
    )

    kind = models.CharField(
        max_length=32,
        choices=NotificationKind.choices,
        db_index=True,
        help_text="Kind of event this notification reports",
    )

    title = models.CharField(
        max_length=255,
        help_text="Rendered notification title",
    )

    body = models.TextField(
        blank=True,
        default="",
        help_text="Rendered notification body",
    )

    data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Context data (order_id, payout_id, amounts)",
    )

    is_read = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether recipient has read this notification",
    )

    read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the recipient read this notification",
    )

    idempotency_key = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Idempotency key to prevent duplicate notifications",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["recipient", "is_read", "-created_at"],
                name="notif_recipient_unread_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["idempotency_key"],
                name="notif_idempotency_key_unique",
                condition=models.Q(idempotency_key__isnull=False),
            ),
        ]

    def __str__(self) -> str:
        read_status = "read" if self.is_read else "unread"
        return f"Notification({self.kind}) -> User {self.recipient_id} [{read_status}]"
