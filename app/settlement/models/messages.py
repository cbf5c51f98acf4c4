"""
Order-scoped chat messages.

The settlement engine appends a system message for every lifecycle
event (sent, received, auto-released, dispute opened/resolved,
cancelled). Messages are append-only; the chat UI reads them.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class OrderMessage(BaseModel):
    """
    One chat message attached to an order.

    System messages have no sender and ``is_system=True``.
    """

    order = models.ForeignKey(
        "settlement.Order",
        on_delete=models.CASCADE,
        related_name="messages",
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_messages",
        help_text="Author of the message; null for system messages",
    )

    is_system = models.BooleanField(default=False)

    text = models.TextField()

    image_url = models.URLField(max_length=500, blank=True, default="")

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Order Message"
        verbose_name_plural = "Order Messages"
        indexes = [
            models.Index(fields=["order", "created_at"], name="order_message_order_idx"),
        ]

    def __str__(self) -> str:
        author = "system" if self.is_system else f"user {self.sender_id}"
        return f"OrderMessage({self.order_id}, {author})"
