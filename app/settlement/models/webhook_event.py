"""
WebhookEvent and FailedPayment models.

Every Paystack delivery that passes signature verification is stored as a
WebhookEvent keyed by ``event_key`` (``"<event>:<data.id>"``), so duplicate
deliveries are detected by the unique constraint. FailedPayment is the
``failed_payments`` record written for failed or mismatched charges, even
when no order matches the reference.

Usage:
    from settlement.models import WebhookEvent
    from settlement.state_machines import WebhookEventStatus

    event, created = WebhookEvent.objects.get_or_create(
        event_key="charge.success:302961",
        defaults={"event_type": "charge.success", "payload": payload},
    )

    if not created and event.is_processed:
        # Duplicate webhook - already processed
        return JsonResponse({"received": True})
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from settlement.state_machines import WebhookEventStatus

MAX_WEBHOOK_RETRIES = 5


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks Paystack webhook deliveries for idempotent processing.

    Processing Flow:
        1. Webhook arrives, verify x-paystack-signature
        2. Insert/get WebhookEvent by event_key
        3. If exists and PROCESSED -> acknowledge (duplicate)
        4. Set status to PROCESSING
        5. Route to the registered handler
        6. Set status to PROCESSED or FAILED
        7. If FAILED, the retry task picks it up later

    Fields:
        event_key: "<event>:<data.id>", or a SHA-256 of the body
        event_type: Paystack event name (e.g. "charge.success")
        payload: Full JSON body
        status: Processing status
        processed_at: When event was successfully processed
        error_message: Error details if processing failed
        retry_count: Number of processing attempts
    """

    event_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Delivery identity - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Paystack event type (e.g., 'charge.success')",
    )

    payload = models.JSONField(help_text="Full webhook payload from Paystack (JSON)")

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )

    processed_at = models.DateTimeField(null=True, blank=True)

    error_message = models.TextField(null=True, blank=True)

    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
            models.Index(fields=["status", "retry_count"], name="webhook_status_retry_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.event_key}, {self.status})"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def is_failed(self) -> bool:
        return self.status == WebhookEventStatus.FAILED

    @property
    def can_retry(self) -> bool:
        """Failed with fewer than MAX_WEBHOOK_RETRIES attempts."""
        return self.is_failed and self.retry_count < MAX_WEBHOOK_RETRIES

    @property
    def data(self) -> dict:
        """The ``data`` object of the Paystack payload."""
        data = self.payload.get("data") if isinstance(self.payload, dict) else None
        return data if isinstance(data, dict) else {}

    # ==========================================================================
    # Helper Methods (do not save - caller must save)
    # ==========================================================================

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message


class FailedPayment(UUIDPrimaryKeyMixin, BaseModel):
    """
    Audit row for a charge that failed or was refused.

    Written for charge.failed deliveries (matched or not) and for
    underpaid charge.success deliveries.
    """

    reference = models.CharField(max_length=255, db_index=True)

    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Charged amount in major currency units, if reported",
    )

    reason = models.TextField()

    customer_code = models.CharField(max_length=100, blank=True, default="")

    order = models.ForeignKey(
        "settlement.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="failed_payments",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Failed Payment"
        verbose_name_plural = "Failed Payments"

    def __str__(self) -> str:
        return f"FailedPayment({self.reference}: {self.reason})"
