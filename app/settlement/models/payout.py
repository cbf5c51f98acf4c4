"""
Payout and PayoutDestination models for seller withdrawals.

A Payout represents money leaving the platform to a seller's bank
account through a Paystack transfer. PayoutDestination holds the bank
details a seller registered, plus the Paystack recipient code once one
has been created for them.

Usage:
    from settlement.models import Payout
    from settlement.state_machines import PayoutStatus

    payout = Payout.objects.create(
        seller=seller,
        amount=Decimal("50000.00"),
        bank_name="Access Bank",
        bank_code="044",
        account_number="0123456789",
        account_name="ADA OBI",
    )

    # After Paystack accepts the transfer
    payout.complete(transfer_code="TRF_xxx")
    payout.save()
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from settlement.state_machines import PayoutStatus


def generate_transfer_reference() -> str:
    """Deterministic-per-payout reference sent to Paystack as the transfer reference."""
    return f"PO-{uuid.uuid4().hex}"


class Payout(UUIDPrimaryKeyMixin, BaseModel):
    """
    A seller's withdrawal request.

    State Flow:
        PENDING -> COMPLETED (provider accepted the transfer)
        PENDING -> FAILED (provider rejected the transfer)
        PENDING -> CANCELLED (seller withdrew the request)

    Webhook-driven state changes:
        transfer.success: PENDING -> COMPLETED
        transfer.failed: PENDING/COMPLETED -> FAILED
        transfer.reversed: PENDING/COMPLETED -> CANCELLED

    Fields:
        seller: User receiving the funds
        amount: Amount in major currency units
        transfer_reference: Our reference, generated at request time so a
            transfer webhook can always find the payout
        transfer_code: Paystack transfer code (TRF_xxx)
        recipient_code: Paystack recipient used for the transfer
        bank_*/account_*: Destination snapshot taken at request time
        expected_processing_date: When the daily job picks the payout up
        version: Optimistic locking version

    Note:
        A failed payout is never retried in place; the seller requests
        a new one.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payouts",
        help_text="Seller receiving the payout",
    )

    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payouts_processed",
        help_text="Admin who processed the payout (null for the scheduled job)",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Payout amount in major currency units",
    )

    currency = models.CharField(max_length=3, default="NGN")

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PayoutStatus.PENDING,
        choices=PayoutStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the payout (managed by FSM)",
    )

    # ==========================================================================
    # Provider Integration
    # ==========================================================================

    transfer_reference = models.CharField(
        max_length=64,
        unique=True,
        default=generate_transfer_reference,
        editable=False,
        help_text="Reference sent to Paystack with the transfer (PO-<hex>)",
    )

    transfer_code = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Paystack transfer code (TRF_xxx)",
    )

    recipient_code = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Paystack transfer recipient (RCP_xxx)",
    )

    # ==========================================================================
    # Destination Snapshot
    # ==========================================================================

    bank_name = models.CharField(max_length=100)
    bank_code = models.CharField(max_length=10)
    account_number = models.CharField(max_length=10)
    account_name = models.CharField(max_length=255)

    # ==========================================================================
    # Concurrency Control
    # ==========================================================================

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    # ==========================================================================
    # Scheduling & Timestamps
    # ==========================================================================

    expected_processing_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Business day on which the scheduled job processes the payout",
    )

    processed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    failure_reason = models.TextField(
        blank=True,
        default="",
        help_text="Provider reason if the payout failed or was reversed",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payout"
        verbose_name_plural = "Payouts"
        indexes = [
            models.Index(fields=["seller", "status"], name="payout_seller_status_idx"),
            models.Index(fields=["status", "expected_processing_date"], name="payout_status_due_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="payout_amount_positive",
            ),
            models.UniqueConstraint(
                fields=["seller"],
                condition=Q(status=PayoutStatus.PENDING),
                name="one_pending_payout_per_seller",
            ),
        ]

    def __str__(self) -> str:
        return f"Payout({self.id}, {self.status}, {self.amount} {self.currency})"

    def save(self, *args, **kwargs):
        """
        Save with version auto-increment for optimistic locking.
        """
        is_update = self.pk and not self._state.adding
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(field=status, source=PayoutStatus.PENDING, target=PayoutStatus.COMPLETED)
    def complete(self, transfer_code: str = ""):
        """
        Provider accepted (or confirmed) the transfer.

        Transition: PENDING -> COMPLETED
        """
        self.completed_at = timezone.now()
        if transfer_code:
            self.transfer_code = transfer_code

    @transition(
        field=status,
        source=[PayoutStatus.PENDING, PayoutStatus.COMPLETED],
        target=PayoutStatus.FAILED,
    )
    def fail(self, reason: str = ""):
        """
        Provider rejected the transfer, or reported a late failure.

        Transition: PENDING/COMPLETED -> FAILED
        """
        self.failed_at = timezone.now()
        self.failure_reason = reason

    @transition(field=status, source=PayoutStatus.PENDING, target=PayoutStatus.CANCELLED)
    def cancel(self, reason: str = ""):
        """
        Seller withdrew the request before processing.

        Transition: PENDING -> CANCELLED
        """
        self.cancelled_at = timezone.now()
        self.failure_reason = reason

    @transition(
        field=status,
        source=[PayoutStatus.PENDING, PayoutStatus.COMPLETED],
        target=PayoutStatus.CANCELLED,
    )
    def reverse(self, reason: str = ""):
        """
        Provider reversed the transfer; funds return to the seller's balance.

        Transition: PENDING/COMPLETED -> CANCELLED
        """
        self.cancelled_at = timezone.now()
        self.failure_reason = reason

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_pending(self) -> bool:
        return self.status == PayoutStatus.PENDING

    @property
    def is_final(self) -> bool:
        """Failed and cancelled payouts never change again."""
        return self.status in (PayoutStatus.FAILED, PayoutStatus.CANCELLED)


class PayoutDestination(BaseModel):
    """
    Bank account a seller registered for payouts.

    One per seller. ``recipient_code`` caches the Paystack transfer
    recipient and is cleared whenever the account details change.
    """

    seller = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payout_destination",
    )

    bank_name = models.CharField(max_length=100)
    bank_code = models.CharField(max_length=10)
    account_number = models.CharField(max_length=10)
    account_name = models.CharField(max_length=255)

    recipient_code = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Cached Paystack transfer recipient (RCP_xxx)",
    )

    verified_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the account was last resolved against Paystack",
    )

    class Meta:
        verbose_name = "Payout Destination"
        verbose_name_plural = "Payout Destinations"

    def __str__(self) -> str:
        return f"{self.bank_name} ****{self.account_number[-4:]} ({self.account_name})"
