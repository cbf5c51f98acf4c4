"""
Order and Dispute models for the settlement lifecycle.

Order is created by the external checkout flow in ``processing`` with
``escrow_status=none`` and ``payment_status=pending``. From then on only
the settlement services mutate its status, escrow status, payment status
and disputes, always through the django-fsm transitions below.

Usage:
    from settlement.models import Order
    from settlement.state_machines import OrderStatus

    order = Order.objects.create(
        customer=buyer,
        seller=seller,
        total=Decimal("100000.00"),
        payment_reference="T123456789",
    )

    # State transitions using django-fsm (services do this under a row lock)
    order.mark_sent(photo_url=None, auto_release_at=deadline)
    order.hold_escrow()
    order.save()
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from settlement.state_machines import (
    DisputeResolution,
    DisputeStatus,
    DisputeType,
    EscrowStatus,
    OrderStatus,
    PaymentStatus,
)


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    The unit of commerce between a customer and a seller.

    Three independent FSM fields travel together:

    Status Flow:
        PROCESSING -> SENT -> COMPLETED (receipt or auto-release)
        PROCESSING/SENT -> DISPUTED -> COMPLETED | CANCELLED
        PROCESSING -> CANCELLED

    Escrow Flow (one-way):
        NONE -> HELD -> RELEASED | REFUNDED
        NONE -> RELEASED | REFUNDED (dispute settled before shipping)

    Payment Flow:
        PENDING/FAILED -> COMPLETED (charge.success)
        PENDING/FAILED -> FAILED (charge.failed)

    Fields:
        customer / seller: The two parties
        total: Order total in major currency units
        commission_rate: Rate snapshotted at settlement time
        commission_amount / seller_earning: Split written at settlement
        payment_reference: Gateway charge reference (idempotency join key)
        version: Optimistic locking version
        *_at timestamps: Written once by the matching transition

    Note:
        The version field is auto-incremented on save. Pass the version a
        client last saw to the services to detect concurrent edits.
    """

    # ==========================================================================
    # Parties
    # ==========================================================================

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders_placed",
        help_text="User who bought the item",
    )

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders_received",
        help_text="User who sells the item and receives the earnings",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    total = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Order total in major currency units",
    )

    currency = models.CharField(
        max_length=3,
        default="NGN",
        help_text="ISO 4217 currency code",
    )

    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        null=True,
        blank=True,
        help_text="Commission rate snapshotted when the order was settled",
    )

    commission_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Platform commission taken at settlement",
    )

    seller_earning = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Amount credited to the seller at settlement",
    )

    refund_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Amount credited back to the customer, if any",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=OrderStatus.PROCESSING,
        choices=OrderStatus.choices,
        db_index=True,
        protected=True,
        help_text="Order lifecycle status (managed by FSM)",
    )

    escrow_status = FSMField(
        default=EscrowStatus.NONE,
        choices=EscrowStatus.choices,
        db_index=True,
        protected=True,
        help_text="Where the order's funds sit (managed by FSM, one-way)",
    )

    payment_status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Gateway charge status (managed by FSM)",
    )

    # ==========================================================================
    # Gateway Integration
    # ==========================================================================

    payment_reference = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Paystack charge reference",
    )

    customer_code = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Paystack customer code reported with the charge",
    )

    payment_verified_at = models.DateTimeField(null=True, blank=True)

    payment_failure_reason = models.TextField(
        blank=True,
        default="",
        help_text="Reason reported by the gateway for the last failed charge",
    )

    # ==========================================================================
    # Concurrency Control
    # ==========================================================================

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    # ==========================================================================
    # Lifecycle Timestamps
    # ==========================================================================

    sent_at = models.DateTimeField(null=True, blank=True)
    sent_photo_url = models.URLField(max_length=500, blank=True, default="")
    auto_release_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="When escrow is released automatically if no dispute is open",
    )
    received_at = models.DateTimeField(null=True, blank=True)
    received_photo_url = models.URLField(max_length=500, blank=True, default="")
    auto_released = models.BooleanField(
        default=False,
        help_text="Whether the sweep, rather than the customer, completed the order",
    )
    disputed_at = models.DateTimeField(null=True, blank=True)
    funds_released_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True, default="")

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        indexes = [
            models.Index(fields=["seller", "status"], name="order_seller_status_idx"),
            models.Index(fields=["customer", "status"], name="order_customer_status_idx"),
            models.Index(fields=["status", "escrow_status"], name="order_status_escrow_idx"),
            models.Index(fields=["payment_status", "created_at"], name="order_payment_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(total__gt=0),
                name="order_total_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Order({self.id}, {self.status}/{self.escrow_status}, {self.total})"

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
    # Status Transitions (django-fsm)
    # ==========================================================================

    @transition(field=status, source=OrderStatus.PROCESSING, target=OrderStatus.SENT)
    def mark_sent(self, photo_url: str | None = None, auto_release_at=None):
        """
        Seller has shipped the item.

        Transition: PROCESSING -> SENT
        """
        self.sent_at = timezone.now()
        self.sent_photo_url = photo_url or ""
        self.auto_release_at = auto_release_at

    @transition(field=status, source=OrderStatus.SENT, target=OrderStatus.COMPLETED)
    def mark_received(self, photo_url: str | None = None, automatic: bool = False):
        """
        Customer confirmed receipt, or the auto-release window elapsed.

        Transition: SENT -> COMPLETED
        """
        self.received_at = timezone.now()
        self.received_photo_url = photo_url or ""
        self.auto_released = automatic

    @transition(
        field=status,
        source=[OrderStatus.PROCESSING, OrderStatus.SENT],
        target=OrderStatus.DISPUTED,
    )
    def open_dispute(self):
        """
        Transition: PROCESSING/SENT -> DISPUTED

        Escrow status is left untouched; funds stay where they are.
        """
        self.disputed_at = timezone.now()

    @transition(field=status, source=OrderStatus.DISPUTED, target=OrderStatus.COMPLETED)
    def resolve_completed(self):
        """Transition: DISPUTED -> COMPLETED (favor_seller / partial_refund)."""

    @transition(field=status, source=OrderStatus.DISPUTED, target=OrderStatus.CANCELLED)
    def resolve_cancelled(self):
        """Transition: DISPUTED -> CANCELLED (favor_customer)."""
        self.cancelled_at = timezone.now()

    @transition(
        field=status, source=OrderStatus.PROCESSING, target=OrderStatus.CANCELLED
    )
    def cancel(self, reason: str = ""):
        """
        Pre-shipment cancellation.

        Transition: PROCESSING -> CANCELLED
        """
        self.cancelled_at = timezone.now()
        self.cancellation_reason = reason

    # ==========================================================================
    # Escrow Transitions (django-fsm, one-way)
    # ==========================================================================

    @transition(field=escrow_status, source=EscrowStatus.NONE, target=EscrowStatus.HELD)
    def hold_escrow(self):
        """Transition: NONE -> HELD"""

    @transition(
        field=escrow_status,
        source=[EscrowStatus.NONE, EscrowStatus.HELD],
        target=EscrowStatus.RELEASED,
    )
    def release_escrow(self):
        """
        A sale entry crediting the seller has been written.

        Transition: NONE/HELD -> RELEASED
        """
        self.funds_released_at = timezone.now()

    @transition(
        field=escrow_status,
        source=[EscrowStatus.NONE, EscrowStatus.HELD],
        target=EscrowStatus.REFUNDED,
    )
    def refund_escrow(self):
        """
        A refund entry crediting the customer has been written.

        Transition: NONE/HELD -> REFUNDED
        """
        self.refunded_at = timezone.now()

    # ==========================================================================
    # Payment Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=payment_status,
        source=[PaymentStatus.PENDING, PaymentStatus.FAILED],
        target=PaymentStatus.COMPLETED,
    )
    def confirm_payment(self, customer_code: str = ""):
        """
        Gateway confirmed the charge.

        Transition: PENDING/FAILED -> COMPLETED
        """
        self.payment_verified_at = timezone.now()
        self.payment_failure_reason = ""
        if customer_code:
            self.customer_code = customer_code

    @transition(
        field=payment_status,
        source=[PaymentStatus.PENDING, PaymentStatus.FAILED],
        target=PaymentStatus.FAILED,
    )
    def fail_payment(self, reason: str):
        """
        Gateway reported a failed charge. The customer may pay again.

        Transition: PENDING/FAILED -> FAILED
        """
        self.payment_failure_reason = reason

    # ==========================================================================
    # Settlement
    # ==========================================================================

    def apply_split(
        self,
        commission_rate: Decimal,
        commission_amount: Decimal,
        seller_earning: Decimal,
        refund_amount: Decimal | None = None,
    ) -> None:
        """
        Snapshot the settlement split onto the order.

        Does not save - caller must save after calling.
        """
        self.commission_rate = commission_rate
        self.commission_amount = commission_amount
        self.seller_earning = seller_earning
        self.refund_amount = refund_amount

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.COMPLETED

    @property
    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

    @property
    def open_dispute_record(self) -> Dispute | None:
        """The currently open dispute, if any."""
        return self.disputes.filter(status=DisputeStatus.OPEN).first()

    @property
    def has_open_dispute(self) -> bool:
        return self.disputes.filter(status=DisputeStatus.OPEN).exists()


class Dispute(UUIDPrimaryKeyMixin, BaseModel):
    """
    A customer's dispute against an order.

    An order has at most one open dispute at a time, enforced by a partial
    unique constraint as well as by the service guard.

    State Flow:
        OPEN -> RESOLVED
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.PROTECT,
        related_name="disputes",
    )

    opened_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="disputes_opened",
    )

    dispute_type = models.CharField(max_length=20, choices=DisputeType.choices)

    description = models.TextField()

    photos = models.JSONField(
        default=list,
        blank=True,
        help_text="Evidence photo URLs",
    )

    status = FSMField(
        default=DisputeStatus.OPEN,
        choices=DisputeStatus.choices,
        db_index=True,
        protected=True,
    )

    resolution = models.CharField(
        max_length=20,
        choices=DisputeResolution.choices,
        blank=True,
        default="",
    )

    refund_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Refund granted to the customer (partial_refund/favor_customer)",
    )

    resolution_notes = models.TextField(blank=True, default="")

    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="disputes_resolved",
    )

    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Dispute"
        verbose_name_plural = "Disputes"
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=Q(status=DisputeStatus.OPEN),
                name="one_open_dispute_per_order",
            ),
        ]

    def __str__(self) -> str:
        return f"Dispute({self.id}, order={self.order_id}, {self.status})"

    @transition(field=status, source=DisputeStatus.OPEN, target=DisputeStatus.RESOLVED)
    def resolve(
        self,
        resolution: str,
        resolved_by,
        refund_amount: Decimal | None = None,
        notes: str = "",
    ):
        """
        Record the admin's decision.

        Transition: OPEN -> RESOLVED
        """
        self.resolution = resolution
        self.resolved_by = resolved_by
        self.refund_amount = refund_amount
        self.resolution_notes = notes
        self.resolved_at = timezone.now()
