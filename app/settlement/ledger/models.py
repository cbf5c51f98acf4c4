"""
Ledger model for the append-only settlement ledger.

Each LedgerEntry is an immutable financial record affecting one party's
balance:

    sale      +  seller earning for an order (carries the commission taken)
    refund    +  amount returned to the customer for an order
    payout    -  funds sent to the seller's bank (+ for a reversal)

Entries are never updated or deleted; corrections are new entries.
``save()`` on an existing row, ``delete()`` and queryset ``update()`` /
``delete()`` all raise LedgerImmutableError.

Usage:
    from settlement.ledger.models import LedgerEntry, LedgerEntryKind

    sales = LedgerEntry.objects.filter(seller=seller, kind=LedgerEntryKind.SALE)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin

from settlement.exceptions import LedgerImmutableError


class LedgerEntryKind(models.TextChoices):
    """
    Types of ledger entries.

    Values:
        SALE: Seller earning for a settled order
        COMMISSION: Platform commission (carried on the sale entry's
            commission column rather than as a separate row)
        REFUND: Amount returned to the customer
        PAYOUT: Transfer to the seller's bank. The debit is negative; a
            reversal is a positive PAYOUT entry tagged
            ``metadata["reversal"] = True``
    """

    SALE = "sale", "Sale"
    COMMISSION = "commission", "Commission"
    REFUND = "refund", "Refund"
    PAYOUT = "payout", "Payout"


class LedgerEntryQuerySet(models.QuerySet):
    """QuerySet that refuses bulk mutation of ledger rows."""

    def update(self, **kwargs):
        raise LedgerImmutableError("Ledger entries cannot be updated")

    def delete(self):
        raise LedgerImmutableError("Ledger entries cannot be deleted")


class LedgerEntry(UUIDPrimaryKeyMixin, models.Model):
    """
    An immutable ledger record.

    Fields:
        id: UUID primary key (from UUIDPrimaryKeyMixin)
        created_at: Timestamp when entry was recorded
        kind: LedgerEntryKind value
        amount: Signed amount in major currency units
        currency: ISO 4217 currency code
        order / payout: Linked order or payout
        seller / customer: Party whose balance this entry affects
        commission / commission_rate: Commission taken (sale entries)
        description: Human-readable description
        metadata: Arbitrary JSON data
        created_by: Identifier of service/user that created this
        idempotency_key: Unique key to prevent duplicate entries

    Constraints:
        - idempotency_key must be unique
        - every entry names a seller or a customer
        - commission is never negative
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this entry was recorded",
    )

    kind = models.CharField(
        max_length=20,
        choices=LedgerEntryKind.choices,
        db_index=True,
    )

    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Signed amount in major currency units",
    )

    currency = models.CharField(max_length=3, default="NGN")

    order = models.ForeignKey(
        "settlement.Order",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
    )

    payout = models.ForeignKey(
        "settlement.Payout",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
    )

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="seller_ledger_entries",
    )

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="customer_ledger_entries",
    )

    commission = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=0,
        help_text="Commission taken from the order (sale entries only)",
    )

    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        null=True,
        blank=True,
    )

    description = models.TextField(blank=True, default="")

    metadata = models.JSONField(default=dict, blank=True)

    created_by = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Identifier of service/user that created this entry",
    )

    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Unique key to prevent duplicate entries",
    )

    objects = LedgerEntryQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Ledger Entry"
        verbose_name_plural = "Ledger Entries"
        indexes = [
            models.Index(fields=["seller", "kind"], name="ledger_seller_kind_idx"),
            models.Index(fields=["customer", "kind"], name="ledger_customer_kind_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(seller__isnull=False) | Q(customer__isnull=False),
                name="ledger_entry_has_party",
            ),
            models.CheckConstraint(
                condition=Q(commission__gte=0),
                name="ledger_entry_commission_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_kind_display()}: {self.amount} {self.currency}"

    def save(self, *args, **kwargs):
        """Insert only; an existing entry can never be saved again."""
        if not self._state.adding:
            raise LedgerImmutableError(
                f"Ledger entry {self.pk} is immutable",
                details={"entry_id": str(self.pk)},
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise LedgerImmutableError(
            f"Ledger entry {self.pk} cannot be deleted",
            details={"entry_id": str(self.pk)},
        )
