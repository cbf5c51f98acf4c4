"""
Data types and money helpers for ledger operations.

All amounts are ``Decimal`` in major currency units, quantized to the
minor unit (0.01) with ROUND_HALF_UP. Paystack speaks in kobo, so the
adapter boundary converts with ``to_minor_units``/``from_minor_units``.

Types:
    SettlementSplit: How an order total divides between refund,
        commission and seller earning
    SellerTotals: Aggregates of a seller's ledger entries
    RecordEntryParams: Parameters for recording a ledger entry

Usage:
    from settlement.ledger.types import SettlementSplit, format_naira

    split = SettlementSplit.compute(
        total=Decimal("100000"),
        commission_rate=Decimal("0.05"),
        refund_amount=Decimal("40000"),
    )
    split.seller_earning  # Decimal("55000.00")
    format_naira(split.refund_amount)  # "₦40,000.00"
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

MINOR_UNIT = Decimal("0.01")
RATE_UNIT = Decimal("0.0001")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Quantize a number (or numeric string) to the currency minor unit."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def to_rate(value: Any) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(RATE_UNIT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Any) -> int:
    """Convert a major-unit amount to kobo."""
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(minor: Any) -> Decimal:
    """Convert kobo (int or numeric string) to a major-unit amount."""
    return to_money(Decimal(str(minor)) / 100)


def format_naira(amount: Any) -> str:
    """Render an amount for user-facing text, e.g. ``₦40,000.00``."""
    return f"₦{to_money(amount):,.2f}"


@dataclass(frozen=True)
class SettlementSplit:
    """
    Division of one order total into refund, commission and seller earning.

    ``refund_amount + commission + seller_earning == total`` holds exactly:
    the commission is rounded once and the seller earning is the remainder.
    Commission is computed on the full total and capped at what is left
    after the refund, so the seller earning is never negative.

    Attributes:
        total: Order total
        commission_rate: Rate applied (snapshotted onto the order)
        refund_amount: Amount returned to the customer (0 unless refunded)
        commission: Platform commission
        seller_earning: Amount credited to the seller
    """

    total: Decimal
    commission_rate: Decimal
    refund_amount: Decimal
    commission: Decimal
    seller_earning: Decimal

    @classmethod
    def compute(
        cls,
        total: Any,
        commission_rate: Any,
        refund_amount: Any = ZERO,
    ) -> SettlementSplit:
        total = to_money(total)
        rate = to_rate(commission_rate)
        refund = to_money(refund_amount)
        if refund < ZERO or refund > total:
            raise ValueError(f"refund_amount {refund} outside [0, {total}]")

        commission = min(to_money(total * rate), total - refund)
        return cls(
            total=total,
            commission_rate=rate,
            refund_amount=refund,
            commission=commission,
            seller_earning=total - refund - commission,
        )

    @classmethod
    def full_refund(cls, total: Any) -> SettlementSplit:
        """The whole total goes back to the customer; no commission is taken."""
        total = to_money(total)
        return cls(
            total=total,
            commission_rate=Decimal("0.0000"),
            refund_amount=total,
            commission=ZERO,
            seller_earning=ZERO,
        )


@dataclass
class SellerTotals:
    """Aggregates of a seller's sale entries."""

    total_earnings: Decimal = ZERO
    commission_paid: Decimal = ZERO
    total_orders: int = 0


@dataclass
class RecordEntryParams:
    """
    Parameters for recording a ledger entry.

    Required Attributes:
        kind: LedgerEntryKind value
        amount: Signed amount (sale/refund positive, payout negative)
        idempotency_key: Unique key to prevent duplicate entries

    Optional Attributes:
        order_id / payout_id: Linked order or payout
        seller_id / customer_id: Party whose balance the entry affects
        commission / commission_rate: Commission carried on a sale entry
        description: Human-readable description
        metadata: Arbitrary JSON-serializable data
        created_by: Identifier of the service/user creating the entry
    """

    kind: str
    amount: Decimal
    idempotency_key: str
    order_id: uuid.UUID | None = None
    payout_id: uuid.UUID | None = None
    seller_id: int | None = None
    customer_id: int | None = None
    commission: Decimal = ZERO
    commission_rate: Decimal | None = None
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    created_by: str = ""
