"""
Ledger service layer.

All ledger writes go through LedgerService so that every entry is
idempotent per key and multi-entry settlements (partial refunds) are
written as one atomic unit.

Idempotency keys:
    sale:<order_id>             seller earning for an order
    refund:<order_id>           customer refund for an order
    payout:<payout_id>          payout debit
    payout-reversal:<payout_id> payout reversal credit

Usage:
    from settlement.ledger.services import LedgerService
    from settlement.ledger.types import SettlementSplit

    split = SettlementSplit.compute(order.total, rate, refund_amount)
    refund_entry, sale_entry = LedgerService.record_partial_refund(order, split)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.db.models import Count, Sum

from settlement.ledger.models import LedgerEntry, LedgerEntryKind
from settlement.ledger.types import RecordEntryParams, SellerTotals, ZERO, to_money

if TYPE_CHECKING:
    import uuid

    from settlement.ledger.types import SettlementSplit
    from settlement.models import Order, Payout

logger = logging.getLogger(__name__)


def sale_key(order_id) -> str:
    return f"sale:{order_id}"


def refund_key(order_id) -> str:
    return f"refund:{order_id}"


def payout_key(payout_id) -> str:
    return f"payout:{payout_id}"


def payout_reversal_key(payout_id) -> str:
    return f"payout-reversal:{payout_id}"


class LedgerService:
    """
    Service class for ledger operations.

    Key features:
    - Atomic transactions for multi-entry operations
    - Idempotency via unique keys (safe to retry)
    - Entries are append-only

    All methods are static - no instance state is maintained.
    """

    # ==========================================================================
    # Generic writes
    # ==========================================================================

    @staticmethod
    def record_entry(params: RecordEntryParams) -> LedgerEntry:
        """
        Record a single ledger entry.

        Idempotent - if an entry with the same idempotency_key already
        exists, that entry is returned unchanged.
        """
        return LedgerService.record_entries([params])[0]

    @staticmethod
    def record_entries(entries: list[RecordEntryParams]) -> list[LedgerEntry]:
        """
        Record multiple ledger entries atomically.

        All entries succeed or all fail. Existing entries (by
        idempotency_key) are returned without modification.

        Args:
            entries: List of entry parameters

        Returns:
            List of created or existing LedgerEntry objects, in input order
        """
        if not entries:
            return []

        results: list[LedgerEntry] = []

        with transaction.atomic():
            for params in entries:
                # Check idempotency first so a replay never writes
                existing = LedgerEntry.objects.filter(
                    idempotency_key=params.idempotency_key
                ).first()
                if existing is not None:
                    logger.info(
                        "Ledger entry already recorded",
                        extra={"idempotency_key": params.idempotency_key},
                    )
                    results.append(existing)
                    continue

                try:
                    # Savepoint: a concurrent insert of the same key must not
                    # abort the surrounding transaction
                    with transaction.atomic():
                        entry = LedgerEntry.objects.create(
                            idempotency_key=params.idempotency_key,
                            kind=params.kind,
                            amount=to_money(params.amount),
                            order_id=params.order_id,
                            payout_id=params.payout_id,
                            seller_id=params.seller_id,
                            customer_id=params.customer_id,
                            commission=to_money(params.commission),
                            commission_rate=params.commission_rate,
                            description=params.description,
                            metadata=params.metadata,
                            created_by=params.created_by,
                        )
                except IntegrityError:
                    entry = LedgerEntry.objects.get(
                        idempotency_key=params.idempotency_key
                    )

                logger.info(
                    "Ledger entry recorded",
                    extra={
                        "idempotency_key": entry.idempotency_key,
                        "kind": entry.kind,
                        "amount": str(entry.amount),
                    },
                )
                results.append(entry)

        return results

    # ==========================================================================
    # Order settlement
    # ==========================================================================

    @staticmethod
    def _sale_params(
        order: Order, split: SettlementSplit, created_by: str
    ) -> RecordEntryParams:
        return RecordEntryParams(
            kind=LedgerEntryKind.SALE,
            amount=split.seller_earning,
            idempotency_key=sale_key(order.id),
            order_id=order.id,
            seller_id=order.seller_id,
            commission=split.commission,
            commission_rate=split.commission_rate,
            description=f"Sale for order {order.id}",
            metadata={"total": str(split.total)},
            created_by=created_by,
        )

    @staticmethod
    def _refund_params(
        order: Order, amount, created_by: str
    ) -> RecordEntryParams:
        return RecordEntryParams(
            kind=LedgerEntryKind.REFUND,
            amount=amount,
            idempotency_key=refund_key(order.id),
            order_id=order.id,
            customer_id=order.customer_id,
            description=f"Refund for order {order.id}",
            metadata={"total": str(order.total)},
            created_by=created_by,
        )

    @staticmethod
    def record_sale(
        order: Order, split: SettlementSplit, created_by: str = ""
    ) -> LedgerEntry:
        """Credit the seller with ``split.seller_earning`` for the order."""
        return LedgerService.record_entry(
            LedgerService._sale_params(order, split, created_by)
        )

    @staticmethod
    def record_refund(order: Order, amount, created_by: str = "") -> LedgerEntry:
        """Credit the customer with ``amount`` for the order."""
        return LedgerService.record_entry(
            LedgerService._refund_params(order, amount, created_by)
        )

    @staticmethod
    def record_partial_refund(
        order: Order, split: SettlementSplit, created_by: str = ""
    ) -> list[LedgerEntry]:
        """
        Write the refund and sale entries of a split as one unit.

        Returns:
            [refund_entry, sale_entry]
        """
        return LedgerService.record_entries(
            [
                LedgerService._refund_params(order, split.refund_amount, created_by),
                LedgerService._sale_params(order, split, created_by),
            ]
        )

    # ==========================================================================
    # Payouts
    # ==========================================================================

    @staticmethod
    def record_payout(payout: Payout, created_by: str = "") -> LedgerEntry:
        """Debit the seller for a transfer the provider accepted."""
        return LedgerService.record_entry(
            RecordEntryParams(
                kind=LedgerEntryKind.PAYOUT,
                amount=-payout.amount,
                idempotency_key=payout_key(payout.id),
                payout_id=payout.id,
                seller_id=payout.seller_id,
                description=f"Payout {payout.transfer_reference}",
                created_by=created_by,
            )
        )

    @staticmethod
    def record_payout_reversal(payout: Payout, created_by: str = "") -> LedgerEntry:
        """Credit back a payout the provider reversed."""
        return LedgerService.record_entry(
            RecordEntryParams(
                kind=LedgerEntryKind.PAYOUT,
                amount=payout.amount,
                idempotency_key=payout_reversal_key(payout.id),
                payout_id=payout.id,
                seller_id=payout.seller_id,
                description=f"Reversal of payout {payout.transfer_reference}",
                metadata={"reversal": True, "reason": payout.failure_reason},
                created_by=created_by,
            )
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    @staticmethod
    def get_seller_totals(seller_id: int) -> SellerTotals:
        """Sum of a seller's sale entries, the commission they carry, and the order count."""
        result = LedgerEntry.objects.filter(
            seller_id=seller_id,
            kind=LedgerEntryKind.SALE,
        ).aggregate(
            earnings=Sum("amount"),
            commission=Sum("commission"),
            orders=Count("order", distinct=True),
        )
        return SellerTotals(
            total_earnings=to_money(result["earnings"] or ZERO),
            commission_paid=to_money(result["commission"] or ZERO),
            total_orders=result["orders"] or 0,
        )

    @staticmethod
    def get_entries_for_order(order_id: uuid.UUID) -> list[LedgerEntry]:
        """All entries for an order, oldest first."""
        return list(LedgerEntry.objects.filter(order_id=order_id).order_by("created_at"))
