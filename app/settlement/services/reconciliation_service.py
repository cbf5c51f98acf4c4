"""
Payment reconciliation against Paystack.

Charges whose webhook never arrived (or arrived before the order existed)
leave orders stuck in ``pending``/``failed``. The daily run asks Paystack
for the authoritative status of each recent unpaid order and repairs
what it can through the normal confirm_charge path.

Issue types:
    payment_successful_but_not_completed  Paystack says success, we did not
        (the order is confirmed by this run)
    amount_mismatch  Paystack's charged amount differs from the order total

Usage:
    from settlement.services import ReconciliationService

    result = ReconciliationService.reconcile_payments(days=7)
    # {"checked": 4, "issues_found": 1, "reconciliations": [...]}
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from django.utils import timezone

from core.services import BaseService

from settlement.adapters import PaystackAdapter
from settlement.exceptions import ProviderError
from settlement.ledger.types import from_minor_units
from settlement.models import Order, ReconciliationIssueType, ReconciliationLog
from settlement.services.payment_service import PaymentService
from settlement.state_machines import PaymentStatus

DEFAULT_WINDOW_DAYS = 7


class ReconciliationService(BaseService):
    """Detects and heals charges Paystack completed but we did not record."""

    # Paystack adapter - can be injected for testing
    _paystack_adapter: type | None = None

    @classmethod
    def get_paystack_adapter(cls) -> type:
        return cls._paystack_adapter or PaystackAdapter

    @classmethod
    def set_paystack_adapter(cls, adapter: type | None) -> None:
        cls._paystack_adapter = adapter

    @staticmethod
    def candidate_orders(days: int):
        since = timezone.now() - timedelta(days=days)
        return (
            Order.objects.filter(
                created_at__gte=since,
                payment_status__in=[PaymentStatus.PENDING, PaymentStatus.FAILED],
                payment_reference__isnull=False,
            )
            .exclude(payment_reference="")
            .order_by("created_at")
        )

    @classmethod
    def reconcile_payments(cls, days: int = DEFAULT_WINDOW_DAYS) -> dict[str, Any]:
        """
        Verify recent unpaid orders with Paystack and repair them.

        Provider errors for one reference are logged and skipped. A
        ReconciliationLog row is written only when issues were found.

        Returns:
            {"checked": int, "issues_found": int, "reconciliations": [issue, ...]}
        """
        logger = cls.get_logger()
        adapter = cls.get_paystack_adapter()
        issues: list[dict[str, Any]] = []
        checked = 0

        for order in cls.candidate_orders(days):
            checked += 1
            try:
                verification = adapter.verify_transaction(order.payment_reference)
            except ProviderError as e:
                logger.warning(
                    "Could not verify transaction, skipping",
                    extra={
                        "order_id": str(order.id),
                        "reference": order.payment_reference,
                        "error": e.message,
                    },
                )
                continue

            if not verification.is_successful:
                continue

            charged = from_minor_units(verification.amount_kobo)
            if charged != order.total:
                issues.append(
                    {
                        "type": ReconciliationIssueType.AMOUNT_MISMATCH.value,
                        "order_id": str(order.id),
                        "reference": order.payment_reference,
                        "expected": str(order.total),
                        "charged": str(charged),
                    }
                )
            if charged < order.total:
                # Underpaid charges stay unpaid; confirm_charge would refuse them
                continue

            result = PaymentService.confirm_charge(
                reference=order.payment_reference,
                amount=charged,
                customer_code=verification.customer_code,
            )
            if result.success and result.data["status"] == "confirmed":
                issues.append(
                    {
                        "type": ReconciliationIssueType.PAYMENT_SUCCESSFUL_BUT_NOT_COMPLETED.value,
                        "order_id": str(order.id),
                        "reference": order.payment_reference,
                        "previous_status": order.payment_status,
                        "action": "confirmed",
                    }
                )

        if issues:
            ReconciliationLog.objects.create(
                window_days=days,
                checked=checked,
                issues_found=len(issues),
                details=issues,
            )

        logger.info(
            "Payment reconciliation complete",
            extra={"checked": checked, "issues_found": len(issues), "window_days": days},
        )
        return {"checked": checked, "issues_found": len(issues), "reconciliations": issues}
