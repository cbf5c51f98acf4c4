"""
Charge confirmation and failure handling.

Called from the charge.success / charge.failed webhook handlers and from
the reconciliation job. Both operations are lookup-then-conditionally-
mutate under a row lock, so a redelivered event is a no-op.

Usage:
    from settlement.services import PaymentService

    result = PaymentService.confirm_charge(
        reference="T123456789",
        amount=Decimal("100000.00"),
        customer_code="CUS_abc",
    )
    if result.success:
        print(result.data["status"])  # "confirmed" or "already_confirmed"
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from core.services import BaseService, ServiceResult

from settlement.ledger.types import to_money
from settlement.models import FailedPayment, Order
from settlement.services import notify
from settlement.services.common import fsm_guard
from settlement.state_machines import PaymentStatus

if TYPE_CHECKING:
    from decimal import Decimal

AMOUNT_MISMATCH_REASON = "Amount mismatch"
DEFAULT_FAILURE_REASON = "Payment failed"


class PaymentService(BaseService):
    """
    Records the outcome of gateway charges on orders.

    Outcomes that are not errors from the gateway's point of view (unknown
    reference, duplicate delivery) are returned as ServiceResult values;
    the webhook still acknowledges them.
    """

    @classmethod
    def confirm_charge(
        cls,
        reference: str,
        amount: Decimal | None,
        customer_code: str = "",
    ) -> ServiceResult[dict[str, Any]]:
        """
        Mark an order's payment completed.

        An amount below the order total is refused: the payment is marked
        failed with "Amount mismatch" and a FailedPayment row is written.

        Returns:
            ServiceResult with data {"status": ..., "order_id": ...}, or a
            failure with error_code ORDER_NOT_FOUND for an unknown reference
        """
        log_context = {"reference": reference, "amount": str(amount)}

        with cls.atomic():
            order = (
                Order.objects.select_for_update()
                .filter(payment_reference=reference)
                .first()
            )
            if order is None:
                cls.get_logger().warning(
                    "Charge confirmed for unknown reference",
                    extra=log_context,
                )
                return ServiceResult.failure(
                    f"No order for reference {reference}",
                    error_code="ORDER_NOT_FOUND",
                )

            if order.payment_status == PaymentStatus.COMPLETED:
                cls.get_logger().info(
                    "Charge already confirmed",
                    extra={**log_context, "order_id": str(order.id)},
                )
                return ServiceResult.ok(
                    {"status": "already_confirmed", "order_id": str(order.id)}
                )

            if amount is not None and to_money(amount) < order.total:
                with fsm_guard(order, "fail_payment"):
                    order.fail_payment(reason=AMOUNT_MISMATCH_REASON)
                order.save()
                FailedPayment.objects.create(
                    reference=reference,
                    amount=to_money(amount),
                    reason=AMOUNT_MISMATCH_REASON,
                    customer_code=customer_code or "",
                    order=order,
                )
                cls.get_logger().warning(
                    "Charge amount below order total",
                    extra={
                        **log_context,
                        "order_id": str(order.id),
                        "order_total": str(order.total),
                    },
                )
                return ServiceResult.ok(
                    {"status": "amount_mismatch", "order_id": str(order.id)}
                )

            with fsm_guard(order, "confirm_payment"):
                order.confirm_payment(customer_code=customer_code or "")
            order.save()

            notify.notify_new_order(order, amount if amount is not None else order.total)
            notify.notify_order_confirmed(order)

        cls.get_logger().info(
            "Charge confirmed",
            extra={**log_context, "order_id": str(order.id)},
        )
        return ServiceResult.ok({"status": "confirmed", "order_id": str(order.id)})

    @classmethod
    def fail_charge(
        cls,
        reference: str,
        reason: str | None = None,
        amount: Decimal | None = None,
        customer_code: str = "",
    ) -> ServiceResult[dict[str, Any]]:
        """
        Record a failed charge.

        A FailedPayment row is always written, with ``order`` null when no
        order matches. A completed payment is never regressed.

        Returns:
            ServiceResult with data {"status": ..., "order_id": ...}
        """
        reason = reason or DEFAULT_FAILURE_REASON
        log_context = {"reference": reference, "reason": reason}

        with cls.atomic():
            order = (
                Order.objects.select_for_update()
                .filter(payment_reference=reference)
                .first()
            )
            FailedPayment.objects.create(
                reference=reference,
                amount=to_money(amount) if amount is not None else None,
                reason=reason,
                customer_code=customer_code or "",
                order=order,
            )

            if order is None:
                cls.get_logger().info(
                    "Failed charge for unknown reference recorded",
                    extra=log_context,
                )
                return ServiceResult.ok({"status": "recorded", "order_id": None})

            if order.payment_status == PaymentStatus.COMPLETED:
                cls.get_logger().warning(
                    "Failed charge received for a completed payment, ignoring",
                    extra={**log_context, "order_id": str(order.id)},
                )
                return ServiceResult.ok(
                    {"status": "already_confirmed", "order_id": str(order.id)}
                )

            with fsm_guard(order, "fail_payment"):
                order.fail_payment(reason=reason)
            order.save()

        cls.get_logger().info(
            "Charge marked as failed",
            extra={**log_context, "order_id": str(order.id)},
        )
        return ServiceResult.ok({"status": "failed", "order_id": str(order.id)})
