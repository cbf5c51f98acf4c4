"""
Auto-release of escrow for shipped orders nobody confirmed.

Orders in SENT with escrow HELD and ``auto_release_at`` in the past are
completed on the seller's behalf, exactly as if the customer had
confirmed receipt. Selection and the per-order re-check use the same
``escrow_status=held`` guard, so a released order is never picked again.

Usage:
    from settlement.services import AutoReleaseService

    summary = AutoReleaseService.sweep()
    # {"checked": 12, "released": 10, "skipped": 2, "lock_failed": 0, ...}
"""

from __future__ import annotations

import uuid
from typing import Any

from django.utils import timezone

from core.services import BaseService

from settlement.exceptions import LockAcquisitionError
from settlement.locks import DistributedLock, order_lock_key
from settlement.models import Order
from settlement.services import order_messages
from settlement.services.order_service import OrderService
from settlement.state_machines import DisputeStatus, EscrowStatus, OrderStatus

# =============================================================================
# Constants
# =============================================================================

# Maximum orders examined per sweep
BATCH_SIZE = 100

# Distributed lock TTL per order (seconds)
RELEASE_LOCK_TTL = 30


class AutoReleaseService(BaseService):
    """Finds and releases escrow whose auto-release deadline has passed."""

    @staticmethod
    def due_orders():
        """SENT/HELD orders past their deadline with no open dispute, oldest first."""
        return (
            Order.objects.filter(
                status=OrderStatus.SENT,
                escrow_status=EscrowStatus.HELD,
                auto_release_at__lte=timezone.now(),
            )
            .exclude(disputes__status=DisputeStatus.OPEN)
            .order_by("auto_release_at")
        )

    @classmethod
    def release_order(cls, order_id: uuid.UUID) -> str:
        """
        Release one order's escrow if it is still due.

        Must be called with the order's distributed lock held (see
        ``sweep``); the row lock is taken here.

        Returns:
            "released", "not_found", "invalid_state", "disputed" or "not_due"
        """
        with cls.atomic():
            order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None:
                return "not_found"

            # Double-check state under the row lock
            if order.status != OrderStatus.SENT or order.escrow_status != EscrowStatus.HELD:
                return "invalid_state"
            if order.has_open_dispute:
                return "disputed"
            if order.auto_release_at is None or order.auto_release_at > timezone.now():
                return "not_due"

            split = OrderService.release_to_seller(order, created_by="system", automatic=True)
            days = (order.auto_release_at - order.sent_at).days if order.sent_at else 0
            order_messages.post_system_message(
                order, order_messages.auto_released_text(days)
            )

        cls.get_logger().info(
            "Escrow auto-released",
            extra={
                "order_id": str(order_id),
                "seller_earning": str(split.seller_earning),
                "commission": str(split.commission),
            },
        )
        return "released"

    @classmethod
    def release_order_locked(cls, order_id: uuid.UUID) -> str:
        """
        ``release_order`` under a non-blocking distributed lock.

        Returns:
            A ``release_order`` status, or "lock_failed" when a user action
            or another sweep holds the order
        """
        try:
            with DistributedLock(
                order_lock_key(order_id), ttl=RELEASE_LOCK_TTL, blocking=False
            ):
                return cls.release_order(order_id)
        except LockAcquisitionError:
            cls.get_logger().info(
                "Order locked elsewhere, skipping auto-release",
                extra={"order_id": str(order_id)},
            )
            return "lock_failed"

    @classmethod
    def sweep(cls, batch_size: int = BATCH_SIZE) -> dict[str, Any]:
        """
        Release every due order, up to ``batch_size`` per run.

        One order failing does not stop the sweep; the error is logged and
        the order counted under ``errors``.
        """
        order_ids = list(cls.due_orders().values_list("id", flat=True)[:batch_size])
        summary: dict[str, Any] = {
            "checked": len(order_ids),
            "released": 0,
            "skipped": 0,
            "lock_failed": 0,
            "errors": 0,
            "released_ids": [],
        }

        for order_id in order_ids:
            try:
                status = cls.release_order_locked(order_id)
            except Exception:
                cls.get_logger().exception(
                    "Auto-release failed for order",
                    extra={"order_id": str(order_id)},
                )
                summary["errors"] += 1
                continue

            if status == "released":
                summary["released"] += 1
                summary["released_ids"].append(str(order_id))
            elif status == "lock_failed":
                summary["lock_failed"] += 1
            else:
                summary["skipped"] += 1

        cls.get_logger().info(
            "Auto-release sweep complete",
            extra={key: value for key, value in summary.items() if key != "released_ids"},
        )
        return summary
