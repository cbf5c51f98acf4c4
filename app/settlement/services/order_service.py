"""
Order service for the shipping and receipt half of the order lifecycle.

Every command runs as one read-decide-write unit: the order row is locked
with ``select_for_update()`` inside ``transaction.atomic()``, the guards
are checked against the locked row, and the transitions, ledger entries
and chat message are written before the lock is released.

Usage:
    from settlement.services import OrderService

    order = OrderService.mark_order_as_sent(order_id, actor=seller, photo_url=url)
    order = OrderService.mark_order_as_received(order_id, actor=customer)
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import TYPE_CHECKING

from django.utils import timezone

from core.services import BaseService

from settlement.exceptions import DisputeOpen, InvalidTransition, OrderNotFound
from settlement.ledger.services import LedgerService
from settlement.ledger.types import SettlementSplit
from settlement.locks import lock_for_update
from settlement.models import Order
from settlement.services import order_messages
from settlement.services.common import actor_label, fsm_guard, require_party
from settlement.services.policy_service import PolicyService
from settlement.state_machines import OrderStatus

if TYPE_CHECKING:
    from decimal import Decimal


class OrderService(BaseService):
    """
    Shipping, receipt and cancellation of orders.

    Escrow release is shared with the auto-release sweep and the
    favor_seller dispute outcome through ``release_to_seller``, so the
    commission snapshot and the sale entry are written the same way on
    every path.
    """

    @classmethod
    def get_order(cls, order_id: uuid.UUID) -> Order:
        """
        Raises:
            OrderNotFound: If no order has this id
        """
        try:
            return Order.objects.get(pk=order_id)
        except Order.DoesNotExist:
            raise OrderNotFound(
                f"Order {order_id} not found",
                details={"order_id": str(order_id)},
            )

    @classmethod
    def mark_order_as_sent(
        cls,
        order_id: uuid.UUID,
        actor,
        photo_url: str | None = None,
        expected_version: int | None = None,
    ) -> Order:
        """
        Seller ships the item; funds move into escrow.

        Sets status SENT, escrow HELD and the auto-release deadline
        (now + policy.auto_release_days).

        Raises:
            OrderNotFound: If the order does not exist
            Unauthorized: If the actor is not the seller or an admin
            InvalidTransition: If the order is not PROCESSING or unpaid
            StaleRecordError: If expected_version no longer matches
        """
        policy = PolicyService.get_policy()

        with cls.atomic():
            order = lock_for_update(
                Order, order_id, expected_version, not_found_error=OrderNotFound
            )
            require_party(actor, order.seller_id, action="mark this order as sent")

            if order.status != OrderStatus.PROCESSING:
                raise InvalidTransition(
                    "Only orders in processing can be marked as sent",
                    details={"order_id": str(order.id), "current_status": order.status},
                )
            if not order.is_paid:
                raise InvalidTransition(
                    "Payment for this order has not been confirmed",
                    details={
                        "order_id": str(order.id),
                        "payment_status": order.payment_status,
                    },
                )

            deadline = timezone.now() + timedelta(days=policy.auto_release_days)
            with fsm_guard(order, "mark_sent"):
                order.mark_sent(photo_url=photo_url, auto_release_at=deadline)
                order.hold_escrow()
            order.save()

            order_messages.post_system_message(
                order, order_messages.ITEM_SENT, image_url=photo_url
            )

        cls.get_logger().info(
            "Order marked as sent",
            extra={
                "order_id": str(order_id),
                "actor_id": actor.pk,
                "auto_release_at": deadline.isoformat(),
            },
        )
        return Order.objects.get(pk=order_id)

    @classmethod
    def mark_order_as_received(
        cls,
        order_id: uuid.UUID,
        actor,
        photo_url: str | None = None,
        expected_version: int | None = None,
    ) -> Order:
        """
        Customer confirms receipt; escrow is released to the seller.

        Raises:
            OrderNotFound: If the order does not exist
            Unauthorized: If the actor is not the customer or an admin
            DisputeOpen: If a dispute is open on the order
            InvalidTransition: If the order is not SENT
            StaleRecordError: If expected_version no longer matches
        """
        with cls.atomic():
            order = lock_for_update(
                Order, order_id, expected_version, not_found_error=OrderNotFound
            )
            require_party(actor, order.customer_id, action="confirm receipt of this order")

            if order.has_open_dispute:
                raise DisputeOpen(
                    "This order has an open dispute",
                    details={"order_id": str(order.id)},
                )
            if order.status != OrderStatus.SENT:
                raise InvalidTransition(
                    "Only sent orders can be marked as received",
                    details={"order_id": str(order.id), "current_status": order.status},
                )

            split = cls.release_to_seller(
                order,
                created_by=actor_label(actor),
                photo_url=photo_url,
            )
            order_messages.post_system_message(
                order, order_messages.ITEM_RECEIVED, image_url=photo_url
            )

        cls.get_logger().info(
            "Order marked as received",
            extra={
                "order_id": str(order_id),
                "actor_id": actor.pk,
                "seller_earning": str(split.seller_earning),
                "commission": str(split.commission),
            },
        )
        return Order.objects.get(pk=order_id)

    @classmethod
    def release_to_seller(
        cls,
        order: Order,
        created_by: str,
        photo_url: str | None = None,
        automatic: bool = False,
    ) -> SettlementSplit:
        """
        Complete a SENT order and credit the seller.

        The caller holds the row lock. The resolved commission rate (the
        order's snapshot, else the live policy) is written back onto the
        order together with the split.
        """
        split = SettlementSplit.compute(order.total, cls.resolve_commission_rate(order))

        with fsm_guard(order, "mark_received"):
            order.mark_received(photo_url=photo_url, automatic=automatic)
            order.release_escrow()
        order.apply_split(split.commission_rate, split.commission, split.seller_earning)
        order.save()

        LedgerService.record_sale(order, split, created_by=created_by)
        return split

    @staticmethod
    def resolve_commission_rate(order: Order) -> Decimal:
        if order.commission_rate is not None:
            return order.commission_rate
        return PolicyService.get_policy().commission_rate

    @classmethod
    def cancel_order(
        cls,
        order_id: uuid.UUID,
        actor,
        reason: str = "",
        expected_version: int | None = None,
    ) -> Order:
        """
        Cancel an order before it ships.

        A paid order is refunded in full: escrow REFUNDED and one refund
        entry for the total. An unpaid order keeps escrow NONE.

        Raises:
            OrderNotFound: If the order does not exist
            Unauthorized: If the actor is not a party to the order or an admin
            InvalidTransition: If the order is not PROCESSING
        """
        with cls.atomic():
            order = lock_for_update(
                Order, order_id, expected_version, not_found_error=OrderNotFound
            )
            require_party(
                actor, order.customer_id, order.seller_id, action="cancel this order"
            )

            if order.status != OrderStatus.PROCESSING:
                raise InvalidTransition(
                    "Only orders in processing can be cancelled",
                    details={"order_id": str(order.id), "current_status": order.status},
                )

            refunded = order.is_paid
            with fsm_guard(order, "cancel"):
                order.cancel(reason=reason)
                if refunded:
                    order.refund_escrow()
            if refunded:
                order.refund_amount = order.total
            order.save()

            if refunded:
                LedgerService.record_refund(
                    order, order.total, created_by=actor_label(actor)
                )
            order_messages.post_system_message(order, order_messages.ORDER_CANCELLED)

        cls.get_logger().info(
            "Order cancelled",
            extra={
                "order_id": str(order_id),
                "actor_id": actor.pk,
                "refunded": refunded,
            },
        )
        return Order.objects.get(pk=order_id)
