"""
Dispute service: opening and resolving disputes on orders.

Resolution outcomes:
    favor_customer  order CANCELLED, escrow REFUNDED, one refund entry (total)
    favor_seller    order COMPLETED, escrow RELEASED, one sale entry
    partial_refund  order COMPLETED, escrow RELEASED, refund + sale entries
                    written together

Usage:
    from settlement.services import DisputeService

    dispute = DisputeService.open_dispute(
        order_id, actor=customer, dispute_type="damaged", description="Cracked",
    )
    order = DisputeService.resolve_dispute(
        order_id, admin, "partial_refund", refund_amount=Decimal("40000"),
    )
"""

from __future__ import annotations

import uuid
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from django.db import IntegrityError

from core.services import BaseService

from settlement.exceptions import (
    InvalidTransition,
    OrderNotFound,
    SettlementValidationError,
)
from settlement.ledger.services import LedgerService
from settlement.ledger.types import ZERO, SettlementSplit, to_money
from settlement.locks import lock_for_update
from settlement.models import Dispute, Order
from settlement.services import notify, order_messages
from settlement.services.common import actor_label, fsm_guard, require_admin, require_party
from settlement.services.order_service import OrderService
from settlement.state_machines import DisputeResolution, DisputeType

if TYPE_CHECKING:
    from typing import Any


class DisputeService(BaseService):
    """
    Opens and resolves disputes.

    Opening a dispute never moves money: escrow stays where it is until an
    admin resolves the dispute.
    """

    @classmethod
    def open_dispute(
        cls,
        order_id: uuid.UUID,
        actor,
        dispute_type: str,
        description: str,
        photos: list[str] | None = None,
        expected_version: int | None = None,
    ) -> Dispute:
        """
        Open a dispute on a PROCESSING or SENT order.

        Raises:
            OrderNotFound: If the order does not exist
            Unauthorized: If the actor is not the customer or an admin
            SettlementValidationError: On an unknown type or empty description
            InvalidTransition: If the order is settled, unpaid or already disputed
        """
        if dispute_type not in DisputeType.values:
            raise SettlementValidationError(
                f"Unknown dispute type '{dispute_type}'",
                details={"allowed": list(DisputeType.values)},
            )
        description = (description or "").strip()
        if not description:
            raise SettlementValidationError("A dispute needs a description")

        with cls.atomic():
            order = lock_for_update(
                Order, order_id, expected_version, not_found_error=OrderNotFound
            )
            require_party(actor, order.customer_id, action="open a dispute on this order")

            if order.is_terminal:
                raise InvalidTransition(
                    "Disputes cannot be opened on completed or cancelled orders",
                    details={"order_id": str(order.id), "current_status": order.status},
                )
            if order.has_open_dispute:
                raise InvalidTransition(
                    "This order already has an open dispute",
                    details={"order_id": str(order.id)},
                )
            if not order.is_paid:
                raise InvalidTransition(
                    "Disputes can only be opened on paid orders",
                    details={
                        "order_id": str(order.id),
                        "payment_status": order.payment_status,
                    },
                )

            with fsm_guard(order, "open_dispute"):
                order.open_dispute()
            order.save()

            try:
                dispute = Dispute.objects.create(
                    order=order,
                    opened_by=actor,
                    dispute_type=dispute_type,
                    description=description,
                    photos=list(photos or []),
                )
            except IntegrityError as e:
                raise InvalidTransition(
                    "This order already has an open dispute",
                    details={"order_id": str(order.id)},
                ) from e

            order_messages.post_system_message(
                order, order_messages.dispute_opened_text(dispute_type)
            )
            notify.notify_dispute_opened(order, dispute)

        cls.get_logger().info(
            "Dispute opened",
            extra={
                "order_id": str(order_id),
                "dispute_id": str(dispute.id),
                "dispute_type": dispute_type,
                "actor_id": actor.pk,
            },
        )
        return Dispute.objects.get(pk=dispute.pk)

    @classmethod
    def resolve_dispute(
        cls,
        order_id: uuid.UUID,
        admin,
        resolution: str,
        refund_amount: Any = None,
        notes: str = "",
    ) -> Order:
        """
        Apply an admin's decision to the order's open dispute.

        Args:
            order_id: Disputed order
            admin: Acting admin
            resolution: DisputeResolution value
            refund_amount: Required for partial_refund, 0 < amount <= total
            notes: Free text appended to the chat message

        Raises:
            Unauthorized: If the actor is not an admin
            OrderNotFound: If the order does not exist
            SettlementValidationError: On an unknown resolution or bad refund
            InvalidTransition: If the order has no open dispute
        """
        require_admin(admin, "resolve disputes")
        if resolution not in DisputeResolution.values:
            raise SettlementValidationError(
                f"Unknown resolution '{resolution}'",
                details={"allowed": list(DisputeResolution.values)},
            )
        notes = (notes or "").strip()
        created_by = actor_label(admin)

        with cls.atomic():
            order = lock_for_update(Order, order_id, not_found_error=OrderNotFound)
            dispute = order.open_dispute_record
            if dispute is None:
                raise InvalidTransition(
                    "This order has no open dispute",
                    details={"order_id": str(order.id), "current_status": order.status},
                )

            if resolution == DisputeResolution.FAVOR_CUSTOMER:
                split = SettlementSplit.full_refund(order.total)
                with fsm_guard(order, "resolve_cancelled"):
                    order.resolve_cancelled()
                    order.refund_escrow()
                order.refund_amount = split.refund_amount
                order.save()
                LedgerService.record_refund(order, split.refund_amount, created_by=created_by)
                message = order_messages.RESOLVED_FOR_CUSTOMER

            elif resolution == DisputeResolution.FAVOR_SELLER:
                split = SettlementSplit.compute(
                    order.total, OrderService.resolve_commission_rate(order)
                )
                with fsm_guard(order, "resolve_completed"):
                    order.resolve_completed()
                    order.release_escrow()
                order.apply_split(split.commission_rate, split.commission, split.seller_earning)
                order.save()
                LedgerService.record_sale(order, split, created_by=created_by)
                message = order_messages.RESOLVED_FOR_SELLER

            else:
                refund = cls._clean_refund_amount(refund_amount, order.total)
                split = SettlementSplit.compute(
                    order.total, OrderService.resolve_commission_rate(order), refund
                )
                with fsm_guard(order, "resolve_completed"):
                    order.resolve_completed()
                    order.release_escrow()
                order.apply_split(
                    split.commission_rate,
                    split.commission,
                    split.seller_earning,
                    refund_amount=split.refund_amount,
                )
                order.save()
                LedgerService.record_partial_refund(order, split, created_by=created_by)
                message = order_messages.partial_refund_text(split.refund_amount, notes)

            with fsm_guard(dispute, "resolve"):
                dispute.resolve(
                    resolution=resolution,
                    resolved_by=admin,
                    refund_amount=split.refund_amount if split.refund_amount > ZERO else None,
                    notes=notes,
                )
            dispute.save()

            order_messages.post_system_message(order, message)
            notify.notify_dispute_resolved(order, dispute)

        cls.get_logger().info(
            "Dispute resolved",
            extra={
                "order_id": str(order_id),
                "dispute_id": str(dispute.id),
                "resolution": resolution,
                "refund_amount": str(split.refund_amount),
                "seller_earning": str(split.seller_earning),
                "commission": str(split.commission),
                "admin_id": admin.pk,
            },
        )
        return Order.objects.get(pk=order_id)

    @staticmethod
    def _clean_refund_amount(refund_amount: Any, total: Decimal) -> Decimal:
        if refund_amount is None:
            raise SettlementValidationError("A partial refund needs a refund amount")
        try:
            refund = to_money(refund_amount)
        except (InvalidOperation, TypeError, ValueError):
            raise SettlementValidationError("Refund amount must be a number")
        if refund <= ZERO or refund > total:
            raise SettlementValidationError(
                f"Refund amount must be greater than 0 and at most {total}",
                details={"refund_amount": str(refund), "total": str(total)},
            )
        return refund
