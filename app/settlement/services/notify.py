"""
User notifications emitted by the settlement engine.

Every notification carries an idempotency key derived from the event, so
a replayed webhook or a retried task never notifies twice.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from notifications.models import NotificationKind
from notifications.services import NotificationService

from settlement.ledger.types import format_naira

if TYPE_CHECKING:
    from settlement.models import Dispute, Order, Payout


def _short_id(order: Order) -> str:
    return str(order.id)[:7]


def notify_new_order(order: Order, amount) -> None:
    NotificationService.create_notification(
        recipient=order.seller,
        kind=NotificationKind.NEW_ORDER,
        title="New Order Received",
        body=(
            f"You have received a new order ({_short_id(order)}) "
            f"for {format_naira(amount)}"
        ),
        data={"order_id": str(order.id)},
        idempotency_key=f"new_order:{order.id}",
    )


def notify_order_confirmed(order: Order) -> None:
    NotificationService.create_notification(
        recipient=order.customer,
        kind=NotificationKind.ORDER_CONFIRMED,
        title="Order Confirmed",
        body=f"Your order ({_short_id(order)}) has been confirmed and payment received.",
        data={"order_id": str(order.id)},
        idempotency_key=f"order_confirmed:{order.id}",
    )


def notify_payout_completed(payout: Payout) -> None:
    NotificationService.create_notification(
        recipient=payout.seller,
        kind=NotificationKind.PAYOUT_COMPLETED,
        title="Payout Completed",
        body=(
            f"Your payout of {format_naira(payout.amount)} has been successfully "
            "transferred to your account."
        ),
        data={"payout_id": str(payout.id), "amount": str(payout.amount)},
        idempotency_key=f"payout_completed:{payout.id}",
    )


def notify_payout_failed(payout: Payout) -> None:
    reason = payout.failure_reason or "Unknown error"
    NotificationService.create_notification(
        recipient=payout.seller,
        kind=NotificationKind.PAYOUT_FAILED,
        title="Payout Failed",
        body=f"Your payout of {format_naira(payout.amount)} failed. Reason: {reason}",
        data={"payout_id": str(payout.id), "amount": str(payout.amount)},
        idempotency_key=f"payout_failed:{payout.id}",
    )


def notify_payout_reversed(payout: Payout) -> None:
    NotificationService.create_notification(
        recipient=payout.seller,
        kind=NotificationKind.PAYOUT_REVERSED,
        title="Payout Reversed",
        body=(
            f"Your payout of {format_naira(payout.amount)} has been reversed. "
            "The amount has been returned to your balance."
        ),
        data={"payout_id": str(payout.id), "amount": str(payout.amount)},
        idempotency_key=f"payout_reversed:{payout.id}",
    )


def notify_dispute_opened(order: Order, dispute: Dispute) -> None:
    NotificationService.create_notification(
        recipient=order.seller,
        kind=NotificationKind.DISPUTE_OPENED,
        title="Dispute Opened",
        body=(
            f"The customer opened a dispute on order ({_short_id(order)}): "
            f"{dispute.get_dispute_type_display()}"
        ),
        data={"order_id": str(order.id), "dispute_id": str(dispute.id)},
        idempotency_key=f"dispute_opened:{dispute.id}",
    )


def notify_dispute_resolved(order: Order, dispute: Dispute) -> None:
    for recipient in (order.customer, order.seller):
        NotificationService.create_notification(
            recipient=recipient,
            kind=NotificationKind.DISPUTE_RESOLVED,
            title="Dispute Resolved",
            body=(
                f"The dispute on order ({_short_id(order)}) was resolved: "
                f"{dispute.get_resolution_display()}"
            ),
            data={
                "order_id": str(order.id),
                "dispute_id": str(dispute.id),
                "resolution": dispute.resolution,
            },
            idempotency_key=f"dispute_resolved:{dispute.id}:{recipient.pk}",
        )
