"""
System chat messages appended to an order's conversation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from settlement.ledger.types import format_naira
from settlement.models import OrderMessage
from settlement.state_machines import DisputeType

if TYPE_CHECKING:
    from decimal import Decimal

    from settlement.models import Order

logger = logging.getLogger(__name__)

ITEM_SENT = "Seller has sent the item"
ITEM_RECEIVED = "Customer has received the item"
ORDER_CANCELLED = "Order cancelled"
RESOLVED_FOR_CUSTOMER = "Dispute resolved in favor of customer. Full refund issued."
RESOLVED_FOR_SELLER = "Dispute resolved in favor of seller. Funds released."


def auto_released_text(days: int) -> str:
    return f"Funds have been automatically released after {days} days."


def dispute_opened_text(dispute_type: str) -> str:
    return f"Customer has opened a dispute: {DisputeType(dispute_type).label}"


def partial_refund_text(refund_amount: Decimal, notes: str = "") -> str:
    text = f"Dispute resolved with partial refund of {format_naira(refund_amount)}."
    if notes:
        text += f" Notes: {notes}"
    return text


def post_system_message(order: Order, text: str, image_url: str | None = None) -> OrderMessage:
    """Append a system message to the order's chat."""
    message = OrderMessage.objects.create(
        order=order,
        sender=None,
        is_system=True,
        text=text,
        image_url=image_url or "",
    )
    logger.debug(
        "System message posted",
        extra={"order_id": str(order.id), "message_id": message.pk},
    )
    return message
