"""
State machine enums for settlement models.
"""

from settlement.state_machines.states import (
    DisputeResolution,
    DisputeStatus,
    DisputeType,
    EscrowStatus,
    OrderStatus,
    PaymentStatus,
    PayoutStatus,
    WebhookEventStatus,
)

__all__ = [
    "DisputeResolution",
    "DisputeStatus",
    "DisputeType",
    "EscrowStatus",
    "OrderStatus",
    "PaymentStatus",
    "PayoutStatus",
    "WebhookEventStatus",
]
