"""
State enums for settlement models.

These are Django TextChoices used by django-fsm fields and admin filters.

State Machines Overview:

Order status:
    processing → sent → completed (buyer confirms or auto-release)
    processing/sent → disputed → completed | cancelled
    processing → cancelled

Escrow status (travels alongside order status, one-way):
    none → held → released | refunded
    none → released | refunded (dispute on a paid, unsent order)

Payout:
    pending → completed | failed | cancelled
    completed → failed | cancelled (late transfer webhook)
"""

from django.db import models


class OrderStatus(models.TextChoices):
    """
    Lifecycle status of an order.

    Terminal states: COMPLETED, CANCELLED
    """

    PROCESSING = "processing", "Processing"
    SENT = "sent", "Sent"
    COMPLETED = "completed", "Completed"
    DISPUTED = "disputed", "Disputed"
    CANCELLED = "cancelled", "Cancelled"


class EscrowStatus(models.TextChoices):
    """
    Where the order's funds currently sit.

    HELD while provisionally owed to the seller, RELEASED once a sale
    entry has been written, REFUNDED once a refund entry has been written.
    """

    NONE = "none", "None"
    HELD = "held", "Held"
    RELEASED = "released", "Released"
    REFUNDED = "refunded", "Refunded"


class PaymentStatus(models.TextChoices):
    """Gateway charge status for an order."""

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class DisputeType(models.TextChoices):
    """Reason a customer opened a dispute."""

    NOT_RECEIVED = "not_received", "Item not received"
    WRONG_ITEM = "wrong_item", "Wrong item received"
    DAMAGED = "damaged", "Item damaged"


class DisputeStatus(models.TextChoices):
    OPEN = "open", "Open"
    RESOLVED = "resolved", "Resolved"


class DisputeResolution(models.TextChoices):
    """Admin outcome for a dispute."""

    FAVOR_CUSTOMER = "favor_customer", "Favor Customer"
    FAVOR_SELLER = "favor_seller", "Favor Seller"
    PARTIAL_REFUND = "partial_refund", "Partial Refund"


class PayoutStatus(models.TextChoices):
    """
    States for the Payout model lifecycle.

    FAILED is terminal; the seller retries by requesting a new payout.
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


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
