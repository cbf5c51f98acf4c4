"""
Settlement domain models.

This module contains all settlement models:
- Order / Dispute: Order lifecycle, escrow and disputes
- Payout / PayoutDestination: Seller withdrawals and bank details
- WebhookEvent: Paystack deliveries for idempotent processing
- FailedPayment: Audit of failed or refused charges
- OrderMessage: Order-scoped system chat messages
- CommissionPolicy: Process-wide commission and payout policy
- ReconciliationLog: Reconciliation run history
- LedgerEntry: Append-only ledger (defined in settlement.ledger)
"""

from settlement.ledger.models import LedgerEntry, LedgerEntryKind
from settlement.models.messages import OrderMessage
from settlement.models.order import Dispute, Order
from settlement.models.payout import Payout, PayoutDestination
from settlement.models.policy import CommissionPolicy
from settlement.models.reconciliation import ReconciliationIssueType, ReconciliationLog
from settlement.models.webhook_event import FailedPayment, WebhookEvent

__all__ = [
    "CommissionPolicy",
    "Dispute",
    "FailedPayment",
    "LedgerEntry",
    "LedgerEntryKind",
    "Order",
    "OrderMessage",
    "Payout",
    "PayoutDestination",
    "ReconciliationIssueType",
    "ReconciliationLog",
    "WebhookEvent",
]
