"""
Settlement services.

Services:
- OrderService: Mark sent / received, pre-shipment cancellation
- PaymentService: Charge confirmation and failure (webhooks, reconciliation)
- DisputeService: Open and resolve disputes
- PayoutService: Payout destination, request, processing, transfer webhooks
- AutoReleaseService: Escrow auto-release sweep
- PolicyService: Commission policy provider
- ReconciliationService: Payment reconciliation against Paystack
"""

from settlement.services.auto_release_service import AutoReleaseService
from settlement.services.dispute_service import DisputeService
from settlement.services.order_service import OrderService
from settlement.services.payment_service import PaymentService
from settlement.services.payout_service import PayoutService, SellerEarnings
from settlement.services.policy_service import PolicyService
from settlement.services.reconciliation_service import ReconciliationService

__all__ = [
    "AutoReleaseService",
    "DisputeService",
    "OrderService",
    "PaymentService",
    "PayoutService",
    "PolicyService",
    "ReconciliationService",
    "SellerEarnings",
]
