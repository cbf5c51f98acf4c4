"""
Order settlement engine.

This app turns a gateway-confirmed payment into a fund-safe order
lifecycle between a customer, a seller and the platform:
- Paystack webhook ingestion (signature check, idempotent dispatch)
- Order status / escrow status state machines
- Dispute resolution with fund splitting
- Time-based auto-release of escrow
- Append-only ledger and seller payouts

Related apps:
    - core: error taxonomy, ServiceResult, BaseModel
    - notifications: user-facing notification sink

Usage:
    from settlement.services import OrderService, PayoutService

    OrderService.mark_order_as_sent(order_id, actor=request.user)
    PayoutService.request_payout(seller=request.user, amount=Decimal("50000"))
"""
