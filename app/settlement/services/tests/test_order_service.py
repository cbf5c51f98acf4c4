"""
Tests for OrderService.

Tests cover:
- mark_order_as_sent: guards, escrow hold, auto-release deadline
- mark_order_as_received: escrow release, sale entry, dispute block
- cancel_order: pre-shipment cancellation with and without refund
- Optimistic version checks
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from settlement.exceptions import (
    DisputeOpen,
    InvalidTransition,
    OrderNotFound,
    StaleRecordError,
    Unauthorized,
)
from settlement.ledger.models import LedgerEntry, LedgerEntryKind
from settlement.models import Order, OrderMessage
from settlement.services import OrderService, PolicyService
from settlement.state_machines import EscrowStatus, OrderStatus
from settlement.tests.factories import DisputeFactory


def get_fresh_order(order_id) -> Order:
    """Protected FSM fields rule out refresh_from_db(); load a new instance."""
    return Order.objects.get(pk=order_id)


class TestMarkOrderAsSent:
    def test_seller_marks_paid_order_as_sent(self, paid_order, seller):
        before = timezone.now()

        order = OrderService.mark_order_as_sent(
            paid_order.id, actor=seller, photo_url="https://cdn.example.com/box.jpg"
        )

        assert order.status == OrderStatus.SENT
        assert order.escrow_status == EscrowStatus.HELD
        assert order.sent_photo_url == "https://cdn.example.com/box.jpg"
        days = PolicyService.get_policy().auto_release_days
        assert order.auto_release_at >= before + timedelta(days=days)
        assert order.auto_release_at <= timezone.now() + timedelta(days=days)

    def test_posts_system_message_with_photo(self, paid_order, seller):
        OrderService.mark_order_as_sent(
            paid_order.id, actor=seller, photo_url="https://cdn.example.com/box.jpg"
        )

        message = OrderMessage.objects.get(order=paid_order)
        assert message.is_system
        assert message.sender is None
        assert message.text == "Seller has sent the item"
        assert message.image_url == "https://cdn.example.com/box.jpg"

    def test_no_ledger_entry_is_written(self, paid_order, seller):
        OrderService.mark_order_as_sent(paid_order.id, actor=seller)

        assert not LedgerEntry.objects.filter(order=paid_order).exists()

    def test_customer_cannot_mark_as_sent(self, paid_order, customer):
        with pytest.raises(Unauthorized):
            OrderService.mark_order_as_sent(paid_order.id, actor=customer)

        assert get_fresh_order(paid_order.id).status == OrderStatus.PROCESSING

    def test_admin_can_mark_as_sent(self, paid_order, admin_user):
        order = OrderService.mark_order_as_sent(paid_order.id, actor=admin_user)

        assert order.status == OrderStatus.SENT

    def test_unpaid_order_rejected(self, unpaid_order, seller):
        with pytest.raises(InvalidTransition):
            OrderService.mark_order_as_sent(unpaid_order.id, actor=seller)

    def test_already_sent_order_rejected(self, sent_order, seller):
        with pytest.raises(InvalidTransition):
            OrderService.mark_order_as_sent(sent_order.id, actor=seller)

    def test_unknown_order(self, db, seller):
        with pytest.raises(OrderNotFound):
            OrderService.mark_order_as_sent(uuid.uuid4(), actor=seller)

    def test_stale_version_rejected(self, paid_order, seller):
        with pytest.raises(StaleRecordError):
            OrderService.mark_order_as_sent(
                paid_order.id, actor=seller, expected_version=paid_order.version + 1
            )

    def test_version_increments(self, paid_order, seller):
        order = OrderService.mark_order_as_sent(
            paid_order.id, actor=seller, expected_version=paid_order.version
        )

        assert order.version == paid_order.version + 1


class TestMarkOrderAsReceived:
    def test_customer_confirms_receipt(self, sent_order, customer):
        order = OrderService.mark_order_as_received(sent_order.id, actor=customer)

        assert order.status == OrderStatus.COMPLETED
        assert order.escrow_status == EscrowStatus.RELEASED
        assert order.received_at is not None
        assert order.funds_released_at is not None
        assert order.auto_released is False

    def test_sale_entry_and_split_snapshot(self, sent_order, customer):
        """₦100,000 at the default 5% -> ₦95,000 sale entry carrying ₦5,000."""
        order = OrderService.mark_order_as_received(sent_order.id, actor=customer)

        entry = LedgerEntry.objects.get(order=sent_order)
        assert entry.kind == LedgerEntryKind.SALE
        assert entry.amount == Decimal("95000.00")
        assert entry.commission == Decimal("5000.00")
        assert entry.seller_id == sent_order.seller_id
        assert entry.created_by == f"user:{customer.pk}"
        assert order.commission_rate == Decimal("0.0500")
        assert order.commission_amount == Decimal("5000.00")
        assert order.seller_earning == Decimal("95000.00")

    def test_uses_policy_rate_at_settlement_time(self, sent_order, customer, admin_user):
        PolicyService.update_policy(admin_user, commission_rate=Decimal("0.10"))

        order = OrderService.mark_order_as_received(sent_order.id, actor=customer)

        assert order.commission_amount == Decimal("10000.00")
        assert order.seller_earning == Decimal("90000.00")

    def test_seller_cannot_confirm_receipt(self, sent_order, seller):
        with pytest.raises(Unauthorized):
            OrderService.mark_order_as_received(sent_order.id, actor=seller)

    def test_stranger_cannot_confirm_receipt(self, sent_order, stranger):
        with pytest.raises(Unauthorized):
            OrderService.mark_order_as_received(sent_order.id, actor=stranger)

    def test_processing_order_rejected(self, paid_order, customer):
        with pytest.raises(InvalidTransition):
            OrderService.mark_order_as_received(paid_order.id, actor=customer)

    def test_open_dispute_blocks_receipt(self, customer, seller):
        dispute = DisputeFactory(order__customer=customer, order__seller=seller)

        with pytest.raises(DisputeOpen):
            OrderService.mark_order_as_received(dispute.order_id, actor=customer)

        assert not LedgerEntry.objects.filter(order_id=dispute.order_id).exists()

    def test_dispute_open_is_an_invalid_transition(self):
        assert issubclass(DisputeOpen, InvalidTransition)

    def test_second_confirmation_rejected(self, sent_order, customer):
        OrderService.mark_order_as_received(sent_order.id, actor=customer)

        with pytest.raises(InvalidTransition):
            OrderService.mark_order_as_received(sent_order.id, actor=customer)

        assert LedgerEntry.objects.filter(order=sent_order).count() == 1

    def test_system_message_posted(self, sent_order, customer):
        OrderService.mark_order_as_received(sent_order.id, actor=customer)

        texts = list(
            OrderMessage.objects.filter(order=sent_order).values_list("text", flat=True)
        )
        assert texts == ["Customer has received the item"]


class TestCancelOrder:
    def test_cancel_paid_order_refunds_in_full(self, paid_order, customer):
        order = OrderService.cancel_order(paid_order.id, actor=customer, reason="Changed mind")

        assert order.status == OrderStatus.CANCELLED
        assert order.escrow_status == EscrowStatus.REFUNDED
        assert order.refund_amount == Decimal("100000.00")
        assert order.cancellation_reason == "Changed mind"

        entry = LedgerEntry.objects.get(order=paid_order)
        assert entry.kind == LedgerEntryKind.REFUND
        assert entry.amount == Decimal("100000.00")
        assert entry.customer_id == customer.pk

    def test_cancel_unpaid_order_writes_no_entry(self, unpaid_order, seller):
        order = OrderService.cancel_order(unpaid_order.id, actor=seller)

        assert order.status == OrderStatus.CANCELLED
        assert order.escrow_status == EscrowStatus.NONE
        assert not LedgerEntry.objects.filter(order=unpaid_order).exists()

    def test_sent_order_cannot_be_cancelled(self, sent_order, customer):
        with pytest.raises(InvalidTransition):
            OrderService.cancel_order(sent_order.id, actor=customer)

    def test_stranger_cannot_cancel(self, paid_order, stranger):
        with pytest.raises(Unauthorized):
            OrderService.cancel_order(paid_order.id, actor=stranger)
