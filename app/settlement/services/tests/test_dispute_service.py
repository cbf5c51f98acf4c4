"""
Tests for DisputeService.

Tests cover:
- Opening disputes on processing and sent orders
- Guards: party, terminal orders, unpaid orders, one open dispute
- The three resolution outcomes and their ledger entries
- Partial refund amount validation
"""

from decimal import Decimal

import pytest

from notifications.models import Notification, NotificationKind
from settlement.exceptions import (
    InvalidTransition,
    SettlementValidationError,
    Unauthorized,
)
from settlement.ledger.models import LedgerEntry, LedgerEntryKind
from settlement.models import Dispute, Order, OrderMessage
from settlement.services import DisputeService, OrderService
from settlement.state_machines import (
    DisputeResolution,
    DisputeStatus,
    DisputeType,
    EscrowStatus,
    OrderStatus,
)
from settlement.tests.factories import DisputeFactory, OrderFactory


@pytest.fixture
def disputed_order(customer, seller):
    """A sent order with an open damaged-item dispute."""
    dispute = DisputeFactory(order__customer=customer, order__seller=seller)
    return dispute.order


class TestOpenDispute:
    def test_customer_opens_dispute_on_sent_order(self, sent_order, customer):
        dispute = DisputeService.open_dispute(
            sent_order.id,
            actor=customer,
            dispute_type=DisputeType.DAMAGED,
            description="  Screen cracked  ",
            photos=["https://cdn.example.com/crack.jpg"],
        )

        assert dispute.status == DisputeStatus.OPEN
        assert dispute.description == "Screen cracked"
        assert dispute.photos == ["https://cdn.example.com/crack.jpg"]
        order = Order.objects.get(pk=sent_order.id)
        assert order.status == OrderStatus.DISPUTED
        assert order.disputed_at is not None

    def test_escrow_is_untouched(self, sent_order, customer):
        DisputeService.open_dispute(
            sent_order.id, customer, DisputeType.NOT_RECEIVED, "Never arrived"
        )

        order = Order.objects.get(pk=sent_order.id)
        assert order.escrow_status == EscrowStatus.HELD
        assert not LedgerEntry.objects.filter(order=sent_order).exists()

    def test_dispute_on_processing_order(self, paid_order, customer):
        DisputeService.open_dispute(
            paid_order.id, customer, DisputeType.WRONG_ITEM, "Wrong colour"
        )

        order = Order.objects.get(pk=paid_order.id)
        assert order.status == OrderStatus.DISPUTED
        assert order.escrow_status == EscrowStatus.NONE

    def test_message_and_seller_notification(self, sent_order, customer):
        DisputeService.open_dispute(
            sent_order.id, customer, DisputeType.DAMAGED, "Cracked"
        )

        message = OrderMessage.objects.get(order=sent_order)
        assert message.text == "Customer has opened a dispute: Item damaged"
        note = Notification.objects.get(recipient=sent_order.seller)
        assert note.kind == NotificationKind.DISPUTE_OPENED

    def test_seller_cannot_open_dispute(self, sent_order, seller):
        with pytest.raises(Unauthorized):
            DisputeService.open_dispute(sent_order.id, seller, DisputeType.DAMAGED, "x")

    def test_unknown_type_rejected(self, sent_order, customer):
        with pytest.raises(SettlementValidationError):
            DisputeService.open_dispute(sent_order.id, customer, "lost_in_space", "x")

    def test_blank_description_rejected(self, sent_order, customer):
        with pytest.raises(SettlementValidationError):
            DisputeService.open_dispute(sent_order.id, customer, DisputeType.DAMAGED, "   ")

    def test_completed_order_rejected(self, customer, seller):
        order = OrderFactory(
            customer=customer,
            seller=seller,
            paid=True,
            status=OrderStatus.COMPLETED,
            escrow_status=EscrowStatus.RELEASED,
        )

        with pytest.raises(InvalidTransition):
            DisputeService.open_dispute(order.id, customer, DisputeType.DAMAGED, "x")

    def test_unpaid_order_rejected(self, unpaid_order, customer):
        with pytest.raises(InvalidTransition):
            DisputeService.open_dispute(
                unpaid_order.id, customer, DisputeType.NOT_RECEIVED, "x"
            )

    def test_second_dispute_rejected(self, disputed_order, customer):
        with pytest.raises(InvalidTransition):
            DisputeService.open_dispute(
                disputed_order.id, customer, DisputeType.DAMAGED, "Again"
            )

        assert Dispute.objects.filter(order=disputed_order).count() == 1


class TestResolveDispute:
    def test_favor_customer_refunds_in_full(self, disputed_order, admin_user):
        order = DisputeService.resolve_dispute(
            disputed_order.id, admin_user, DisputeResolution.FAVOR_CUSTOMER
        )

        assert order.status == OrderStatus.CANCELLED
        assert order.escrow_status == EscrowStatus.REFUNDED
        assert order.refund_amount == Decimal("100000.00")
        entries = LedgerEntry.objects.filter(order=disputed_order)
        assert [(e.kind, e.amount) for e in entries] == [
            (LedgerEntryKind.REFUND, Decimal("100000.00"))
        ]

    def test_favor_seller_releases_funds(self, disputed_order, admin_user):
        order = DisputeService.resolve_dispute(
            disputed_order.id, admin_user, DisputeResolution.FAVOR_SELLER
        )

        assert order.status == OrderStatus.COMPLETED
        assert order.escrow_status == EscrowStatus.RELEASED
        entry = LedgerEntry.objects.get(order=disputed_order)
        assert entry.kind == LedgerEntryKind.SALE
        assert entry.amount == Decimal("95000.00")
        assert entry.commission == Decimal("5000.00")

    def test_partial_refund_splits_total(self, disputed_order, admin_user):
        """Refund ₦40,000 of ₦100,000 at 5%: ₦40,000 + ₦5,000 + ₦55,000."""
        order = DisputeService.resolve_dispute(
            disputed_order.id,
            admin_user,
            DisputeResolution.PARTIAL_REFUND,
            refund_amount="40000",
            notes="Minor scratches",
        )

        assert order.status == OrderStatus.COMPLETED
        assert order.escrow_status == EscrowStatus.RELEASED
        assert order.refund_amount == Decimal("40000.00")
        assert order.seller_earning == Decimal("55000.00")
        assert order.commission_amount == Decimal("5000.00")

        refund = LedgerEntry.objects.get(order=disputed_order, kind=LedgerEntryKind.REFUND)
        sale = LedgerEntry.objects.get(order=disputed_order, kind=LedgerEntryKind.SALE)
        assert refund.amount == Decimal("40000.00")
        assert sale.amount == Decimal("55000.00")
        assert refund.amount + sale.amount + sale.commission == order.total

        message = OrderMessage.objects.filter(order=disputed_order).last()
        assert message.text == (
            "Dispute resolved with partial refund of ₦40,000.00. Notes: Minor scratches"
        )

    def test_dispute_record_is_resolved(self, disputed_order, admin_user):
        DisputeService.resolve_dispute(
            disputed_order.id,
            admin_user,
            DisputeResolution.PARTIAL_REFUND,
            refund_amount=Decimal("10000"),
        )

        dispute = Dispute.objects.get(order=disputed_order)
        assert dispute.status == DisputeStatus.RESOLVED
        assert dispute.resolution == DisputeResolution.PARTIAL_REFUND
        assert dispute.refund_amount == Decimal("10000.00")
        assert dispute.resolved_by == admin_user
        assert dispute.resolved_at is not None

    def test_both_parties_notified(self, disputed_order, admin_user):
        DisputeService.resolve_dispute(
            disputed_order.id, admin_user, DisputeResolution.FAVOR_SELLER
        )

        recipients = set(
            Notification.objects.filter(kind=NotificationKind.DISPUTE_RESOLVED)
            .values_list("recipient_id", flat=True)
        )
        assert recipients == {disputed_order.customer_id, disputed_order.seller_id}

    def test_resolved_order_can_no_longer_be_received(self, disputed_order, admin_user):
        DisputeService.resolve_dispute(
            disputed_order.id, admin_user, DisputeResolution.FAVOR_SELLER
        )

        with pytest.raises(InvalidTransition):
            OrderService.mark_order_as_received(
                disputed_order.id, actor=disputed_order.customer
            )

    def test_non_admin_rejected(self, disputed_order, customer):
        with pytest.raises(Unauthorized):
            DisputeService.resolve_dispute(
                disputed_order.id, customer, DisputeResolution.FAVOR_CUSTOMER
            )

    def test_no_open_dispute(self, sent_order, admin_user):
        with pytest.raises(InvalidTransition):
            DisputeService.resolve_dispute(
                sent_order.id, admin_user, DisputeResolution.FAVOR_SELLER
            )

    def test_second_resolution_rejected(self, disputed_order, admin_user):
        DisputeService.resolve_dispute(
            disputed_order.id, admin_user, DisputeResolution.FAVOR_CUSTOMER
        )

        with pytest.raises(InvalidTransition):
            DisputeService.resolve_dispute(
                disputed_order.id, admin_user, DisputeResolution.FAVOR_SELLER
            )
        assert LedgerEntry.objects.filter(order=disputed_order).count() == 1

    def test_unknown_resolution(self, disputed_order, admin_user):
        with pytest.raises(SettlementValidationError):
            DisputeService.resolve_dispute(disputed_order.id, admin_user, "split_evenly")

    @pytest.mark.parametrize("refund_amount", [None, "0", "-5", "100000.01", "abc"])
    def test_invalid_partial_refund_amount(self, disputed_order, admin_user, refund_amount):
        with pytest.raises(SettlementValidationError):
            DisputeService.resolve_dispute(
                disputed_order.id,
                admin_user,
                DisputeResolution.PARTIAL_REFUND,
                refund_amount=refund_amount,
            )

        order = Order.objects.get(pk=disputed_order.id)
        assert order.status == OrderStatus.DISPUTED
        assert not LedgerEntry.objects.filter(order=disputed_order).exists()

    def test_partial_refund_of_whole_total(self, disputed_order, admin_user):
        order = DisputeService.resolve_dispute(
            disputed_order.id,
            admin_user,
            DisputeResolution.PARTIAL_REFUND,
            refund_amount="100000",
        )

        assert order.seller_earning == Decimal("0.00")
        assert order.commission_amount == Decimal("0.00")
