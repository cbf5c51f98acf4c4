"""
Tests for PaymentService charge confirmation and failure.
"""

from decimal import Decimal

import pytest

from notifications.models import Notification, NotificationKind
from settlement.models import FailedPayment, Order
from settlement.services import PaymentService
from settlement.services.payment_service import AMOUNT_MISMATCH_REASON
from settlement.state_machines import PaymentStatus


class TestConfirmCharge:
    def test_confirms_pending_payment(self, unpaid_order):
        result = PaymentService.confirm_charge(
            reference=unpaid_order.payment_reference,
            amount=Decimal("100000.00"),
            customer_code="CUS_abc",
        )

        assert result.success
        assert result.data == {"status": "confirmed", "order_id": str(unpaid_order.id)}
        order = Order.objects.get(pk=unpaid_order.id)
        assert order.payment_status == PaymentStatus.COMPLETED
        assert order.payment_verified_at is not None
        assert order.customer_code == "CUS_abc"

    def test_notifies_both_parties(self, unpaid_order):
        PaymentService.confirm_charge(
            reference=unpaid_order.payment_reference, amount=Decimal("100000.00")
        )

        seller_note = Notification.objects.get(recipient=unpaid_order.seller)
        assert seller_note.kind == NotificationKind.NEW_ORDER
        assert "₦100,000.00" in seller_note.body
        customer_note = Notification.objects.get(recipient=unpaid_order.customer)
        assert customer_note.kind == NotificationKind.ORDER_CONFIRMED

    def test_redelivery_is_a_no_op(self, unpaid_order):
        PaymentService.confirm_charge(
            reference=unpaid_order.payment_reference, amount=Decimal("100000.00")
        )

        result = PaymentService.confirm_charge(
            reference=unpaid_order.payment_reference, amount=Decimal("100000.00")
        )

        assert result.data["status"] == "already_confirmed"
        assert Notification.objects.count() == 2

    def test_unknown_reference(self, db):
        result = PaymentService.confirm_charge(reference="T_missing", amount=None)

        assert not result.success
        assert result.error_code == "ORDER_NOT_FOUND"

    def test_underpayment_is_refused(self, unpaid_order):
        result = PaymentService.confirm_charge(
            reference=unpaid_order.payment_reference, amount=Decimal("90000.00")
        )

        assert result.data["status"] == "amount_mismatch"
        order = Order.objects.get(pk=unpaid_order.id)
        assert order.payment_status == PaymentStatus.FAILED
        assert order.payment_failure_reason == AMOUNT_MISMATCH_REASON
        failed = FailedPayment.objects.get(order=unpaid_order)
        assert failed.amount == Decimal("90000.00")

    def test_failed_payment_can_be_retried(self, unpaid_order):
        PaymentService.fail_charge(reference=unpaid_order.payment_reference)

        result = PaymentService.confirm_charge(
            reference=unpaid_order.payment_reference, amount=None
        )

        assert result.data["status"] == "confirmed"
        order = Order.objects.get(pk=unpaid_order.id)
        assert order.payment_status == PaymentStatus.COMPLETED
        assert order.payment_failure_reason == ""


class TestFailCharge:
    def test_marks_payment_failed(self, unpaid_order):
        result = PaymentService.fail_charge(
            reference=unpaid_order.payment_reference,
            reason="Declined",
            amount=Decimal("100000.00"),
        )

        assert result.data["status"] == "failed"
        order = Order.objects.get(pk=unpaid_order.id)
        assert order.payment_status == PaymentStatus.FAILED
        assert order.payment_failure_reason == "Declined"
        assert FailedPayment.objects.filter(order=unpaid_order, reason="Declined").exists()

    def test_default_reason(self, unpaid_order):
        PaymentService.fail_charge(reference=unpaid_order.payment_reference)

        order = Order.objects.get(pk=unpaid_order.id)
        assert order.payment_failure_reason == "Payment failed"

    def test_unknown_reference_is_recorded(self, db):
        result = PaymentService.fail_charge(reference="T_orphan", reason="Declined")

        assert result.success
        assert result.data == {"status": "recorded", "order_id": None}
        failed = FailedPayment.objects.get(reference="T_orphan")
        assert failed.order is None

    def test_completed_payment_is_not_regressed(self, paid_order):
        result = PaymentService.fail_charge(reference=paid_order.payment_reference)

        assert result.data["status"] == "already_confirmed"
        order = Order.objects.get(pk=paid_order.id)
        assert order.payment_status == PaymentStatus.COMPLETED
