"""
Tests for the payout executor worker tasks.

Tests cover:
- Selection of due pending payouts
- Batch isolation: one failing payout never stops the run
- Retry hand-off while Paystack is unavailable
- Single payout execution statuses
"""

import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.utils import timezone

from settlement.adapters import TransferResult
from settlement.exceptions import ProviderRejected, ProviderUnavailable
from settlement.models import Payout
from settlement.state_machines import PayoutStatus
from settlement.tests.factories import (
    LedgerEntryFactory,
    PayoutDestinationFactory,
    PayoutFactory,
    UserFactory,
)
from settlement.workers import execute_single_payout, process_due_payouts


@pytest.fixture
def make_funded_seller(db):
    """Build sellers with ₦95,000 of earnings and a payout destination."""

    def _make():
        seller = UserFactory()
        PayoutDestinationFactory(seller=seller, account_number="0123456789")
        LedgerEntryFactory(seller=seller, amount=Decimal("95000.00"))
        return seller

    return _make


@pytest.fixture
def funded_seller(make_funded_seller):
    return make_funded_seller()


@pytest.fixture
def mock_retry():
    with patch("settlement.workers.payout_executor.execute_single_payout.apply_async") as mocked:
        yield mocked


class TestProcessDuePayouts:
    def test_processes_due_payouts_only(
        self, make_funded_seller, paystack, mock_redis, mock_retry
    ):
        due = PayoutFactory(seller=make_funded_seller())
        PayoutFactory(
            seller=make_funded_seller(),
            expected_processing_date=timezone.localdate() + timedelta(days=2),
        )

        result = process_due_payouts()

        assert result["processed"] == 1
        assert result["processed_ids"] == [str(due.id)]
        assert Payout.objects.get(pk=due.id).status == PayoutStatus.COMPLETED
        assert Payout.objects.filter(status=PayoutStatus.PENDING).count() == 1

    def test_failures_do_not_stop_the_batch(
        self, make_funded_seller, paystack, mock_redis, mock_retry
    ):
        first = PayoutFactory(
            seller=make_funded_seller(),
            expected_processing_date=timezone.localdate() - timedelta(days=1),
        )
        second = PayoutFactory(seller=make_funded_seller())

        def transfer(amount_kobo, recipient_code, reference, reason):
            if reference == first.transfer_reference:
                raise ProviderRejected("Account closed", provider_message="Account closed")
            return TransferResult("TRF_ok", reference, "pending", amount_kobo)

        paystack.initiate_transfer.side_effect = transfer

        result = process_due_payouts()

        assert result["processed_ids"] == [str(second.id)]
        assert result["failed_details"] == [
            {
                "payout_id": str(first.id),
                "error": "Account closed",
                "error_code": "PROVIDER_REJECTED",
            }
        ]
        assert Payout.objects.get(pk=first.id).status == PayoutStatus.FAILED

    def test_unavailable_provider_schedules_retry(
        self, funded_seller, paystack, mock_redis, mock_retry
    ):
        payout = PayoutFactory(seller=funded_seller)
        paystack.initiate_transfer.side_effect = ProviderUnavailable("timeout")

        result = process_due_payouts()

        assert result["failed"] == 1
        mock_retry.assert_called_once_with(args=[str(payout.id)], countdown=60)
        assert Payout.objects.get(pk=payout.id).status == PayoutStatus.PENDING

    def test_nothing_due(self, db, paystack, mock_redis, mock_retry):
        assert process_due_payouts() == {
            "processed": 0,
            "failed": 0,
            "processed_ids": [],
            "failed_details": [],
        }


class TestExecuteSinglePayout:
    def test_completed(self, funded_seller, paystack, mock_redis):
        payout = PayoutFactory(seller=funded_seller)

        result = execute_single_payout(str(payout.id))

        assert result == {
            "status": "completed",
            "payout_id": str(payout.id),
            "transfer_code": "TRF_test123",
        }

    def test_not_found(self, db, paystack, mock_redis):
        payout_id = str(uuid.uuid4())

        assert execute_single_payout(payout_id)["status"] == "not_found"

    def test_invalid_id(self, db):
        assert execute_single_payout("nope")["status"] == "not_found"

    def test_invalid_state(self, funded_seller, paystack, mock_redis):
        payout = PayoutFactory(seller=funded_seller, status=PayoutStatus.CANCELLED)

        assert execute_single_payout(str(payout.id))["status"] == "invalid_state"

    def test_rejected(self, funded_seller, paystack, mock_redis):
        payout = PayoutFactory(seller=funded_seller)
        paystack.initiate_transfer.side_effect = ProviderRejected("Invalid account")

        result = execute_single_payout(str(payout.id))

        assert result["status"] == "failed"
        assert result["error_code"] == "PROVIDER_REJECTED"

    def test_insufficient_balance(self, seller, destination, paystack, mock_redis):
        payout = PayoutFactory(seller=seller)

        result = execute_single_payout(str(payout.id))

        assert result["status"] == "failed"
        assert result["error_code"] == "INSUFFICIENT_BALANCE"

    def test_unavailable_is_raised_for_retry(self, funded_seller, paystack, mock_redis):
        payout = PayoutFactory(seller=funded_seller)
        paystack.initiate_transfer.side_effect = ProviderUnavailable("timeout")

        with pytest.raises(ProviderUnavailable):
            execute_single_payout(str(payout.id))

        assert Payout.objects.get(pk=payout.id).status == PayoutStatus.PENDING
