"""
Pytest fixtures shared by all settlement test packages.

Sections:
    - Users: customer, seller, admin
    - Orders: orders in each lifecycle state
    - Payouts: destination and seller balance
    - Infrastructure: Redis lock mock, Paystack adapter mock
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from settlement.adapters import (
    BankAccountResult,
    TransactionVerification,
    TransferRecipientResult,
    TransferResult,
)
from settlement.services import PayoutService, ReconciliationService
from settlement.tests.factories import (
    AdminFactory,
    LedgerEntryFactory,
    OrderFactory,
    PayoutDestinationFactory,
    UserFactory,
)


# =============================================================================
# Users
# =============================================================================


@pytest.fixture
def customer(db):
    return UserFactory()


@pytest.fixture
def seller(db):
    return UserFactory()


@pytest.fixture
def admin_user(db):
    """Staff user allowed to resolve disputes, process payouts and edit the policy."""
    return AdminFactory()


@pytest.fixture
def stranger(db):
    """A user who is neither party to the fixtures' orders."""
    return UserFactory()


# =============================================================================
# Orders
# =============================================================================


@pytest.fixture
def unpaid_order(db, customer, seller):
    return OrderFactory(customer=customer, seller=seller)


@pytest.fixture
def paid_order(db, customer, seller):
    return OrderFactory(customer=customer, seller=seller, paid=True)


@pytest.fixture
def sent_order(db, customer, seller):
    return OrderFactory(customer=customer, seller=seller, sent=True)


@pytest.fixture
def overdue_order(db, customer, seller):
    """SENT order whose auto-release deadline passed a day ago."""
    return OrderFactory(customer=customer, seller=seller, overdue=True)


# =============================================================================
# Payouts
# =============================================================================


@pytest.fixture
def destination(db, seller):
    return PayoutDestinationFactory(seller=seller, account_number="0123456789")


@pytest.fixture
def seller_earnings(db, seller):
    """₦95,000 of sale entries credited to ``seller``."""
    return LedgerEntryFactory(seller=seller, amount=Decimal("95000.00"))


# =============================================================================
# Infrastructure
# =============================================================================


@pytest.fixture
def mock_redis(mocker):
    """
    Mock Redis client behind DistributedLock.

    Locks are granted by default; set ``mock_redis.set.return_value =
    False`` to simulate a lock held elsewhere.
    """
    client = MagicMock()
    client.set.return_value = True
    client.eval.return_value = 1
    mocker.patch("settlement.locks.get_redis_connection", return_value=client)
    return client


@pytest.fixture
def paystack():
    """
    Mock Paystack adapter injected into the payout and reconciliation services.

    Defaults model a healthy gateway: recipients are created, transfers
    are accepted, accounts resolve and charges verify as successful.
    """
    adapter = MagicMock()
    adapter.create_transfer_recipient.return_value = TransferRecipientResult(
        recipient_code="RCP_test123"
    )
    adapter.initiate_transfer.side_effect = lambda amount_kobo, recipient_code, reference, reason: (
        TransferResult(
            transfer_code="TRF_test123",
            reference=reference,
            status="pending",
            amount_kobo=amount_kobo,
        )
    )
    adapter.resolve_bank_account.return_value = BankAccountResult(
        account_number="0123456789",
        account_name="ADA OBI",
        bank_id=1,
    )
    adapter.verify_transaction.return_value = TransactionVerification(
        reference="T000000000",
        status="success",
        amount_kobo=10_000_000,
    )

    PayoutService.set_paystack_adapter(adapter)
    ReconciliationService.set_paystack_adapter(adapter)
    yield adapter
    PayoutService.set_paystack_adapter(None)
    ReconciliationService.set_paystack_adapter(None)
