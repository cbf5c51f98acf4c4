"""
Provider adapters for external services.

All Paystack calls go through PaystackAdapter so timeouts, error
translation and timing logs stay consistent.

Usage:
    from settlement.adapters import PaystackAdapter

    account = PaystackAdapter.resolve_bank_account("0123456789", "044")
"""

from settlement.adapters.paystack_adapter import (
    BankAccountResult,
    PaystackAdapter,
    TransactionVerification,
    TransferRecipientResult,
    TransferResult,
)

__all__ = [
    "BankAccountResult",
    "PaystackAdapter",
    "TransactionVerification",
    "TransferRecipientResult",
    "TransferResult",
]
