"""
Payout service for seller withdrawals through Paystack transfers.

The service covers the whole life of a payout:

1. Destination: verify and save the seller's bank account
2. Request: validate amount, minimum, pending uniqueness and balance
3. Process: three-phase transfer (validate under lock, call Paystack
   outside the transaction, persist the outcome)
4. Webhooks: transfer.success / transfer.failed / transfer.reversed

Balance:
    available = Σ sale entries − Σ completed payouts − Σ pending payouts

    Pending payouts are already reserved, so two requests can never
    overdraw the seller.

Usage:
    from settlement.services import PayoutService

    payout = PayoutService.request_payout(seller, Decimal("50000"))
    payout = PayoutService.process_payout(payout.id, actor=admin)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import IntegrityError
from django.db.models import Sum
from django.utils import timezone

from core.services import BaseService, ServiceResult

from settlement.adapters import PaystackAdapter
from settlement.exceptions import (
    InsufficientBalance,
    InvalidTransition,
    LockAcquisitionError,
    PayoutNotFound,
    ProviderRejected,
    ProviderUnavailable,
    SettlementValidationError,
    Unauthorized,
)
from settlement.ledger.models import LedgerEntry
from settlement.ledger.services import LedgerService, payout_key
from settlement.ledger.types import ZERO, to_minor_units, to_money
from settlement.locks import DistributedLock, lock_for_update, payout_lock_key
from settlement.models import Payout, PayoutDestination
from settlement.services import notify
from settlement.services.common import (
    actor_label,
    add_business_days,
    fsm_guard,
    require_admin,
)
from settlement.services.policy_service import PolicyService
from settlement.state_machines import PayoutStatus

if TYPE_CHECKING:
    from settlement.adapters import BankAccountResult


# =============================================================================
# Constants
# =============================================================================

# Distributed lock TTL for payout processing (seconds)
PAYOUT_LOCK_TTL = 120

# Lock acquisition timeout (seconds)
PAYOUT_LOCK_TIMEOUT = 10.0

ACCOUNT_NUMBER_LENGTH = 10

INSUFFICIENT_BALANCE_REASON = "Insufficient balance at processing time"


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class SellerEarnings:
    """
    A seller's earnings summary.

    Attributes:
        total_earnings: Sum of sale entries
        commission_paid: Commission carried on those sale entries
        pending_payouts: Sum of pending payouts (reserved)
        total_payouts: Sum of completed payouts
        available_balance: What the seller can request now
        total_orders: Orders with a sale entry
    """

    total_earnings: Decimal
    commission_paid: Decimal
    pending_payouts: Decimal
    total_payouts: Decimal
    available_balance: Decimal
    total_orders: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_earnings": str(self.total_earnings),
            "commission_paid": str(self.commission_paid),
            "pending_payouts": str(self.pending_payouts),
            "total_payouts": str(self.total_payouts),
            "available_balance": str(self.available_balance),
            "total_orders": self.total_orders,
        }


# =============================================================================
# Payout Service
# =============================================================================


class PayoutService(BaseService):
    """
    Service for requesting and executing seller payouts.

    Three-Phase Processing:
        1. Under a distributed lock and a row lock: check PENDING, re-check
           the balance against the ledger (never the request snapshot)
        2. Call Paystack OUTSIDE the transaction: create-or-reuse the
           transfer recipient, then initiate the transfer with the
           payout's own reference
        3. Persist: COMPLETED + payout ledger entry, or FAILED

    Error Handling:
        - ProviderUnavailable: payout stays PENDING, error re-raised so the
          caller (or Celery) can retry with the same reference
        - ProviderRejected: payout FAILED with the provider's reason, no
          ledger entry, error re-raised

    Usage:
        PayoutService.set_paystack_adapter(FakeAdapter)  # tests
        payout = PayoutService.process_payout(payout_id, actor=admin)
    """

    # Paystack adapter - can be injected for testing
    _paystack_adapter: type | None = None

    @classmethod
    def get_paystack_adapter(cls) -> type:
        """Get the Paystack adapter class."""
        return cls._paystack_adapter or PaystackAdapter

    @classmethod
    def set_paystack_adapter(cls, adapter: type | None) -> None:
        """Set the Paystack adapter class (for testing)."""
        cls._paystack_adapter = adapter

    # =========================================================================
    # Balance
    # =========================================================================

    @staticmethod
    def _sum_payouts(seller_id, status: str, exclude_payout_id=None) -> Decimal:
        queryset = Payout.objects.filter(seller_id=seller_id, status=status)
        if exclude_payout_id is not None:
            queryset = queryset.exclude(pk=exclude_payout_id)
        return to_money(queryset.aggregate(total=Sum("amount"))["total"] or ZERO)

    @classmethod
    def get_available_balance(cls, seller_id, exclude_payout_id=None) -> Decimal:
        """
        Sale earnings minus completed and pending payouts, floored at 0.

        ``exclude_payout_id`` leaves one payout out of the reservation, so
        a pending payout can be checked against the rest of the balance.
        """
        earnings = LedgerService.get_seller_totals(seller_id).total_earnings
        completed = cls._sum_payouts(seller_id, PayoutStatus.COMPLETED, exclude_payout_id)
        pending = cls._sum_payouts(seller_id, PayoutStatus.PENDING, exclude_payout_id)
        return max(ZERO, earnings - completed - pending)

    @classmethod
    def get_seller_earnings(cls, seller) -> SellerEarnings:
        totals = LedgerService.get_seller_totals(seller.pk)
        completed = cls._sum_payouts(seller.pk, PayoutStatus.COMPLETED)
        pending = cls._sum_payouts(seller.pk, PayoutStatus.PENDING)
        return SellerEarnings(
            total_earnings=totals.total_earnings,
            commission_paid=totals.commission_paid,
            pending_payouts=pending,
            total_payouts=completed,
            available_balance=max(ZERO, totals.total_earnings - completed - pending),
            total_orders=totals.total_orders,
        )

    # =========================================================================
    # Destination
    # =========================================================================

    @classmethod
    def verify_bank_account(cls, account_number: str, bank_code: str) -> BankAccountResult:
        """
        Resolve an account holder's name with Paystack.

        Raises:
            SettlementValidationError: If the account number is not 10 digits
            ProviderRejected: If Paystack cannot resolve the account
            ProviderUnavailable: If Paystack cannot be reached
        """
        account_number = (account_number or "").strip()
        if len(account_number) != ACCOUNT_NUMBER_LENGTH or not account_number.isdigit():
            raise SettlementValidationError(
                "Account number must be exactly 10 digits",
                details={"account_number": account_number},
            )
        if not bank_code:
            raise SettlementValidationError("A bank code is required")

        return cls.get_paystack_adapter().resolve_bank_account(account_number, bank_code)

    @classmethod
    def save_payout_destination(
        cls,
        seller,
        bank_name: str,
        bank_code: str,
        account_number: str,
        account_name: str,
        verified: bool = False,
    ) -> PayoutDestination:
        """
        Create or replace the seller's payout destination.

        A changed account invalidates the cached Paystack recipient.
        """
        if len(account_number) != ACCOUNT_NUMBER_LENGTH or not account_number.isdigit():
            raise SettlementValidationError(
                "Account number must be exactly 10 digits",
                details={"account_number": account_number},
            )

        with cls.atomic():
            destination = (
                PayoutDestination.objects.select_for_update()
                .filter(seller=seller)
                .first()
            )
            if destination is None:
                destination = PayoutDestination(seller=seller)
            elif (
                destination.account_number != account_number
                or destination.bank_code != bank_code
            ):
                destination.recipient_code = ""

            destination.bank_name = bank_name
            destination.bank_code = bank_code
            destination.account_number = account_number
            destination.account_name = account_name
            if verified:
                destination.verified_at = timezone.now()
            destination.save()

        cls.get_logger().info(
            "Payout destination saved",
            extra={
                "seller_id": seller.pk,
                "bank_code": bank_code,
                "account_last4": account_number[-4:],
            },
        )
        return destination

    # =========================================================================
    # Request / Cancel
    # =========================================================================

    @classmethod
    def request_payout(cls, seller, amount: Any) -> Payout:
        """
        Create a PENDING payout for the seller.

        The destination row is locked for the duration, which serialises
        concurrent requests from the same seller.

        Raises:
            SettlementValidationError: Amount not positive, below the
                minimum, or no payout destination
            InvalidTransition: A pending payout already exists
            InsufficientBalance: Amount exceeds the available balance
        """
        try:
            amount = to_money(amount)
        except (InvalidOperation, TypeError, ValueError):
            raise SettlementValidationError("Amount must be a number")
        if amount <= ZERO:
            raise SettlementValidationError("Amount must be greater than 0")

        policy = PolicyService.get_policy()
        if amount < policy.minimum_payout_amount:
            raise SettlementValidationError(
                f"Minimum payout amount is {policy.minimum_payout_amount}",
                details={
                    "amount": str(amount),
                    "minimum_payout_amount": str(policy.minimum_payout_amount),
                },
            )

        try:
            with cls.atomic():
                destination = (
                    PayoutDestination.objects.select_for_update()
                    .filter(seller=seller)
                    .first()
                )
                if destination is None:
                    raise SettlementValidationError(
                        "Add a bank account before requesting a payout"
                    )

                if Payout.objects.filter(seller=seller, status=PayoutStatus.PENDING).exists():
                    raise InvalidTransition(
                        "You already have a pending payout",
                        details={"seller_id": seller.pk},
                    )

                available = cls.get_available_balance(seller.pk)
                if amount > available:
                    raise InsufficientBalance(required=amount, available=available)

                payout = Payout.objects.create(
                    seller=seller,
                    amount=amount,
                    currency=settings.SETTLEMENT_CURRENCY,
                    bank_name=destination.bank_name,
                    bank_code=destination.bank_code,
                    account_number=destination.account_number,
                    account_name=destination.account_name,
                    recipient_code=destination.recipient_code,
                    expected_processing_date=add_business_days(
                        timezone.localdate(), policy.payout_processing_days
                    ),
                )
        except IntegrityError as e:
            raise InvalidTransition(
                "You already have a pending payout",
                details={"seller_id": seller.pk},
            ) from e

        cls.get_logger().info(
            "Payout requested",
            extra={
                "payout_id": str(payout.id),
                "seller_id": seller.pk,
                "amount": str(amount),
                "expected_processing_date": payout.expected_processing_date.isoformat(),
            },
        )
        return payout

    @classmethod
    def cancel_payout(cls, payout_id: uuid.UUID, seller) -> Payout:
        """
        Withdraw a pending payout. No ledger entry is written.

        Raises:
            PayoutNotFound: If the payout does not exist
            Unauthorized: If the payout belongs to another seller
            InvalidTransition: If the payout is no longer pending
        """
        with cls.atomic():
            payout = lock_for_update(Payout, payout_id, not_found_error=PayoutNotFound)
            if payout.seller_id != seller.pk:
                raise Unauthorized(
                    "You can only cancel your own payouts",
                    details={"payout_id": str(payout_id)},
                )
            with fsm_guard(payout, "cancel"):
                payout.cancel(reason="Cancelled by seller")
            payout.save()

        cls.get_logger().info(
            "Payout cancelled by seller",
            extra={"payout_id": str(payout_id), "seller_id": seller.pk},
        )
        return Payout.objects.get(pk=payout_id)

    # =========================================================================
    # Processing
    # =========================================================================

    @classmethod
    def process_payout(cls, payout_id: uuid.UUID, actor=None) -> Payout:
        """
        Send a pending payout to the seller's bank.

        Args:
            payout_id: Payout to process
            actor: Acting admin, or None for the scheduled job

        Returns:
            The COMPLETED payout

        Raises:
            Unauthorized: If a non-admin user calls it
            LockAcquisitionError: If another worker is processing the payout
            PayoutNotFound: If the payout does not exist
            InvalidTransition: If the payout is not pending
            InsufficientBalance: If the balance no longer covers the payout
                (the payout is marked FAILED)
            ProviderRejected: If Paystack refused (the payout is marked FAILED)
            ProviderUnavailable: If Paystack could not be reached (the payout
                stays PENDING)
        """
        if actor is not None:
            require_admin(actor, "process payouts")

        cls.get_logger().info(
            "Starting payout processing",
            extra={"payout_id": str(payout_id), "actor": actor_label(actor)},
        )

        try:
            with DistributedLock(
                payout_lock_key(payout_id),
                ttl=PAYOUT_LOCK_TTL,
                timeout=PAYOUT_LOCK_TIMEOUT,
            ):
                return cls._process_payout_with_lock(payout_id, actor)
        except LockAcquisitionError:
            cls.get_logger().warning(
                "Failed to acquire lock for payout processing",
                extra={"payout_id": str(payout_id)},
            )
            raise

    @classmethod
    def _process_payout_with_lock(cls, payout_id: uuid.UUID, actor) -> Payout:
        # Phase 1: validate under the row lock
        with cls.atomic():
            payout = lock_for_update(Payout, payout_id, not_found_error=PayoutNotFound)
            if payout.status != PayoutStatus.PENDING:
                raise InvalidTransition(
                    "Only pending payouts can be processed",
                    details={"payout_id": str(payout_id), "current_status": payout.status},
                )

            available = cls.get_available_balance(
                payout.seller_id, exclude_payout_id=payout.id
            )
            insufficient = payout.amount > available
            if insufficient:
                with fsm_guard(payout, "fail"):
                    payout.fail(reason=INSUFFICIENT_BALANCE_REASON)
                payout.processed_by = actor
                payout.processed_at = timezone.now()
                payout.save()

            recipient_code = payout.recipient_code
            if not recipient_code:
                destination = PayoutDestination.objects.filter(
                    seller_id=payout.seller_id,
                    account_number=payout.account_number,
                    bank_code=payout.bank_code,
                ).first()
                if destination is not None:
                    recipient_code = destination.recipient_code

        if insufficient:
            cls.get_logger().warning(
                "Payout exceeds available balance at processing time",
                extra={
                    "payout_id": str(payout_id),
                    "amount": str(payout.amount),
                    "available": str(available),
                },
            )
            notify.notify_payout_failed(Payout.objects.get(pk=payout_id))
            raise InsufficientBalance(required=payout.amount, available=available)

        # Phase 2: Paystack, outside any transaction
        adapter = cls.get_paystack_adapter()
        try:
            if not recipient_code:
                recipient_code = cls._create_recipient(adapter, payout)

            cls.get_logger().info(
                "Initiating Paystack transfer",
                extra={
                    "payout_id": str(payout_id),
                    "amount_kobo": to_minor_units(payout.amount),
                    "reference": payout.transfer_reference,
                },
            )
            transfer = adapter.initiate_transfer(
                amount_kobo=to_minor_units(payout.amount),
                recipient_code=recipient_code,
                reference=payout.transfer_reference,
                reason=f"Payout for seller {payout.seller_id}",
            )
        except ProviderUnavailable as e:
            cls.get_logger().warning(
                "Paystack unavailable, payout left pending",
                extra={"payout_id": str(payout_id), "error": e.message},
            )
            raise
        except ProviderRejected as e:
            cls._fail_payout(payout_id, e.provider_message or e.message, actor)
            raise

        if transfer.status == "failed":
            reason = transfer.raw_response.get("reason") or "Transfer failed"
            cls._fail_payout(payout_id, reason, actor)
            raise ProviderRejected(reason, provider_message=reason)

        # Phase 3: persist the accepted transfer
        return cls._complete_payout(
            payout_id,
            transfer_code=transfer.transfer_code,
            recipient_code=recipient_code,
            actor=actor,
        )

    @classmethod
    def _create_recipient(cls, adapter: type, payout: Payout) -> str:
        recipient = adapter.create_transfer_recipient(
            name=payout.account_name,
            account_number=payout.account_number,
            bank_code=payout.bank_code,
            currency=payout.currency,
        )
        # Cache on the destination only while it still points at this account
        PayoutDestination.objects.filter(
            seller_id=payout.seller_id,
            account_number=payout.account_number,
            bank_code=payout.bank_code,
        ).update(recipient_code=recipient.recipient_code)
        return recipient.recipient_code

    @classmethod
    def _fail_payout(cls, payout_id: uuid.UUID, reason: str, actor) -> Payout | None:
        with cls.atomic():
            payout = lock_for_update(Payout, payout_id, not_found_error=PayoutNotFound)
            if payout.status != PayoutStatus.PENDING:
                cls.get_logger().info(
                    "Payout already settled, not failing it",
                    extra={"payout_id": str(payout_id), "current_status": payout.status},
                )
                return None
            with fsm_guard(payout, "fail"):
                payout.fail(reason=reason)
            payout.processed_by = actor
            payout.processed_at = timezone.now()
            payout.save()

        cls.get_logger().error(
            "Payout failed",
            extra={"payout_id": str(payout_id), "reason": reason},
        )
        payout = Payout.objects.get(pk=payout_id)
        notify.notify_payout_failed(payout)
        return payout

    @classmethod
    def _complete_payout(
        cls,
        payout_id: uuid.UUID,
        transfer_code: str,
        recipient_code: str,
        actor,
    ) -> Payout:
        with cls.atomic():
            payout = lock_for_update(Payout, payout_id, not_found_error=PayoutNotFound)
            completed_now = payout.status == PayoutStatus.PENDING
            if completed_now:
                with fsm_guard(payout, "complete"):
                    payout.complete(transfer_code=transfer_code)
                payout.recipient_code = recipient_code
                payout.processed_by = actor
                payout.processed_at = timezone.now()
                payout.save()

            if payout.status == PayoutStatus.COMPLETED:
                LedgerService.record_payout(payout, created_by=actor_label(actor))
            else:
                # transfer.failed / transfer.reversed arrived first
                cls.get_logger().warning(
                    "Payout settled by webhook before the transfer call returned",
                    extra={"payout_id": str(payout_id), "current_status": payout.status},
                )

        payout = Payout.objects.get(pk=payout_id)
        if completed_now:
            cls.get_logger().info(
                "Payout completed",
                extra={
                    "payout_id": str(payout_id),
                    "transfer_code": transfer_code,
                    "amount": str(payout.amount),
                },
            )
            notify.notify_payout_completed(payout)
        return payout

    # =========================================================================
    # Transfer webhooks
    # =========================================================================

    @staticmethod
    def _lock_by_reference(reference: str) -> Payout | None:
        return Payout.objects.select_for_update().filter(transfer_reference=reference).first()

    @classmethod
    def _payout_not_found(cls, reference: str) -> ServiceResult:
        cls.get_logger().warning(
            "Transfer event for unknown payout reference",
            extra={"reference": reference},
        )
        return ServiceResult.failure(
            f"No payout for reference {reference}",
            error_code="PAYOUT_NOT_FOUND",
        )

    @classmethod
    def confirm_transfer(cls, reference: str, transfer_code: str = "") -> ServiceResult:
        """
        transfer.success: PENDING or COMPLETED -> COMPLETED.

        The payout ledger entry is written if it is not there yet.
        """
        with cls.atomic():
            payout = cls._lock_by_reference(reference)
            if payout is None:
                return cls._payout_not_found(reference)

            if payout.is_final:
                cls.get_logger().warning(
                    "transfer.success for a payout that is already final",
                    extra={"payout_id": str(payout.id), "current_status": payout.status},
                )
                return ServiceResult.ok({"status": "ignored", "payout_id": str(payout.id)})

            completed_now = payout.is_pending
            if completed_now:
                with fsm_guard(payout, "complete"):
                    payout.complete(transfer_code=transfer_code)
                payout.save()
            LedgerService.record_payout(payout, created_by="webhook")

        if completed_now:
            notify.notify_payout_completed(Payout.objects.get(pk=payout.pk))
        cls.get_logger().info(
            "Transfer confirmed",
            extra={"payout_id": str(payout.id), "completed_now": completed_now},
        )
        return ServiceResult.ok(
            {
                "status": "completed" if completed_now else "already_completed",
                "payout_id": str(payout.id),
            }
        )

    @classmethod
    def fail_transfer(cls, reference: str, reason: str = "") -> ServiceResult:
        """
        transfer.failed: PENDING or COMPLETED -> FAILED.

        The amount returns to the available balance because failed payouts
        are not reserved. A late failure of a payout whose debit was
        already recorded gets a reversal entry, as for transfer.reversed.
        """
        reason = reason or "Transfer failed"
        with cls.atomic():
            payout = cls._lock_by_reference(reference)
            if payout is None:
                return cls._payout_not_found(reference)

            if payout.is_final:
                cls.get_logger().info(
                    "transfer.failed for a payout that is already final",
                    extra={"payout_id": str(payout.id), "current_status": payout.status},
                )
                return ServiceResult.ok(
                    {"status": "already_final", "payout_id": str(payout.id)}
                )

            with fsm_guard(payout, "fail"):
                payout.fail(reason=reason)
            payout.save()

            debited = LedgerEntry.objects.filter(
                idempotency_key=payout_key(payout.id)
            ).exists()
            if debited:
                LedgerService.record_payout_reversal(payout, created_by="webhook")

        cls.get_logger().warning(
            "Transfer failed",
            extra={"payout_id": str(payout.id), "reason": reason, "debited": debited},
        )
        notify.notify_payout_failed(Payout.objects.get(pk=payout.pk))
        return ServiceResult.ok({"status": "failed", "payout_id": str(payout.id)})

    @classmethod
    def reverse_transfer(cls, reference: str, reason: str = "") -> ServiceResult:
        """
        transfer.reversed: PENDING or COMPLETED -> CANCELLED.

        When the payout debit was recorded, a positive reversal entry is
        written against it.
        """
        reason = reason or "Transfer reversed"
        with cls.atomic():
            payout = cls._lock_by_reference(reference)
            if payout is None:
                return cls._payout_not_found(reference)

            if payout.is_final:
                cls.get_logger().info(
                    "transfer.reversed for a payout that is already final",
                    extra={"payout_id": str(payout.id), "current_status": payout.status},
                )
                return ServiceResult.ok(
                    {"status": "already_final", "payout_id": str(payout.id)}
                )

            with fsm_guard(payout, "reverse"):
                payout.reverse(reason=reason)
            payout.save()

            debited = LedgerEntry.objects.filter(
                idempotency_key=payout_key(payout.id)
            ).exists()
            if debited:
                LedgerService.record_payout_reversal(payout, created_by="webhook")

        cls.get_logger().warning(
            "Transfer reversed",
            extra={"payout_id": str(payout.id), "reason": reason, "debited": debited},
        )
        notify.notify_payout_reversed(Payout.objects.get(pk=payout.pk))
        return ServiceResult.ok({"status": "reversed", "payout_id": str(payout.id)})
