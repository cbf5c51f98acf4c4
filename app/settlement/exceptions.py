"""
Settlement-specific exceptions.

Every guard violation in the settlement engine is detected before any
write and raised as one of these typed errors. Views render them with
``to_dict()`` and the status code in ``http_status``.

Exception Hierarchy:
    SettlementError (base for settlement domain)
    ├── UnknownEvent - Webhook event type we do not handle (acknowledged)
    ├── InsufficientBalance - Payout exceeds available balance
    └── LedgerImmutableError - Attempt to mutate/delete a ledger entry

    InvalidSignature - Webhook HMAC mismatch (inherits PermissionDeniedError)
    Unauthorized - Actor is not the required party (inherits PermissionDeniedError)
    InvalidTransition - State precondition not met (inherits ConflictError)
    └── DisputeOpen - Receipt blocked by an open dispute
    SettlementValidationError - Input/policy validation (inherits ValidationError)
    OrderNotFound / PayoutNotFound (inherit NotFoundError)

    ProviderError - Payment provider failures (inherits ExternalServiceError)
    ├── ProviderRejected - Provider declined the request (permanent)
    └── ProviderUnavailable - Network error/timeout/5xx (transient, retry)

    StaleRecordError - Optimistic locking conflict (inherits ConflictError)
    LockAcquisitionError - Distributed lock contention (inherits ConflictError)

Usage:
    from settlement.exceptions import InvalidTransition, Unauthorized

    if order.seller_id != actor.pk and not is_admin(actor):
        raise Unauthorized(
            "Only the seller can mark this order as sent",
            details={"order_id": str(order.id)},
        )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Settlement Domain Exceptions
# =============================================================================


class SettlementError(BaseApplicationError):
    """
    Base exception for settlement business rules.

    Example:
        try:
            PayoutService.request_payout(seller, amount)
        except SettlementError as e:
            return Response(e.to_dict(), status=e.http_status)
    """

    default_error_code: str = "SETTLEMENT_ERROR"
    http_status: int = 400


class UnknownEvent(SettlementError):
    """
    Raised for webhook event types outside the handled set.

    Never surfaced to the gateway as a failure: the delivery is
    acknowledged so the sender does not retry it.
    """

    default_error_code: str = "UNKNOWN_EVENT"
    http_status: int = 200


class InsufficientBalance(SettlementError):
    """
    Raised when a payout amount exceeds the seller's available balance.

    Example:
        raise InsufficientBalance(
            required=Decimal("60000.00"),
            available=Decimal("50000.00"),
        )
    """

    default_error_code: str = "INSUFFICIENT_BALANCE"

    def __init__(
        self,
        required: Any,
        available: Any,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        details.update({"required": str(required), "available": str(available)})
        super().__init__(
            message or f"Insufficient balance. Available: {available}",
            details=details,
        )
        self.required = required
        self.available = available


class LedgerImmutableError(SettlementError):
    """Raised when code tries to update or delete an existing ledger entry."""

    default_error_code: str = "LEDGER_IMMUTABLE"


# =============================================================================
# Authorization
# =============================================================================


class InvalidSignature(PermissionDeniedError):
    """
    Raised when a webhook signature does not match the raw body.

    The only hard-fail path of webhook ingestion: the request is answered
    401 and nothing is recorded.
    """

    default_error_code: str = "INVALID_SIGNATURE"
    http_status: int = 401


class Unauthorized(PermissionDeniedError):
    """Raised when the actor is not the party the operation requires."""

    default_error_code: str = "UNAUTHORIZED"
    http_status: int = 403


# =============================================================================
# State Conflicts
# =============================================================================


class InvalidTransition(ConflictError):
    """
    Raised when an order, dispute or payout is not in the required state.

    Wraps django-fsm's TransitionNotAllowed as well as explicit guard
    checks, so callers only ever see one error type.

    Example:
        raise InvalidTransition(
            f"Cannot mark order as sent from '{order.status}'",
            details={"order_id": str(order.id), "current_status": order.status},
        )
    """

    default_error_code: str = "INVALID_TRANSITION"
    http_status: int = 409


class DisputeOpen(InvalidTransition):
    """Raised when receipt confirmation is blocked by an open dispute."""

    default_error_code: str = "DISPUTE_OPEN"


class StaleRecordError(ConflictError):
    """
    Raised when optimistic locking detects concurrent modification.

    Attributes:
        details: Contains pk, expected_version, and current_version
    """

    default_error_code: str = "STALE_RECORD"
    http_status: int = 409


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired.

    Attributes:
        details: Contains key and timeout information
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"
    http_status: int = 409


# =============================================================================
# Validation & Lookup
# =============================================================================


class SettlementValidationError(ValidationError):
    """
    Raised when settlement input fails validation.

    Use for:
    - Payout below the minimum or not positive
    - Refund amount outside (0, total]
    - Policy values out of range
    - Missing payout destination
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class OrderNotFound(NotFoundError):
    default_error_code: str = "ORDER_NOT_FOUND"
    http_status: int = 404


class PayoutNotFound(NotFoundError):
    default_error_code: str = "PAYOUT_NOT_FOUND"
    http_status: int = 404


# =============================================================================
# Provider Exceptions
# =============================================================================


class ProviderError(ExternalServiceError):
    """
    Base exception for payment provider (Paystack) failures.

    Use is_retryable to determine retry behavior:
    - True: Transient error, safe to retry with backoff
    - False: Permanent error, do not retry

    Attributes:
        provider_message: Message returned by the provider, if any
        status_code: HTTP status returned by the provider, if any
    """

    default_error_code: str = "PROVIDER_ERROR"
    http_status: int = 502
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        provider_message: str | None = None,
        status_code: int | None = None,
    ):
        details = details or {}
        if provider_message:
            details["provider_message"] = provider_message
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(
            message,
            error_code=error_code,
            details=details,
            service_name="paystack",
        )
        self.provider_message = provider_message
        self.status_code = status_code


class ProviderRejected(ProviderError):
    """
    The provider declined the request.

    Permanent: invalid account, insufficient platform balance, bad
    parameters. A payout hitting this is marked failed.
    """

    default_error_code: str = "PROVIDER_REJECTED"
    is_retryable: bool = False


class ProviderUnavailable(ProviderError):
    """
    The provider could not be reached in time.

    Covers timeouts, connection errors and 5xx responses. No state change
    is committed; the operation may be retried later. The request may have
    succeeded on the provider side, which the transfer webhook resolves.
    """

    default_error_code: str = "PROVIDER_UNAVAILABLE"
    http_status: int = 503
    is_retryable: bool = True


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Settlement domain
    "SettlementError",
    "UnknownEvent",
    "InsufficientBalance",
    "LedgerImmutableError",
    # Authorization
    "InvalidSignature",
    "Unauthorized",
    # State conflicts
    "InvalidTransition",
    "DisputeOpen",
    "StaleRecordError",
    "LockAcquisitionError",
    # Validation & lookup
    "SettlementValidationError",
    "OrderNotFound",
    "PayoutNotFound",
    # Provider
    "ProviderError",
    "ProviderRejected",
    "ProviderUnavailable",
]
