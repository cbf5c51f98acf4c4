"""
Paystack API adapter for settlement operations.

This module provides the PaystackAdapter class which encapsulates all
Paystack HTTP calls. All provider calls go through this adapter to get
consistent timeouts, error translation and timing logs.

Features:
- Bounded timeout on every request (PAYSTACK_API_TIMEOUT_SECONDS)
- Translation of HTTP/network failures to ProviderRejected /
  ProviderUnavailable
- Structured logging with timing metrics
- Local HMAC-SHA512 webhook signature verification

Configuration (via settings):
- PAYSTACK_SECRET_KEY: API bearer token, also the webhook HMAC key
- PAYSTACK_BASE_URL: API root (default: https://api.paystack.co)
- PAYSTACK_API_TIMEOUT_SECONDS: Request timeout (default: 10)

Usage:
    from settlement.adapters import PaystackAdapter

    recipient = PaystackAdapter.create_transfer_recipient(
        name="ADA OBI", account_number="0123456789", bank_code="044",
    )
    transfer = PaystackAdapter.initiate_transfer(
        amount_kobo=5_000_000,
        recipient_code=recipient.recipient_code,
        reference=payout.transfer_reference,
        reason=f"Payout for seller {payout.seller_id}",
    )
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import requests
from django.conf import settings

from settlement.exceptions import InvalidSignature, ProviderRejected, ProviderUnavailable


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class TransferRecipientResult:
    """
    Result of POST /transferrecipient.

    Attributes:
        recipient_code: Recipient identifier (RCP_xxx)
        raw_response: Full ``data`` object returned by Paystack
    """

    recipient_code: str
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class TransferResult:
    """
    Result of POST /transfer.

    Attributes:
        transfer_code: Transfer identifier (TRF_xxx)
        reference: Reference echoed back (our PO-<hex>)
        status: Paystack transfer status (pending, success, otp, ...)
        amount_kobo: Amount in kobo
        raw_response: Full ``data`` object returned by Paystack
    """

    transfer_code: str
    reference: str
    status: str
    amount_kobo: int
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class BankAccountResult:
    """Result of GET /bank/resolve."""

    account_number: str
    account_name: str
    bank_id: int | None = None


@dataclass
class TransactionVerification:
    """
    Result of GET /transaction/verify/<reference>.

    Attributes:
        reference: Charge reference
        status: Paystack charge status (success, failed, abandoned, ...)
        amount_kobo: Charged amount in kobo
        customer_code: Paystack customer code, if reported
        gateway_response: Gateway message for the charge
    """

    reference: str
    status: str
    amount_kobo: int
    customer_code: str = ""
    gateway_response: str = ""
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def is_successful(self) -> bool:
        return self.status == "success"


# =============================================================================
# Adapter
# =============================================================================


class PaystackAdapter:
    """
    Thin, stateless wrapper over the Paystack REST API.

    Every method either returns a result dataclass or raises a
    ProviderError subclass. Nothing here touches the database, so
    callers must invoke it outside ``transaction.atomic()``.
    """

    SIGNATURE_HEADER = "HTTP_X_PAYSTACK_SIGNATURE"

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @staticmethod
    def _base_url() -> str:
        return settings.PAYSTACK_BASE_URL.rstrip("/")

    @staticmethod
    def _headers() -> dict[str, str]:
        return {
            "Authorization": f"Bearer {settings.PAYSTACK_SECRET_KEY}",
            "Content-Type": "application/json",
        }

    # =========================================================================
    # Transport
    # =========================================================================

    @classmethod
    def _request(
        cls,
        method: str,
        path: str,
        log_context: dict[str, Any],
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Perform one API call and return the ``data`` object.

        Raises:
            ProviderUnavailable: Timeout, connection error or 5xx
            ProviderRejected: 4xx, ``status: false`` or an unreadable body
        """
        logger = cls.get_logger()
        url = f"{cls._base_url()}{path}"

        start_time = time.time()
        logger.info("Starting Paystack operation", extra=log_context)

        try:
            response = requests.request(
                method,
                url,
                headers=cls._headers(),
                json=json,
                params=params,
                timeout=settings.PAYSTACK_API_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_transport_error(e, log_context, duration_ms)
            raise  # Never reached, but satisfies type checker

        duration_ms = (time.time() - start_time) * 1000
        body = cls._parse_body(response)
        cls._check_response(response, body, log_context, duration_ms)

        logger.info(
            "Paystack operation completed",
            extra={
                **log_context,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        data = body.get("data")
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _parse_body(response: requests.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    # =========================================================================
    # Operations
    # =========================================================================

    @classmethod
    def create_transfer_recipient(
        cls,
        name: str,
        account_number: str,
        bank_code: str,
        currency: str | None = None,
    ) -> TransferRecipientResult:
        """
        Register a NUBAN bank account as a transfer recipient.

        Raises:
            ProviderRejected: Paystack refused the account
            ProviderUnavailable: Paystack could not be reached
        """
        log_context = {
            "operation": "create_transfer_recipient",
            "bank_code": bank_code,
            "account_last4": account_number[-4:],
        }
        data = cls._request(
            "POST",
            "/transferrecipient",
            log_context,
            json={
                "type": "nuban",
                "name": name,
                "account_number": account_number,
                "bank_code": bank_code,
                "currency": currency or settings.SETTLEMENT_CURRENCY,
            },
        )
        recipient_code = data.get("recipient_code")
        if not recipient_code:
            raise ProviderRejected(
                "Paystack did not return a recipient code",
                details=log_context,
            )
        return TransferRecipientResult(recipient_code=recipient_code, raw_response=data)

    @classmethod
    def initiate_transfer(
        cls,
        amount_kobo: int,
        recipient_code: str,
        reference: str,
        reason: str,
    ) -> TransferResult:
        """
        Send ``amount_kobo`` from the platform balance to a recipient.

        ``reference`` is our payout reference; Paystack echoes it back in
        the transfer.* webhooks, and rejects a reused reference, so a
        retried call can never pay twice.

        Raises:
            ProviderRejected: Paystack declined the transfer
            ProviderUnavailable: Paystack could not be reached
        """
        if amount_kobo <= 0:
            raise ValueError("amount_kobo must be positive")

        log_context = {
            "operation": "initiate_transfer",
            "amount_kobo": amount_kobo,
            "recipient_code": recipient_code,
            "reference": reference,
        }
        data = cls._request(
            "POST",
            "/transfer",
            log_context,
            json={
                "source": "balance",
                "amount": amount_kobo,
                "recipient": recipient_code,
                "reference": reference,
                "reason": reason,
            },
        )
        return TransferResult(
            transfer_code=data.get("transfer_code", ""),
            reference=data.get("reference", reference),
            status=data.get("status", ""),
            amount_kobo=int(data.get("amount") or amount_kobo),
            raw_response=data,
        )

    @classmethod
    def resolve_bank_account(cls, account_number: str, bank_code: str) -> BankAccountResult:
        """
        Look up the account holder's name for a bank account.

        Raises:
            ProviderRejected: The account could not be resolved
            ProviderUnavailable: Paystack could not be reached
        """
        log_context = {
            "operation": "resolve_bank_account",
            "bank_code": bank_code,
            "account_last4": account_number[-4:],
        }
        data = cls._request(
            "GET",
            "/bank/resolve",
            log_context,
            params={"account_number": account_number, "bank_code": bank_code},
        )
        return BankAccountResult(
            account_number=data.get("account_number", account_number),
            account_name=data.get("account_name", ""),
            bank_id=data.get("bank_id"),
        )

    @classmethod
    def verify_transaction(cls, reference: str) -> TransactionVerification:
        """
        Ask Paystack for the authoritative status of a charge.

        Raises:
            ProviderRejected: Unknown reference
            ProviderUnavailable: Paystack could not be reached
        """
        log_context = {"operation": "verify_transaction", "reference": reference}
        data = cls._request("GET", f"/transaction/verify/{reference}", log_context)
        customer = data.get("customer") or {}
        return TransactionVerification(
            reference=data.get("reference", reference),
            status=data.get("status", ""),
            amount_kobo=int(data.get("amount") or 0),
            customer_code=customer.get("customer_code", "") if isinstance(customer, dict) else "",
            gateway_response=data.get("gateway_response") or "",
            raw_response=data,
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @staticmethod
    def compute_signature(payload: bytes, secret: str | None = None) -> str:
        """HMAC-SHA512 hex digest of the raw body."""
        key = (secret or settings.PAYSTACK_SECRET_KEY).encode()
        return hmac.new(key, payload, hashlib.sha512).hexdigest()

    @classmethod
    def verify_webhook_signature(cls, payload: bytes, signature: str | None) -> None:
        """
        Check the x-paystack-signature header against the exact raw bytes.

        Raises:
            InvalidSignature: Missing or mismatching signature, or no secret
                configured to check it against
        """
        if not settings.PAYSTACK_SECRET_KEY:
            raise InvalidSignature("Webhook secret is not configured")
        if not signature:
            raise InvalidSignature("Missing webhook signature")

        expected = cls.compute_signature(payload)
        if not hmac.compare_digest(expected, signature.strip()):
            cls.get_logger().warning("Invalid Paystack webhook signature")
            raise InvalidSignature("Invalid webhook signature")

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_transport_error(
        cls,
        error: requests.RequestException,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate a requests failure to ProviderUnavailable.

        A timeout does not mean the call failed on Paystack's side; the
        transfer webhook settles that case.
        """
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, requests.Timeout):
            cls.get_logger().error("Paystack request timed out", extra=log_context)
            raise ProviderUnavailable(
                "Paystack did not respond in time. Please retry.",
                error_code="PROVIDER_TIMEOUT",
                details={"operation": log_context.get("operation")},
            )

        cls.get_logger().error(
            "Connection error to Paystack",
            extra=log_context,
            exc_info=True,
        )
        raise ProviderUnavailable(
            "Could not connect to Paystack. Please retry.",
            details={"operation": log_context.get("operation")},
        )

    @classmethod
    def _check_response(
        cls,
        response: requests.Response,
        body: dict[str, Any],
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Raise for non-successful responses.

        Raises:
            ProviderUnavailable: 5xx or 429
            ProviderRejected: Other 4xx or ``status: false``
        """
        status_code = response.status_code
        message = body.get("message") or response.reason or "Paystack request failed"
        log_context = {**log_context, "status_code": status_code, "duration_ms": duration_ms}

        if status_code >= 500 or status_code == 429:
            cls.get_logger().error("Paystack service error", extra=log_context)
            raise ProviderUnavailable(
                "Paystack service error. Please retry.",
                provider_message=message,
                status_code=status_code,
            )

        if status_code >= 400 or not body.get("status"):
            cls.get_logger().warning(
                "Paystack rejected request",
                extra={**log_context, "provider_message": message},
            )
            raise ProviderRejected(
                message,
                provider_message=message,
                status_code=status_code,
            )
