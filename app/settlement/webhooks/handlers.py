"""
Webhook event handlers for Paystack events.

This module provides a handler registry, the handlers for the five event
kinds the settlement engine understands, and ``process_event`` which
runs one stored WebhookEvent through its handler.

Handled events:
    charge.success      PaymentService.confirm_charge
    charge.failed       PaymentService.fail_charge
    transfer.success    PayoutService.confirm_transfer
    transfer.failed     PayoutService.fail_transfer
    transfer.reversed   PayoutService.reverse_transfer

Every handler is safe to run twice for the same event. A reference that
matches no order or payout is acknowledged, not failed.

Usage:
    from settlement.webhooks.handlers import process_event, register_handler

    @register_handler("refund.processed")
    def handle_refund_processed(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = process_event(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from django.db import transaction

from core.services import ServiceResult

from settlement.exceptions import UnknownEvent
from settlement.ledger.types import from_minor_units
from settlement.models import WebhookEvent
from settlement.services import PaymentService, PayoutService

logger = logging.getLogger(__name__)

UNMATCHED_ERROR_CODES = ("ORDER_NOT_FOUND", "PAYOUT_NOT_FOUND")


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The Paystack event type (e.g., "charge.success")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to its registered handler.

    Raises:
        UnknownEvent: If no handler is registered for the event type
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)
    if handler is None:
        raise UnknownEvent(
            f"No handler for event type {webhook_event.event_type}",
            details={"event_type": webhook_event.event_type},
        )

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"event_key": webhook_event.event_key},
    )
    return handler(webhook_event)


def process_event(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Run a stored event through its handler and record the outcome.

    The event row is locked while the handler runs, so concurrent
    deliveries of the same event are serialised and the second one sees
    PROCESSED.

    Returns:
        ServiceResult from the handler (ok for unknown events)

    Raises:
        Exception: Whatever the handler raised, after marking the event
            FAILED; the caller answers 500 so Paystack redelivers
    """
    try:
        with transaction.atomic():
            event = WebhookEvent.objects.select_for_update().get(pk=webhook_event.pk)
            if event.is_processed:
                logger.info(
                    "Webhook already processed, skipping",
                    extra={"event_key": event.event_key},
                )
                return ServiceResult.ok({"status": "already_processed"})

            event.mark_processing()
            event.save()

            try:
                result = dispatch_webhook(event)
            except UnknownEvent as e:
                logger.info(
                    "Ignoring unknown webhook event",
                    extra={"event_key": event.event_key, "event_type": event.event_type},
                )
                result = ServiceResult.ok({"status": "ignored", "reason": e.message})

            if result.success:
                event.mark_processed()
            else:
                event.mark_failed(result.error or "Handler returned failure")
            event.save()
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        # The attempt counter was rolled back with the handler's writes
        failed = WebhookEvent.objects.get(pk=webhook_event.pk)
        failed.mark_processing()
        failed.mark_failed(error_msg)
        failed.save()
        logger.exception(
            "Webhook processing failed with exception",
            extra={"event_key": webhook_event.event_key, "error": error_msg},
        )
        raise

    if not result.success:
        logger.warning(
            f"Webhook handler failed: {result.error}",
            extra={"event_key": event.event_key, "error_code": result.error_code},
        )
    return result


def _acknowledge_unmatched(result: ServiceResult, reference: str) -> ServiceResult:
    """An unknown reference is logged and acknowledged, never retried."""
    if not result.success and result.error_code in UNMATCHED_ERROR_CODES:
        return ServiceResult.ok({"status": "unmatched", "reference": reference})
    return result


def _missing_reference(webhook_event: WebhookEvent) -> ServiceResult:
    return ServiceResult.failure(
        f"{webhook_event.event_type} payload has no reference",
        error_code="INVALID_PAYLOAD",
    )


def _customer_code(data: dict) -> str:
    customer = data.get("customer")
    if isinstance(customer, dict):
        return customer.get("customer_code") or ""
    return ""


def _amount(data: dict):
    amount = data.get("amount")
    return from_minor_units(amount) if amount is not None else None


# =============================================================================
# Charge Handlers
# =============================================================================


@register_handler("charge.success")
def handle_charge_success(webhook_event: WebhookEvent) -> ServiceResult:
    """Confirm the order's payment. Amounts arrive in kobo."""
    data = webhook_event.data
    reference = data.get("reference")
    if not reference:
        return _missing_reference(webhook_event)

    result = PaymentService.confirm_charge(
        reference=reference,
        amount=_amount(data),
        customer_code=_customer_code(data),
    )
    return _acknowledge_unmatched(result, reference)


@register_handler("charge.failed")
def handle_charge_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """Record the failure; the customer may pay again."""
    data = webhook_event.data
    reference = data.get("reference")
    if not reference:
        return _missing_reference(webhook_event)

    return PaymentService.fail_charge(
        reference=reference,
        reason=data.get("gateway_response") or None,
        amount=_amount(data),
        customer_code=_customer_code(data),
    )


# =============================================================================
# Transfer Handlers
# =============================================================================


@register_handler("transfer.success")
def handle_transfer_success(webhook_event: WebhookEvent) -> ServiceResult:
    data = webhook_event.data
    reference = data.get("reference")
    if not reference:
        return _missing_reference(webhook_event)

    result = PayoutService.confirm_transfer(
        reference=reference,
        transfer_code=data.get("transfer_code") or "",
    )
    return _acknowledge_unmatched(result, reference)


@register_handler("transfer.failed")
def handle_transfer_failed(webhook_event: WebhookEvent) -> ServiceResult:
    data = webhook_event.data
    reference = data.get("reference")
    if not reference:
        return _missing_reference(webhook_event)

    result = PayoutService.fail_transfer(
        reference=reference,
        reason=data.get("reason") or data.get("gateway_response") or "",
    )
    return _acknowledge_unmatched(result, reference)


@register_handler("transfer.reversed")
def handle_transfer_reversed(webhook_event: WebhookEvent) -> ServiceResult:
    data = webhook_event.data
    reference = data.get("reference")
    if not reference:
        return _missing_reference(webhook_event)

    result = PayoutService.reverse_transfer(
        reference=reference,
        reason=data.get("reason") or "",
    )
    return _acknowledge_unmatched(result, reference)
