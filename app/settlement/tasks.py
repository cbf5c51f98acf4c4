"""
Celery tasks for settlement processing.

This module provides async tasks for:
- Re-processing stored Paystack webhook events
- Retrying failed webhook events
- Periodic cleanup of old processed events
- Payment reconciliation
- Escrow auto-release and due payouts (re-exported from workers)

Usage:
    from settlement.tasks import retry_failed_webhooks, reconcile_payments

    retry_failed_webhooks.delay()
    reconcile_payments.delay(days=7)
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from celery import shared_task
from django.utils import timezone

from settlement.models import WebhookEvent
from settlement.models.webhook_event import MAX_WEBHOOK_RETRIES
from settlement.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

RETRY_BATCH_SIZE = 100
WEBHOOK_RETENTION_DAYS = 90


# =============================================================================
# Webhook Processing Tasks
# =============================================================================


@shared_task(bind=True, acks_late=True)
def process_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Process a stored webhook event.

    Used by retry_failed_webhooks; the webhook view processes new
    deliveries inline.

    Returns:
        Dict with status "processed", "handler_failed", "already_processed",
        "not_found" or "error"
    """
    # Import here to avoid circular imports
    from settlement.webhooks.handlers import process_event

    try:
        webhook_event = WebhookEvent.objects.get(id=UUID(str(webhook_event_id)))
    except (ValueError, WebhookEvent.DoesNotExist):
        logger.error(
            "WebhookEvent not found",
            extra={"webhook_event_id": str(webhook_event_id)},
        )
        return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

    if webhook_event.is_processed:
        return {"status": "already_processed", "webhook_event_id": str(webhook_event.id)}

    try:
        result = process_event(webhook_event)
    except Exception as e:
        # Already marked FAILED with the attempt counted; the next
        # retry_failed_webhooks run picks it up again
        return {
            "status": "error",
            "webhook_event_id": str(webhook_event.id),
            "error": f"{type(e).__name__}: {e}",
        }

    if not result.success:
        return {
            "status": "handler_failed",
            "webhook_event_id": str(webhook_event.id),
            "error": result.error,
        }
    return {"status": "processed", "webhook_event_id": str(webhook_event.id)}


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Periodic task to retry failed webhook events.

    Finds failed events with fewer than MAX_WEBHOOK_RETRIES attempts and
    re-queues them. Scheduled every 5 minutes via celery-beat.

    Returns:
        Dict with count of webhooks queued for retry
    """
    failed_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.FAILED,
        retry_count__lt=MAX_WEBHOOK_RETRIES,
    ).order_by("created_at")[:RETRY_BATCH_SIZE]

    queued_count = 0
    for webhook in failed_webhooks:
        process_webhook_event.delay(str(webhook.id))
        queued_count += 1
        logger.info(
            "Queued failed webhook for retry",
            extra={
                "webhook_event_id": str(webhook.id),
                "event_key": webhook.event_key,
                "retry_count": webhook.retry_count,
            },
        )

    logger.info(
        f"Queued {queued_count} failed webhooks for retry",
        extra={"queued_count": queued_count},
    )
    return {"queued_count": queued_count}


@shared_task
def cleanup_old_webhooks(days: int = WEBHOOK_RETENTION_DAYS) -> dict:
    """
    Delete processed webhook events older than ``days``.

    Failed events are kept for debugging.

    Returns:
        Dict with count of webhooks deleted
    """
    cutoff = timezone.now() - timedelta(days=days)
    deleted_count, _ = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSED,
        processed_at__lt=cutoff,
    ).delete()

    if deleted_count > 0:
        logger.info(
            f"Deleted {deleted_count} old webhook events",
            extra={"deleted_count": deleted_count, "cutoff_date": cutoff.isoformat()},
        )
    return {"deleted_count": deleted_count}


# =============================================================================
# Reconciliation
# =============================================================================


@shared_task(bind=True, acks_late=True)
def reconcile_payments(self, days: int = 7) -> dict:
    """Daily payment reconciliation against Paystack."""
    from settlement.services import ReconciliationService

    return ReconciliationService.reconcile_payments(days=days)


# =============================================================================
# Re-exported Worker Tasks
# =============================================================================
# These tasks are defined in settlement.workers but re-exported here so
# Celery autodiscover finds them.

from settlement.workers import (  # noqa: E402, F401
    execute_single_payout,
    process_due_payouts,
    release_due_escrows,
    release_order_escrow,
)
