"""
Tests for settlement Celery tasks.

Tests cover:
- process_webhook_event outcomes
- retry_failed_webhooks selection
- cleanup_old_webhooks retention
- reconcile_payments delegation
"""

import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from settlement.models import Order, WebhookEvent
from settlement.models.webhook_event import MAX_WEBHOOK_RETRIES
from settlement.state_machines import PaymentStatus, WebhookEventStatus
from settlement.tasks import (
    cleanup_old_webhooks,
    process_webhook_event,
    reconcile_payments,
    retry_failed_webhooks,
)
from settlement.tests.factories import WebhookEventFactory


def charge_event_for(order, **kwargs):
    return WebhookEventFactory(
        payload={
            "event": "charge.success",
            "data": {
                "id": 9001,
                "reference": order.payment_reference,
                "amount": 10_000_000,
            },
        },
        **kwargs,
    )


class TestProcessWebhookEvent:
    def test_processes_pending_event(self, unpaid_order):
        event = charge_event_for(unpaid_order)

        result = process_webhook_event(str(event.id))

        assert result == {"status": "processed", "webhook_event_id": str(event.id)}
        assert WebhookEvent.objects.get(pk=event.id).status == WebhookEventStatus.PROCESSED
        order = Order.objects.get(pk=unpaid_order.id)
        assert order.payment_status == PaymentStatus.COMPLETED

    def test_already_processed(self, db):
        event = WebhookEventFactory(status=WebhookEventStatus.PROCESSED)

        result = process_webhook_event(str(event.id))

        assert result["status"] == "already_processed"

    @pytest.mark.parametrize("event_id", [str(uuid.uuid4()), "not-a-uuid"])
    def test_not_found(self, db, event_id):
        assert process_webhook_event(event_id)["status"] == "not_found"

    def test_handler_failure(self, db):
        event = WebhookEventFactory(payload={"event": "charge.success", "data": {}})

        result = process_webhook_event(str(event.id))

        assert result["status"] == "handler_failed"
        assert "no reference" in result["error"]
        assert WebhookEvent.objects.get(pk=event.id).status == WebhookEventStatus.FAILED

    def test_handler_exception_is_reported(self, unpaid_order):
        event = charge_event_for(unpaid_order)

        with patch(
            "settlement.webhooks.handlers.PaymentService.confirm_charge",
            side_effect=RuntimeError("database hiccup"),
        ):
            result = process_webhook_event(str(event.id))

        assert result["status"] == "error"
        assert result["error"] == "RuntimeError: database hiccup"
        stored = WebhookEvent.objects.get(pk=event.id)
        assert stored.status == WebhookEventStatus.FAILED
        assert stored.retry_count == 1


class TestRetryFailedWebhooks:
    def test_requeues_retryable_failures(self, unpaid_order):
        event = charge_event_for(
            unpaid_order, status=WebhookEventStatus.FAILED, retry_count=1
        )
        WebhookEventFactory(
            status=WebhookEventStatus.FAILED, retry_count=MAX_WEBHOOK_RETRIES
        )
        WebhookEventFactory(status=WebhookEventStatus.PROCESSED)

        result = retry_failed_webhooks()

        assert result == {"queued_count": 1}
        # Eager Celery runs the re-queued event inline
        stored = WebhookEvent.objects.get(pk=event.id)
        assert stored.status == WebhookEventStatus.PROCESSED
        assert stored.retry_count == 2

    def test_nothing_to_retry(self, db):
        assert retry_failed_webhooks() == {"queued_count": 0}


class TestCleanupOldWebhooks:
    def test_deletes_old_processed_events_only(self, db):
        old = timezone.now() - timedelta(days=120)
        WebhookEventFactory(status=WebhookEventStatus.PROCESSED, processed_at=old)
        failed = WebhookEventFactory(status=WebhookEventStatus.FAILED)
        recent = WebhookEventFactory(
            status=WebhookEventStatus.PROCESSED, processed_at=timezone.now()
        )

        result = cleanup_old_webhooks()

        assert result == {"deleted_count": 1}
        assert set(WebhookEvent.objects.values_list("id", flat=True)) == {
            failed.id,
            recent.id,
        }

    def test_custom_retention(self, db):
        WebhookEventFactory(
            status=WebhookEventStatus.PROCESSED,
            processed_at=timezone.now() - timedelta(days=10),
        )

        assert cleanup_old_webhooks(days=30) == {"deleted_count": 0}
        assert cleanup_old_webhooks(days=7) == {"deleted_count": 1}


class TestReconcilePayments:
    def test_delegates_to_service(self, db):
        summary = {"checked": 0, "confirmed": 0, "issues": 0}

        with patch(
            "settlement.services.ReconciliationService.reconcile_payments",
            return_value=summary,
        ) as reconcile:
            result = reconcile_payments(days=3)

        assert result == summary
        reconcile.assert_called_once_with(days=3)
