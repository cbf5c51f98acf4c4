"""
Tests for the Paystack webhook endpoint.

Tests cover:
- Signature verification over the raw body (401 on failure)
- Malformed bodies (400)
- Event storage and key derivation
- Duplicate deliveries
- Acknowledgement of unknown events and unmatched references
- 500 on processing errors so Paystack redelivers
"""

import hashlib
import hmac
import json
from unittest.mock import patch

import pytest
from django.urls import reverse

from settlement.adapters import PaystackAdapter
from settlement.models import Order, WebhookEvent
from settlement.state_machines import PaymentStatus, WebhookEventStatus
from settlement.webhooks.views import build_event_key


def charge_success_body(reference, event_id=4001, amount=10_000_000):
    return json.dumps(
        {
            "event": "charge.success",
            "data": {
                "id": event_id,
                "reference": reference,
                "amount": amount,
                "status": "success",
                "customer": {"customer_code": "CUS_hook"},
            },
        }
    ).encode()


@pytest.fixture
def post_webhook(client):
    """POST raw bytes to the webhook, signed unless a signature is given."""

    def _post(body: bytes, signature=None, sign=True):
        headers = {}
        if signature is not None:
            headers["HTTP_X_PAYSTACK_SIGNATURE"] = signature
        elif sign:
            headers["HTTP_X_PAYSTACK_SIGNATURE"] = PaystackAdapter.compute_signature(body)
        return client.post(
            reverse("settlement:paystack-webhook"),
            data=body,
            content_type="application/json",
            **headers,
        )

    return _post


class TestSignatureVerification:
    def test_missing_signature_is_rejected(self, db, post_webhook, unpaid_order):
        response = post_webhook(charge_success_body(unpaid_order.payment_reference), sign=False)

        assert response.status_code == 401
        assert not WebhookEvent.objects.exists()

    def test_invalid_signature_is_rejected(self, db, post_webhook, unpaid_order):
        response = post_webhook(
            charge_success_body(unpaid_order.payment_reference), signature="deadbeef"
        )

        assert response.status_code == 401
        assert response.json()["error_code"] == "INVALID_SIGNATURE"
        assert not Order.objects.get(pk=unpaid_order.id).is_paid

    def test_signature_of_a_different_body(self, db, post_webhook, unpaid_order):
        body = charge_success_body(unpaid_order.payment_reference)
        tampered = charge_success_body(unpaid_order.payment_reference, amount=1)

        response = post_webhook(tampered, signature=PaystackAdapter.compute_signature(body))

        assert response.status_code == 401

    def test_unconfigured_secret_refuses_empty_key_signature(
        self, db, settings, post_webhook, unpaid_order
    ):
        settings.PAYSTACK_SECRET_KEY = ""
        body = charge_success_body(unpaid_order.payment_reference)

        response = post_webhook(
            body, signature=hmac.new(b"", body, hashlib.sha512).hexdigest()
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Server configuration error"}
        assert not WebhookEvent.objects.exists()
        assert Order.objects.get(pk=unpaid_order.id).payment_status == PaymentStatus.PENDING

    def test_get_not_allowed(self, db, client):
        response = client.get(reverse("settlement:paystack-webhook"))

        assert response.status_code == 405


class TestMalformedBodies:
    def test_invalid_json(self, db, post_webhook):
        response = post_webhook(b"not json")

        assert response.status_code == 400

    def test_missing_event_type(self, db, post_webhook):
        response = post_webhook(json.dumps({"data": {"id": 1}}).encode())

        assert response.status_code == 400
        assert not WebhookEvent.objects.exists()


class TestEventProcessing:
    def test_charge_success_confirms_payment(self, post_webhook, unpaid_order):
        response = post_webhook(charge_success_body(unpaid_order.payment_reference))

        assert response.status_code == 200
        assert response.json() == {"received": True}
        order = Order.objects.get(pk=unpaid_order.id)
        assert order.payment_status == PaymentStatus.COMPLETED
        assert order.customer_code == "CUS_hook"

        event = WebhookEvent.objects.get()
        assert event.event_key == "charge.success:4001"
        assert event.status == WebhookEventStatus.PROCESSED
        assert event.retry_count == 1

    def test_duplicate_delivery_processed_once(self, post_webhook, unpaid_order):
        body = charge_success_body(unpaid_order.payment_reference)

        first = post_webhook(body)
        with patch("settlement.webhooks.views.process_event") as process:
            second = post_webhook(body)

        assert first.status_code == second.status_code == 200
        process.assert_not_called()
        assert WebhookEvent.objects.count() == 1

    def test_unknown_event_acknowledged(self, db, post_webhook):
        body = json.dumps({"event": "subscription.create", "data": {"id": 9}}).encode()

        response = post_webhook(body)

        assert response.status_code == 200
        event = WebhookEvent.objects.get()
        assert event.status == WebhookEventStatus.PROCESSED

    def test_unmatched_reference_acknowledged(self, db, post_webhook):
        response = post_webhook(charge_success_body("T_nobody"))

        assert response.status_code == 200
        assert WebhookEvent.objects.get().status == WebhookEventStatus.PROCESSED

    def test_processing_error_returns_500(self, post_webhook, unpaid_order):
        with patch(
            "settlement.webhooks.handlers.PaymentService.confirm_charge",
            side_effect=RuntimeError("database unavailable"),
        ):
            response = post_webhook(charge_success_body(unpaid_order.payment_reference))

        assert response.status_code == 500
        event = WebhookEvent.objects.get()
        assert event.status == WebhookEventStatus.FAILED
        assert "RuntimeError" in event.error_message
        assert event.retry_count == 1

    def test_redelivery_after_failure_is_processed(self, post_webhook, unpaid_order):
        body = charge_success_body(unpaid_order.payment_reference)
        with patch(
            "settlement.webhooks.handlers.PaymentService.confirm_charge",
            side_effect=RuntimeError("database unavailable"),
        ):
            post_webhook(body)

        response = post_webhook(body)

        assert response.status_code == 200
        assert Order.objects.get(pk=unpaid_order.id).is_paid
        event = WebhookEvent.objects.get()
        assert event.status == WebhookEventStatus.PROCESSED
        assert event.retry_count == 2


class TestBuildEventKey:
    def test_event_and_data_id(self):
        payload = {"event": "transfer.success", "data": {"id": 77}}

        assert build_event_key(payload, b"{}") == "transfer.success:77"

    def test_falls_back_to_body_hash(self):
        key = build_event_key({"event": "charge.success", "data": {}}, b"raw-body")

        assert len(key) == 64
        assert key == build_event_key({"event": "charge.success"}, b"raw-body")
