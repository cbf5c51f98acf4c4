"""
Webhook endpoint view for Paystack.

The view:
1. Verifies the x-paystack-signature HMAC over the raw body
2. Creates/retrieves the WebhookEvent record (idempotent by event key)
3. Processes the event synchronously
4. Answers 200 so Paystack stops retrying, or 500 so it retries

Usage:
    # In urls.py
    from settlement.webhooks.views import paystack_webhook

    urlpatterns = [
        path("webhooks/paystack/", paystack_webhook, name="paystack-webhook"),
    ]
"""

from __future__ import annotations

import hashlib
import json
import logging

from django.conf import settings
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from settlement.adapters import PaystackAdapter
from settlement.exceptions import InvalidSignature
from settlement.models import WebhookEvent
from settlement.state_machines import WebhookEventStatus
from settlement.webhooks.handlers import process_event

logger = logging.getLogger(__name__)


def build_event_key(payload: dict, raw_body: bytes) -> str:
    """``"<event>:<data.id>"``, or the SHA-256 of the body when there is no id."""
    data = payload.get("data")
    data_id = data.get("id") if isinstance(data, dict) else None
    if data_id is not None and data_id != "":
        return f"{payload.get('event')}:{data_id}"
    return hashlib.sha256(raw_body).hexdigest()


@csrf_exempt
@require_POST
def paystack_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive and process Paystack webhook events.

    Returns:
        JsonResponse with status:
        - 200: Event processed, duplicate, or ignored
        - 400: Body is not a JSON event
        - 401: Missing or invalid signature
        - 500: Processing failed (Paystack will redeliver), or no webhook
          secret is configured
    """
    if not settings.PAYSTACK_SECRET_KEY:
        logger.error("PAYSTACK_SECRET_KEY is not set, refusing webhook")
        return JsonResponse({"error": "Server configuration error"}, status=500)

    payload = request.body
    signature = request.META.get(PaystackAdapter.SIGNATURE_HEADER)

    # Step 1: Verify signature over the exact raw bytes
    try:
        PaystackAdapter.verify_webhook_signature(payload, signature)
    except InvalidSignature as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": e.message},
        )
        return JsonResponse(e.to_dict(), status=e.http_status)

    try:
        event_data = json.loads(payload)
    except ValueError:
        logger.warning("Webhook body is not valid JSON")
        return JsonResponse({"error": "Invalid payload"}, status=400)

    event_type = event_data.get("event") if isinstance(event_data, dict) else None
    if not event_type:
        logger.warning("Webhook missing event type")
        return JsonResponse({"error": "Invalid event"}, status=400)

    event_key = build_event_key(event_data, payload)
    logger.info(
        f"Received Paystack webhook: {event_type}",
        extra={"event_key": event_key, "event_type": event_type},
    )

    # Step 2: Create/get WebhookEvent (idempotent)
    webhook_event, created = WebhookEvent.objects.get_or_create(
        event_key=event_key,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created and webhook_event.is_processed:
        logger.info(
            "Webhook already processed, returning success",
            extra={"event_key": event_key},
        )
        return JsonResponse({"received": True})

    # Step 3: Process synchronously
    try:
        process_event(webhook_event)
    except Exception:
        return JsonResponse({"error": "Webhook processing failed"}, status=500)

    return JsonResponse({"received": True})
