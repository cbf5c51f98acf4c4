"""
Webhook handling for Paystack events.

Webhooks are verified, stored idempotently, and processed synchronously;
failed events are retried by the retry_failed_webhooks task.
"""

from settlement.webhooks.handlers import dispatch_webhook, process_event, register_handler
from settlement.webhooks.views import paystack_webhook

__all__ = [
    "dispatch_webhook",
    "paystack_webhook",
    "process_event",
    "register_handler",
]
