"""
Notification sink for settlement events.

This app stores user notifications (new order, order confirmed, payout
completed/failed/reversed, dispute opened/resolved). Delivery to email,
SMS or push is an external concern that consumes these rows.

Usage:
    from notifications.services import NotificationService

    result = NotificationService.create_notification(
        recipient=user,
        kind="payout_completed",
        title="Payout Completed",
        body="Your payout of ₦50,000.00 has been successfully transferred.",
        idempotency_key=f"payout_completed:{payout.id}",
    )
"""
