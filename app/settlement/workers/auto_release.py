"""
Auto-release worker for escrow on shipped orders.

Tasks:
- release_due_escrows: Periodic sweep (hourly via celery-beat) that
  releases every order whose auto-release deadline has passed
- release_order_escrow: Releases a single order with distributed locking

Usage:
    from settlement.workers import release_due_escrows

    # Run the sweep now (also what the cron endpoint does, synchronously)
    release_due_escrows.delay()

    # Release one order
    release_order_escrow.delay(str(order.id))
"""

from __future__ import annotations

import logging
from uuid import UUID

from celery import shared_task

from settlement.services import AutoReleaseService

logger = logging.getLogger(__name__)


# =============================================================================
# Periodic Task: Sweep
# =============================================================================


@shared_task(bind=True)
def release_due_escrows(self) -> dict:
    """
    Release escrow for every SENT order past its deadline.

    Idempotent: a released order no longer matches the sweep query, and
    each order is re-checked under its row lock before release.

    Returns:
        Dict with checked, released, skipped, lock_failed, errors and
        released_ids
    """
    logger.info("Starting auto-release sweep")
    return AutoReleaseService.sweep()


# =============================================================================
# Individual Release Task
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": 3},
    acks_late=True,
)
def release_order_escrow(self, order_id: str) -> dict:
    """
    Release a single order's escrow.

    Args:
        order_id: UUID of the Order

    Returns:
        Dict with:
        - status: One of "released", "not_found", "invalid_state",
                  "disputed", "not_due", "lock_failed"
        - order_id: The order ID processed
    """
    try:
        order_uuid = UUID(str(order_id))
    except ValueError:
        logger.error("Invalid order_id format", extra={"order_id": order_id})
        return {"status": "not_found", "order_id": order_id}

    logger.info(
        "Processing escrow release",
        extra={"order_id": order_id, "celery_retries": self.request.retries},
    )

    try:
        status = AutoReleaseService.release_order_locked(order_uuid)
    except Exception:
        logger.exception(
            "Unexpected error during escrow release",
            extra={"order_id": order_id},
        )
        raise

    return {"status": status, "order_id": str(order_uuid)}
