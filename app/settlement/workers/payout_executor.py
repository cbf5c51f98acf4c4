"""
Payout executor worker for due seller payouts.

Tasks:
- process_due_payouts: Periodic task (daily via celery-beat) that
  processes every pending payout whose expected processing date has come
- execute_single_payout: Processes one payout, retrying while Paystack
  is unavailable

Usage:
    from settlement.workers import process_due_payouts

    process_due_payouts.delay()
    execute_single_payout.delay(str(payout.id))
"""

from __future__ import annotations

import logging
from uuid import UUID

from celery import shared_task
from django.utils import timezone

from settlement.exceptions import (
    InsufficientBalance,
    InvalidTransition,
    LockAcquisitionError,
    PayoutNotFound,
    ProviderRejected,
    ProviderUnavailable,
)
from settlement.models import Payout
from settlement.services import PayoutService
from settlement.state_machines import PayoutStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Maximum payouts to process per batch (prevents memory issues)
BATCH_SIZE = 100

# Maximum retry attempts while Paystack is unavailable
MAX_RETRY_ATTEMPTS = 5


# =============================================================================
# Periodic Task: Due Payouts
# =============================================================================


@shared_task(bind=True)
def process_due_payouts(self) -> dict:
    """
    Process pending payouts whose expected_processing_date has passed.

    Each payout runs under its own distributed lock (taken by
    PayoutService.process_payout). One payout failing never stops the
    batch. A payout that hit an unavailable provider stays pending and is
    handed to execute_single_payout for retry with backoff.

    Returns:
        Dict with:
        - processed: Number of payouts completed
        - failed: Number of payouts that did not complete
        - processed_ids: IDs of completed payouts
        - failed_details: [{payout_id, error, error_code}, ...]
    """
    today = timezone.localdate()
    payout_ids = list(
        Payout.objects.filter(
            status=PayoutStatus.PENDING,
            expected_processing_date__lte=today,
        )
        .order_by("expected_processing_date", "created_at")
        .values_list("id", flat=True)[:BATCH_SIZE]
    )

    logger.info("Starting due payout run", extra={"due_count": len(payout_ids)})

    processed_ids: list[str] = []
    failed_details: list[dict] = []

    for payout_id in payout_ids:
        try:
            PayoutService.process_payout(payout_id, actor=None)
        except ProviderUnavailable as e:
            execute_single_payout.apply_async(args=[str(payout_id)], countdown=60)
            failed_details.append(_failure(payout_id, e))
        except (
            InsufficientBalance,
            InvalidTransition,
            LockAcquisitionError,
            PayoutNotFound,
            ProviderRejected,
        ) as e:
            failed_details.append(_failure(payout_id, e))
        except Exception as e:
            logger.exception(
                "Unexpected error while processing payout",
                extra={"payout_id": str(payout_id)},
            )
            failed_details.append(_failure(payout_id, e, error_code="UNEXPECTED_ERROR"))
        else:
            processed_ids.append(str(payout_id))

    result = {
        "processed": len(processed_ids),
        "failed": len(failed_details),
        "processed_ids": processed_ids,
        "failed_details": failed_details,
    }
    logger.info(
        "Due payout run complete",
        extra={"processed": result["processed"], "failed": result["failed"]},
    )
    return result


def _failure(payout_id, error: Exception, error_code: str | None = None) -> dict:
    return {
        "payout_id": str(payout_id),
        "error": getattr(error, "message", None) or str(error),
        "error_code": error_code or getattr(error, "error_code", error.__class__.__name__),
    }


# =============================================================================
# Individual Execution Task
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(ProviderUnavailable,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_RETRY_ATTEMPTS},
    acks_late=True,
)
def execute_single_payout(self, payout_id: str) -> dict:
    """
    Process a single payout.

    Returns:
        Dict with:
        - status: One of "completed", "not_found", "invalid_state",
                  "failed", "lock_failed"
        - payout_id: The payout ID processed
        - error / error_code: When the payout did not complete

    Raises:
        ProviderUnavailable: Re-raised to trigger Celery retry
    """
    try:
        payout_uuid = UUID(str(payout_id))
    except ValueError:
        logger.error("Invalid payout_id format", extra={"payout_id": payout_id})
        return {"status": "not_found", "payout_id": payout_id}

    logger.info(
        "Processing payout",
        extra={"payout_id": payout_id, "celery_retries": self.request.retries},
    )

    try:
        payout = PayoutService.process_payout(payout_uuid, actor=None)
    except PayoutNotFound:
        return {"status": "not_found", "payout_id": payout_id}
    except InvalidTransition as e:
        return {"status": "invalid_state", "payout_id": payout_id, "error": e.message}
    except LockAcquisitionError as e:
        return {"status": "lock_failed", "payout_id": payout_id, "error": e.message}
    except (InsufficientBalance, ProviderRejected) as e:
        return {
            "status": "failed",
            "payout_id": payout_id,
            "error": e.message,
            "error_code": e.error_code,
        }
    except ProviderUnavailable:
        logger.warning(
            "Paystack unavailable, will retry",
            extra={"payout_id": payout_id, "celery_retries": self.request.retries},
        )
        raise

    return {
        "status": "completed",
        "payout_id": payout_id,
        "transfer_code": payout.transfer_code,
    }
