"""
Workers for background settlement processing.

This module contains Celery tasks for scheduled settlement operations:
- AutoRelease: Releases escrow on shipped orders past their deadline
- PayoutExecutor: Processes due payouts through Paystack

Usage:
    from settlement.workers import (
        release_due_escrows,
        release_order_escrow,
        process_due_payouts,
        execute_single_payout,
    )

    release_due_escrows.delay()
    execute_single_payout.delay(str(payout_id))
"""

from settlement.workers.auto_release import release_due_escrows, release_order_escrow
from settlement.workers.payout_executor import execute_single_payout, process_due_payouts

__all__ = [
    # Auto Release
    "release_due_escrows",
    "release_order_escrow",
    # Payout Executor
    "execute_single_payout",
    "process_due_payouts",
]
