"""
Reconciliation history.

One ReconciliationLog is written per reconciliation run that found
issues, giving operators an audit trail of charges the gateway reported
differently from our records.

Usage:
    from settlement.models import ReconciliationLog

    latest = ReconciliationLog.objects.first()
    for issue in latest.details:
        print(issue["type"], issue["reference"])
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel


class ReconciliationIssueType(models.TextChoices):
    """Kinds of discrepancy reconciliation can report."""

    PAYMENT_SUCCESSFUL_BUT_NOT_COMPLETED = (
        "payment_successful_but_not_completed",
        "Payment Successful But Not Completed",
    )
    AMOUNT_MISMATCH = "amount_mismatch", "Amount Mismatch"


class ReconciliationLog(BaseModel):
    """
    Summary of one reconciliation run.

    Fields:
        window_days: How many days back the run checked
        checked: Number of orders verified against the gateway
        issues_found: Number of discrepancies
        details: List of {type, order_id, reference, ...} dicts
    """

    window_days = models.PositiveIntegerField()

    checked = models.PositiveIntegerField(default=0)

    issues_found = models.PositiveIntegerField(default=0)

    details = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Reconciliation Log"
        verbose_name_plural = "Reconciliation Logs"

    def __str__(self) -> str:
        return f"ReconciliationLog({self.created_at:%Y-%m-%d %H:%M}, issues={self.issues_found})"
