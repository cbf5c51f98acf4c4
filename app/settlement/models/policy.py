"""
Process-wide commission policy.

A singleton row (pk=1) read at settlement and payout-request time. Orders
snapshot the rate they were settled under, so a policy change never
rewrites history.

Usage:
    from settlement.services.policy_service import PolicyService

    policy = PolicyService.get_policy()
    policy.commission_rate  # Decimal("0.0500")
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel

POLICY_PK = 1


class CommissionPolicy(BaseModel):
    """
    Commission rate, payout threshold and timing windows.

    Fields:
        commission_rate: Fraction in [0, 1] taken from each order total
        minimum_payout_amount: Smallest payout a seller may request
        payout_processing_days: Business days between request and processing
        auto_release_days: Days after shipping before escrow auto-releases
        updated_by: Admin who last changed the policy
    """

    commission_rate = models.DecimalField(max_digits=5, decimal_places=4)

    minimum_payout_amount = models.DecimalField(max_digits=14, decimal_places=2)

    payout_processing_days = models.PositiveSmallIntegerField()

    auto_release_days = models.PositiveSmallIntegerField()

    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        verbose_name = "Commission Policy"
        verbose_name_plural = "Commission Policy"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(commission_rate__gte=0)
                & models.Q(commission_rate__lte=1),
                name="policy_commission_rate_range",
            ),
            models.CheckConstraint(
                condition=models.Q(minimum_payout_amount__gte=0),
                name="policy_minimum_payout_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return (
            f"CommissionPolicy(rate={self.commission_rate}, "
            f"min_payout={self.minimum_payout_amount})"
        )
