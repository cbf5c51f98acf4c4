"""
Commission policy provider.

The policy is read on every settlement and payout request (no caching) so
an admin change takes effect for the next operation.

Usage:
    from settlement.services import PolicyService

    policy = PolicyService.get_policy()
    PolicyService.update_policy(admin, commission_rate=Decimal("0.07"))
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from django.conf import settings

from core.services import BaseService

from settlement.exceptions import SettlementValidationError
from settlement.ledger.types import to_money, to_rate
from settlement.models import CommissionPolicy
from settlement.models.policy import POLICY_PK
from settlement.services.common import require_admin

if TYPE_CHECKING:
    from typing import Any

# =============================================================================
# Constants
# =============================================================================

MIN_PROCESSING_DAYS = 1
MAX_PROCESSING_DAYS = 30

UPDATABLE_FIELDS = (
    "commission_rate",
    "minimum_payout_amount",
    "payout_processing_days",
    "auto_release_days",
)


class PolicyService(BaseService):
    """Reads and updates the singleton CommissionPolicy row."""

    @staticmethod
    def _defaults() -> dict[str, Any]:
        return {
            "commission_rate": to_rate(settings.SETTLEMENT_DEFAULT_COMMISSION_RATE),
            "minimum_payout_amount": to_money(settings.SETTLEMENT_DEFAULT_MINIMUM_PAYOUT),
            "payout_processing_days": settings.SETTLEMENT_DEFAULT_PAYOUT_PROCESSING_DAYS,
            "auto_release_days": settings.SETTLEMENT_AUTO_RELEASE_DAYS,
        }

    @classmethod
    def get_policy(cls) -> CommissionPolicy:
        """Return the policy row, creating it from settings on first use."""
        policy, created = CommissionPolicy.objects.get_or_create(
            pk=POLICY_PK,
            defaults=cls._defaults(),
        )
        if created:
            cls.get_logger().info("Commission policy initialised from settings")
        return policy

    @classmethod
    def update_policy(cls, admin, **changes: Any) -> CommissionPolicy:
        """
        Change one or more policy fields.

        Args:
            admin: Acting user, must be staff or superuser
            **changes: Any of commission_rate, minimum_payout_amount,
                payout_processing_days, auto_release_days

        Raises:
            Unauthorized: If the actor is not an admin
            SettlementValidationError: On unknown fields or out-of-range values
        """
        require_admin(admin, "update the commission policy")

        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise SettlementValidationError(
                "Unknown policy fields",
                details={"fields": {name: ["Unknown field"] for name in sorted(unknown)}},
            )

        cleaned = cls._clean(changes)

        cls.get_policy()
        with cls.atomic():
            policy = CommissionPolicy.objects.select_for_update().get(pk=POLICY_PK)
            for name, value in cleaned.items():
                setattr(policy, name, value)
            policy.updated_by = admin
            policy.save()

        cls.get_logger().info(
            "Commission policy updated",
            extra={
                "admin_id": admin.pk,
                "changes": {name: str(value) for name, value in cleaned.items()},
            },
        )
        return policy

    @staticmethod
    def _clean(changes: dict[str, Any]) -> dict[str, Any]:
        errors: dict[str, list[str]] = {}
        cleaned: dict[str, Any] = {}

        if "commission_rate" in changes:
            try:
                rate = to_rate(changes["commission_rate"])
            except (InvalidOperation, TypeError, ValueError):
                errors["commission_rate"] = ["Must be a number"]
            else:
                if not Decimal("0") <= rate <= Decimal("1"):
                    errors["commission_rate"] = ["Must be between 0 and 1"]
                cleaned["commission_rate"] = rate

        if "minimum_payout_amount" in changes:
            try:
                minimum = to_money(changes["minimum_payout_amount"])
            except (InvalidOperation, TypeError, ValueError):
                errors["minimum_payout_amount"] = ["Must be a number"]
            else:
                if minimum < 0:
                    errors["minimum_payout_amount"] = ["Must not be negative"]
                cleaned["minimum_payout_amount"] = minimum

        if "payout_processing_days" in changes:
            days = changes["payout_processing_days"]
            if not isinstance(days, int) or not MIN_PROCESSING_DAYS <= days <= MAX_PROCESSING_DAYS:
                errors["payout_processing_days"] = [
                    f"Must be between {MIN_PROCESSING_DAYS} and {MAX_PROCESSING_DAYS}"
                ]
            cleaned["payout_processing_days"] = days

        if "auto_release_days" in changes:
            days = changes["auto_release_days"]
            if not isinstance(days, int) or days < 1:
                errors["auto_release_days"] = ["Must be at least 1"]
            cleaned["auto_release_days"] = days

        if errors:
            raise SettlementValidationError("Invalid policy values", details={"fields": errors})
        return cleaned
