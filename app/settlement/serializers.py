"""
Serializers for the settlement API.

Read serializers render orders, disputes, payouts and the policy. Write
serializers validate request bodies before the services apply the
business rules (ownership, state, balance), so a serializer never
decides whether an operation is allowed.
"""

from __future__ import annotations

from rest_framework import serializers

from settlement.models import CommissionPolicy, Dispute, Order, Payout, PayoutDestination
from settlement.state_machines import DisputeResolution, DisputeType

MONEY_FIELD_KWARGS = {"max_digits": 14, "decimal_places": 2}


# =============================================================================
# Read Serializers
# =============================================================================


class DisputeSerializer(serializers.ModelSerializer):
    class Meta:
        model = Dispute
        fields = [
            "id",
            "order",
            "opened_by",
            "dispute_type",
            "description",
            "photos",
            "status",
            "resolution",
            "refund_amount",
            "resolution_notes",
            "resolved_by",
            "resolved_at",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = [
            "id",
            "customer",
            "seller",
            "total",
            "currency",
            "status",
            "escrow_status",
            "payment_status",
            "payment_reference",
            "commission_rate",
            "commission_amount",
            "seller_earning",
            "refund_amount",
            "version",
            "sent_at",
            "auto_release_at",
            "received_at",
            "auto_released",
            "disputed_at",
            "funds_released_at",
            "refunded_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PayoutSerializer(serializers.ModelSerializer):
    account_number = serializers.SerializerMethodField()

    class Meta:
        model = Payout
        fields = [
            "id",
            "seller",
            "amount",
            "currency",
            "status",
            "transfer_reference",
            "transfer_code",
            "bank_name",
            "account_number",
            "account_name",
            "expected_processing_date",
            "processed_at",
            "completed_at",
            "failed_at",
            "cancelled_at",
            "failure_reason",
            "created_at",
        ]
        read_only_fields = fields

    def get_account_number(self, obj: Payout) -> str:
        return f"******{obj.account_number[-4:]}"


class PayoutDestinationSerializer(serializers.ModelSerializer):
    class Meta:
        model = PayoutDestination
        fields = [
            "bank_name",
            "bank_code",
            "account_number",
            "account_name",
            "verified_at",
            "updated_at",
        ]
        read_only_fields = fields


class CommissionPolicySerializer(serializers.ModelSerializer):
    class Meta:
        model = CommissionPolicy
        fields = [
            "commission_rate",
            "minimum_payout_amount",
            "payout_processing_days",
            "auto_release_days",
            "updated_by",
            "updated_at",
        ]
        read_only_fields = fields


class SellerEarningsSerializer(serializers.Serializer):
    total_earnings = serializers.DecimalField(**MONEY_FIELD_KWARGS)
    commission_paid = serializers.DecimalField(**MONEY_FIELD_KWARGS)
    pending_payouts = serializers.DecimalField(**MONEY_FIELD_KWARGS)
    total_payouts = serializers.DecimalField(**MONEY_FIELD_KWARGS)
    available_balance = serializers.DecimalField(**MONEY_FIELD_KWARGS)
    total_orders = serializers.IntegerField()


# =============================================================================
# Write Serializers
# =============================================================================


class OrderActionSerializer(serializers.Serializer):
    """Body of mark-sent / mark-received."""

    photo_url = serializers.URLField(required=False, allow_blank=True, max_length=500)
    expected_version = serializers.IntegerField(required=False, min_value=1)


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    expected_version = serializers.IntegerField(required=False, min_value=1)


class OpenDisputeSerializer(serializers.Serializer):
    dispute_type = serializers.ChoiceField(choices=DisputeType.choices)
    description = serializers.CharField(max_length=2000)
    photos = serializers.ListField(
        child=serializers.URLField(max_length=500),
        required=False,
        default=list,
        max_length=10,
    )
    expected_version = serializers.IntegerField(required=False, min_value=1)


class ResolveDisputeSerializer(serializers.Serializer):
    resolution = serializers.ChoiceField(choices=DisputeResolution.choices)
    refund_amount = serializers.DecimalField(
        required=False, allow_null=True, min_value=0, **MONEY_FIELD_KWARGS
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if (
            attrs["resolution"] == DisputeResolution.PARTIAL_REFUND
            and attrs.get("refund_amount") is None
        ):
            raise serializers.ValidationError(
                {"refund_amount": "Required for a partial refund."}
            )
        return attrs


class PayoutRequestSerializer(serializers.Serializer):
    amount = serializers.DecimalField(**MONEY_FIELD_KWARGS)


class BankAccountSerializer(serializers.Serializer):
    account_number = serializers.RegexField(
        r"^\d{10}$",
        error_messages={"invalid": "Account number must be exactly 10 digits."},
    )
    bank_code = serializers.CharField(max_length=10)


class PayoutDestinationWriteSerializer(BankAccountSerializer):
    bank_name = serializers.CharField(max_length=100)
    account_name = serializers.CharField(max_length=255)


class PolicyUpdateSerializer(serializers.Serializer):
    commission_rate = serializers.DecimalField(
        max_digits=5, decimal_places=4, min_value=0, max_value=1, required=False
    )
    minimum_payout_amount = serializers.DecimalField(
        min_value=0, required=False, **MONEY_FIELD_KWARGS
    )
    payout_processing_days = serializers.IntegerField(
        min_value=1, max_value=30, required=False
    )
    auto_release_days = serializers.IntegerField(min_value=1, required=False)
