"""
Settlement admin configuration.

Registers the settlement models with the Django admin. State fields are
FSM-protected, so orders, disputes and payouts are shown read-only for
their status columns; changes go through the API and services.
"""

from django.contrib import admin

from settlement.ledger.admin import LedgerEntryAdmin
from settlement.models import (
    CommissionPolicy,
    Dispute,
    FailedPayment,
    Order,
    OrderMessage,
    Payout,
    PayoutDestination,
    ReconciliationLog,
    WebhookEvent,
)

__all__ = [
    "LedgerEntryAdmin",
    "OrderAdmin",
    "DisputeAdmin",
    "PayoutAdmin",
    "PayoutDestinationAdmin",
    "WebhookEventAdmin",
    "FailedPaymentAdmin",
    "CommissionPolicyAdmin",
    "ReconciliationLogAdmin",
]


class OrderMessageInline(admin.TabularInline):
    model = OrderMessage
    extra = 0
    can_delete = False
    fields = ["created_at", "is_system", "sender", "text", "image_url"]
    readonly_fields = fields


class DisputeInline(admin.TabularInline):
    model = Dispute
    extra = 0
    can_delete = False
    fields = ["dispute_type", "status", "resolution", "refund_amount", "resolved_at"]
    readonly_fields = fields


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Orders with their escrow and payment state."""

    list_display = [
        "id",
        "customer",
        "seller",
        "total",
        "status",
        "escrow_status",
        "payment_status",
        "auto_release_at",
        "created_at",
    ]
    list_filter = ["status", "escrow_status", "payment_status", "auto_released"]
    search_fields = ["id", "payment_reference", "customer__username", "seller__username"]
    raw_id_fields = ["customer", "seller"]
    readonly_fields = [
        "id",
        "status",
        "escrow_status",
        "payment_status",
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
        "payment_verified_at",
        "created_at",
        "updated_at",
    ]
    inlines = [DisputeInline, OrderMessageInline]
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "customer", "seller", "total", "currency")}),
        (
            "State",
            {"fields": ("status", "escrow_status", "payment_status", "version")},
        ),
        (
            "Payment",
            {
                "fields": (
                    "payment_reference",
                    "customer_code",
                    "payment_verified_at",
                    "payment_failure_reason",
                ),
            },
        ),
        (
            "Settlement",
            {
                "fields": (
                    "commission_rate",
                    "commission_amount",
                    "seller_earning",
                    "refund_amount",
                ),
            },
        ),
        (
            "Timestamps",
            {
                "fields": (
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
                ),
                "classes": ("collapse",),
            },
        ),
    )


@admin.register(Dispute)
class DisputeAdmin(admin.ModelAdmin):
    list_display = ["id", "order", "dispute_type", "status", "resolution", "created_at"]
    list_filter = ["status", "dispute_type", "resolution"]
    search_fields = ["id", "order__id", "description"]
    raw_id_fields = ["order", "opened_by", "resolved_by"]
    readonly_fields = ["id", "status", "resolution", "refund_amount", "resolved_by", "resolved_at"]


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "seller",
        "amount",
        "status",
        "transfer_reference",
        "expected_processing_date",
        "created_at",
    ]
    list_filter = ["status", "expected_processing_date"]
    search_fields = ["id", "transfer_reference", "transfer_code", "seller__username"]
    raw_id_fields = ["seller", "processed_by"]
    readonly_fields = [
        "id",
        "status",
        "transfer_reference",
        "transfer_code",
        "recipient_code",
        "version",
        "processed_by",
        "processed_at",
        "completed_at",
        "failed_at",
        "cancelled_at",
        "failure_reason",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]


@admin.register(PayoutDestination)
class PayoutDestinationAdmin(admin.ModelAdmin):
    list_display = ["seller", "bank_name", "account_name", "verified_at"]
    search_fields = ["seller__username", "account_name", "account_number"]
    raw_id_fields = ["seller"]
    readonly_fields = ["recipient_code", "verified_at"]


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """Stored Paystack deliveries for debugging and manual retry."""

    list_display = ["id", "event_key", "event_type", "status", "retry_count", "created_at"]
    list_filter = ["status", "event_type"]
    search_fields = ["event_key"]
    readonly_fields = [
        "id",
        "event_key",
        "event_type",
        "payload",
        "processed_at",
        "error_message",
        "retry_count",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]


@admin.register(FailedPayment)
class FailedPaymentAdmin(admin.ModelAdmin):
    list_display = ["id", "reference", "amount", "reason", "order", "created_at"]
    search_fields = ["reference", "customer_code"]
    raw_id_fields = ["order"]
    readonly_fields = ["reference", "amount", "reason", "customer_code", "order", "created_at"]


@admin.register(CommissionPolicy)
class CommissionPolicyAdmin(admin.ModelAdmin):
    list_display = [
        "commission_rate",
        "minimum_payout_amount",
        "payout_processing_days",
        "auto_release_days",
        "updated_by",
        "updated_at",
    ]
    readonly_fields = ["updated_by", "updated_at"]

    def has_add_permission(self, request) -> bool:
        return not CommissionPolicy.objects.exists()

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def save_model(self, request, obj, form, change):
        obj.updated_by = request.user
        super().save_model(request, obj, form, change)


@admin.register(ReconciliationLog)
class ReconciliationLogAdmin(admin.ModelAdmin):
    list_display = ["id", "window_days", "checked", "issues_found", "created_at"]
    readonly_fields = ["window_days", "checked", "issues_found", "details", "created_at"]
