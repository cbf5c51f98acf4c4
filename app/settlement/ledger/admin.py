"""
Django admin configuration for the ledger.

Ledger entries are append-only, so the admin is strictly read-only:
no add, change or delete permissions.
"""

from django.contrib import admin

from .models import LedgerEntry


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    """Read-only view of ledger entries."""

    list_display = [
        "id",
        "kind",
        "amount",
        "commission",
        "seller",
        "customer",
        "order",
        "payout",
        "created_at",
    ]
    list_filter = ["kind", "currency", "created_at"]
    search_fields = ["id", "idempotency_key", "description"]
    raw_id_fields = ["order", "payout", "seller", "customer"]
    readonly_fields = [
        "id",
        "created_at",
        "kind",
        "amount",
        "currency",
        "order",
        "payout",
        "seller",
        "customer",
        "commission",
        "commission_rate",
        "description",
        "metadata",
        "created_by",
        "idempotency_key",
    ]
    ordering = ["-created_at"]
    date_hierarchy = "created_at"

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        return False
