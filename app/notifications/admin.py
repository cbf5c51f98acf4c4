"""Django admin configuration for notifications."""

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """Read-mostly admin for the notification sink."""

    list_display = ["id", "recipient", "kind", "title", "is_read", "created_at"]
    list_filter = ["kind", "is_read", "created_at"]
    search_fields = ["title", "body", "idempotency_key"]
    raw_id_fields = ["recipient"]
    readonly_fields = [
        "recipient",
        "kind",
        "title",
        "body",
        "data",
        "idempotency_key",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
