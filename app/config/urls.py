"""
URL configuration for the settlement backend.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/settlement/            - Settlement endpoints
        webhooks/paystack/         - Paystack webhook endpoint (POST)
        orders/{id}/mark-sent/     - Seller marks the order as shipped
        orders/{id}/mark-received/ - Buyer confirms receipt
        orders/{id}/cancel/        - Pre-shipment cancellation
        orders/{id}/disputes/      - Open a dispute
        orders/{id}/disputes/resolve/ - Admin resolves the open dispute
        payouts/                   - Request a payout
        payouts/balance/           - Seller earnings and available balance
        payouts/{id}/process/      - Admin processes a payout
        payouts/{id}/cancel/       - Seller cancels a pending payout
        payouts/destination/       - Save bank destination (PUT)
        payouts/destination/verify/ - Resolve a bank account
        policy/                    - Commission policy (GET/PATCH)
        cron/{job}/                - Externally scheduled sweeps
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("settlement/", include("settlement.urls")),
]

urlpatterns = [
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

admin.site.site_header = "Settlement Admin"
admin.site.site_title = "Settlement Admin Portal"
admin.site.index_title = "Orders, disputes and payouts"
