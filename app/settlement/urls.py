"""
URL configuration for the settlement app.

Mounted under /api/v1/settlement/ by config.urls.
"""

from django.urls import path

from settlement import views
from settlement.webhooks.views import paystack_webhook

app_name = "settlement"

urlpatterns = [
    # Webhooks
    path("webhooks/paystack/", paystack_webhook, name="paystack-webhook"),
    # Orders
    path("orders/<uuid:order_id>/mark-sent/", views.MarkSentView.as_view(), name="order-mark-sent"),
    path(
        "orders/<uuid:order_id>/mark-received/",
        views.MarkReceivedView.as_view(),
        name="order-mark-received",
    ),
    path("orders/<uuid:order_id>/cancel/", views.CancelOrderView.as_view(), name="order-cancel"),
    # Disputes
    path(
        "orders/<uuid:order_id>/disputes/",
        views.OpenDisputeView.as_view(),
        name="dispute-open",
    ),
    path(
        "orders/<uuid:order_id>/disputes/resolve/",
        views.ResolveDisputeView.as_view(),
        name="dispute-resolve",
    ),
    # Payouts
    path("payouts/", views.PayoutRequestView.as_view(), name="payout-request"),
    path("payouts/balance/", views.PayoutBalanceView.as_view(), name="payout-balance"),
    path(
        "payouts/destination/",
        views.PayoutDestinationView.as_view(),
        name="payout-destination",
    ),
    path(
        "payouts/destination/verify/",
        views.VerifyBankAccountView.as_view(),
        name="payout-destination-verify",
    ),
    path(
        "payouts/<uuid:payout_id>/process/",
        views.ProcessPayoutView.as_view(),
        name="payout-process",
    ),
    path(
        "payouts/<uuid:payout_id>/cancel/",
        views.CancelPayoutView.as_view(),
        name="payout-cancel",
    ),
    # Policy
    path("policy/", views.CommissionPolicyView.as_view(), name="policy"),
    # Cron triggers
    path("cron/<slug:job>/", views.run_cron_job, name="cron"),
]
