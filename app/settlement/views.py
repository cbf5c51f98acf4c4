"""
DRF views for the settlement app.

This module provides API views for:
- Order commands (mark sent, mark received, cancel)
- Disputes (open, admin resolve)
- Payouts (balance, request, process, cancel, bank destination)
- Commission policy
- Cron-style triggers for the scheduled sweeps

Related files:
    - services/: Business rules
    - serializers.py: Request/response serializers
    - webhooks/views.py: Paystack webhook endpoint
    - urls.py: URL routing

Security:
    - All endpoints require authentication except the webhook and cron
      triggers (signature and shared secret respectively)
    - Ownership and admin checks happen in the services
"""

from __future__ import annotations

import hmac
import logging

from django.conf import settings
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError

from settlement.serializers import (
    BankAccountSerializer,
    CancelOrderSerializer,
    CommissionPolicySerializer,
    DisputeSerializer,
    OpenDisputeSerializer,
    OrderActionSerializer,
    OrderSerializer,
    PayoutDestinationSerializer,
    PayoutDestinationWriteSerializer,
    PayoutRequestSerializer,
    PayoutSerializer,
    PolicyUpdateSerializer,
    ResolveDisputeSerializer,
    SellerEarningsSerializer,
)
from settlement.services import (
    DisputeService,
    OrderService,
    PayoutService,
    PolicyService,
    ReconciliationService,
)
from settlement.workers import process_due_payouts, release_due_escrows

logger = logging.getLogger(__name__)


class SettlementAPIView(APIView):
    """
    Base view mapping application errors to JSON responses.

    Every BaseApplicationError renders as ``to_dict()`` with the error's
    ``http_status`` (400 when it has none).
    """

    permission_classes = [IsAuthenticated]

    def handle_exception(self, exc):
        if isinstance(exc, BaseApplicationError):
            http_status = getattr(exc, "http_status", status.HTTP_400_BAD_REQUEST)
            log = logger.warning if http_status < 500 else logger.error
            log(
                "Settlement request failed",
                extra={
                    "error_code": exc.error_code,
                    "path": self.request.path,
                    "user_id": getattr(self.request.user, "pk", None),
                },
            )
            return Response(exc.to_dict(), status=http_status)
        return super().handle_exception(exc)


# =============================================================================
# Orders
# =============================================================================


class MarkSentView(SettlementAPIView):
    """
    POST /api/v1/settlement/orders/{id}/mark-sent/

    Request body:
        {"photo_url": "https://...", "expected_version": 3}
    """

    @extend_schema(request=OrderActionSerializer, responses=OrderSerializer, tags=["Orders"])
    def post(self, request, order_id):
        serializer = OrderActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.mark_order_as_sent(
            order_id,
            actor=request.user,
            photo_url=serializer.validated_data.get("photo_url") or None,
            expected_version=serializer.validated_data.get("expected_version"),
        )
        return Response(OrderSerializer(order).data)


class MarkReceivedView(SettlementAPIView):
    """POST /api/v1/settlement/orders/{id}/mark-received/"""

    @extend_schema(request=OrderActionSerializer, responses=OrderSerializer, tags=["Orders"])
    def post(self, request, order_id):
        serializer = OrderActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.mark_order_as_received(
            order_id,
            actor=request.user,
            photo_url=serializer.validated_data.get("photo_url") or None,
            expected_version=serializer.validated_data.get("expected_version"),
        )
        return Response(OrderSerializer(order).data)


class CancelOrderView(SettlementAPIView):
    """POST /api/v1/settlement/orders/{id}/cancel/"""

    @extend_schema(request=CancelOrderSerializer, responses=OrderSerializer, tags=["Orders"])
    def post(self, request, order_id):
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.cancel_order(
            order_id,
            actor=request.user,
            reason=serializer.validated_data["reason"],
            expected_version=serializer.validated_data.get("expected_version"),
        )
        return Response(OrderSerializer(order).data)


# =============================================================================
# Disputes
# =============================================================================


class OpenDisputeView(SettlementAPIView):
    """
    POST /api/v1/settlement/orders/{id}/disputes/

    Request body:
        {"dispute_type": "damaged", "description": "...", "photos": ["https://..."]}
    """

    @extend_schema(request=OpenDisputeSerializer, responses=DisputeSerializer, tags=["Disputes"])
    def post(self, request, order_id):
        serializer = OpenDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        dispute = DisputeService.open_dispute(
            order_id,
            actor=request.user,
            dispute_type=data["dispute_type"],
            description=data["description"],
            photos=data["photos"],
            expected_version=data.get("expected_version"),
        )
        return Response(DisputeSerializer(dispute).data, status=status.HTTP_201_CREATED)


class ResolveDisputeView(SettlementAPIView):
    """
    POST /api/v1/settlement/orders/{id}/disputes/resolve/ (admin)

    Request body:
        {"resolution": "partial_refund", "refund_amount": "40000.00", "notes": "..."}
    """

    @extend_schema(request=ResolveDisputeSerializer, responses=OrderSerializer, tags=["Disputes"])
    def post(self, request, order_id):
        serializer = ResolveDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        order = DisputeService.resolve_dispute(
            order_id,
            admin=request.user,
            resolution=data["resolution"],
            refund_amount=data.get("refund_amount"),
            notes=data["notes"],
        )
        return Response(OrderSerializer(order).data)


# =============================================================================
# Payouts
# =============================================================================


class PayoutBalanceView(SettlementAPIView):
    """GET /api/v1/settlement/payouts/balance/"""

    @extend_schema(responses=SellerEarningsSerializer, tags=["Payouts"])
    def get(self, request):
        earnings = PayoutService.get_seller_earnings(request.user)
        return Response(SellerEarningsSerializer(earnings).data)


class PayoutRequestView(SettlementAPIView):
    """
    POST /api/v1/settlement/payouts/

    Request body:
        {"amount": "50000.00"}
    """

    @extend_schema(request=PayoutRequestSerializer, responses=PayoutSerializer, tags=["Payouts"])
    def post(self, request):
        serializer = PayoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payout = PayoutService.request_payout(
            request.user, serializer.validated_data["amount"]
        )
        return Response(PayoutSerializer(payout).data, status=status.HTTP_201_CREATED)


class ProcessPayoutView(SettlementAPIView):
    """POST /api/v1/settlement/payouts/{id}/process/ (admin)"""

    @extend_schema(request=None, responses=PayoutSerializer, tags=["Payouts"])
    def post(self, request, payout_id):
        payout = PayoutService.process_payout(payout_id, actor=request.user)
        return Response(PayoutSerializer(payout).data)


class CancelPayoutView(SettlementAPIView):
    """POST /api/v1/settlement/payouts/{id}/cancel/"""

    @extend_schema(request=None, responses=PayoutSerializer, tags=["Payouts"])
    def post(self, request, payout_id):
        payout = PayoutService.cancel_payout(payout_id, seller=request.user)
        return Response(PayoutSerializer(payout).data)


class VerifyBankAccountView(SettlementAPIView):
    """
    POST /api/v1/settlement/payouts/destination/verify/

    Returns:
        {"account_number": "...", "account_name": "...", "bank_id": 1}
    """

    @extend_schema(request=BankAccountSerializer, tags=["Payouts"])
    def post(self, request):
        serializer = BankAccountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        account = PayoutService.verify_bank_account(
            serializer.validated_data["account_number"],
            serializer.validated_data["bank_code"],
        )
        return Response(
            {
                "account_number": account.account_number,
                "account_name": account.account_name,
                "bank_id": account.bank_id,
            }
        )


class PayoutDestinationView(SettlementAPIView):
    """PUT /api/v1/settlement/payouts/destination/"""

    @extend_schema(
        request=PayoutDestinationWriteSerializer,
        responses=PayoutDestinationSerializer,
        tags=["Payouts"],
    )
    def put(self, request):
        serializer = PayoutDestinationWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        destination = PayoutService.save_payout_destination(
            request.user, **serializer.validated_data
        )
        return Response(PayoutDestinationSerializer(destination).data)


# =============================================================================
# Policy
# =============================================================================


class CommissionPolicyView(SettlementAPIView):
    """GET / PATCH (admin) /api/v1/settlement/policy/"""

    @extend_schema(responses=CommissionPolicySerializer, tags=["Policy"])
    def get(self, request):
        return Response(CommissionPolicySerializer(PolicyService.get_policy()).data)

    @extend_schema(
        request=PolicyUpdateSerializer,
        responses=CommissionPolicySerializer,
        tags=["Policy"],
    )
    def patch(self, request):
        serializer = PolicyUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        policy = PolicyService.update_policy(request.user, **serializer.validated_data)
        return Response(CommissionPolicySerializer(policy).data)


# =============================================================================
# Cron Triggers
# =============================================================================

CRON_JOBS = {
    "auto-release-escrow": lambda: release_due_escrows(),
    "process-payouts": lambda: process_due_payouts(),
    "reconcile-payments": lambda: ReconciliationService.reconcile_payments(),
}


def _cron_secret_matches(request: HttpRequest) -> bool:
    expected = settings.CRON_SECRET
    if not expected:
        # Only a local DEBUG server may run sweeps without a secret
        logger.warning("CRON_SECRET is not set", extra={"debug": settings.DEBUG})
        return settings.DEBUG
    provided = request.GET.get("secret") or request.headers.get("X-Cron-Secret") or ""
    return hmac.compare_digest(provided, expected)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def run_cron_job(request: HttpRequest, job: str) -> JsonResponse:
    """
    Run a scheduled sweep synchronously for an external scheduler.

    GET|POST /api/v1/settlement/cron/{job}/?secret=...

    Returns:
        JsonResponse with the job's summary, 401 on a bad secret, 404 for
        an unknown job
    """
    if not _cron_secret_matches(request):
        logger.warning("Cron trigger with invalid secret", extra={"job": job})
        return JsonResponse({"error": "Unauthorized"}, status=401)

    runner = CRON_JOBS.get(job)
    if runner is None:
        return JsonResponse({"error": f"Unknown job '{job}'"}, status=404)

    logger.info("Running cron job", extra={"job": job})
    result = runner()
    return JsonResponse({"success": True, "job": job, "result": result})
