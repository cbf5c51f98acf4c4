"""
Tests for the Paystack adapter.

Tests cover:
- Request construction (URL, bearer token, kobo amounts, timeout)
- Result parsing for each operation
- Error translation: timeouts, connection errors, 5xx/429, 4xx, status false
- Webhook signature computation and verification
"""

import hashlib
import hmac
from unittest.mock import MagicMock, patch

import pytest
import requests
from django.test import override_settings

from settlement.adapters import (
    BankAccountResult,
    PaystackAdapter,
    TransactionVerification,
    TransferRecipientResult,
    TransferResult,
)
from settlement.exceptions import InvalidSignature, ProviderRejected, ProviderUnavailable


def paystack_response(status_code=200, body=None, reason="OK"):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.reason = reason
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body if body is not None else {}
    return response


@pytest.fixture
def mock_request():
    with patch("settlement.adapters.paystack_adapter.requests.request") as mocked:
        yield mocked


# =============================================================================
# Operations
# =============================================================================


class TestCreateTransferRecipient:
    def test_returns_recipient_code(self, mock_request):
        mock_request.return_value = paystack_response(
            body={"status": True, "data": {"recipient_code": "RCP_abc", "active": True}}
        )

        result = PaystackAdapter.create_transfer_recipient(
            name="ADA OBI", account_number="0123456789", bank_code="044"
        )

        assert isinstance(result, TransferRecipientResult)
        assert result.recipient_code == "RCP_abc"

    def test_request_shape(self, mock_request):
        mock_request.return_value = paystack_response(
            body={"status": True, "data": {"recipient_code": "RCP_abc"}}
        )

        PaystackAdapter.create_transfer_recipient("ADA OBI", "0123456789", "044")

        args, kwargs = mock_request.call_args
        assert args == ("POST", "https://api.paystack.co/transferrecipient")
        assert kwargs["headers"]["Authorization"] == "Bearer sk_test_settlement"
        assert kwargs["json"] == {
            "type": "nuban",
            "name": "ADA OBI",
            "account_number": "0123456789",
            "bank_code": "044",
            "currency": "NGN",
        }
        assert kwargs["timeout"] == 10

    def test_missing_recipient_code(self, mock_request):
        mock_request.return_value = paystack_response(body={"status": True, "data": {}})

        with pytest.raises(ProviderRejected):
            PaystackAdapter.create_transfer_recipient("ADA OBI", "0123456789", "044")


class TestInitiateTransfer:
    def test_returns_transfer(self, mock_request):
        mock_request.return_value = paystack_response(
            body={
                "status": True,
                "data": {
                    "transfer_code": "TRF_abc",
                    "reference": "PO-123",
                    "status": "pending",
                    "amount": 5_000_000,
                },
            }
        )

        result = PaystackAdapter.initiate_transfer(
            amount_kobo=5_000_000,
            recipient_code="RCP_abc",
            reference="PO-123",
            reason="Payout",
        )

        assert isinstance(result, TransferResult)
        assert result.transfer_code == "TRF_abc"
        assert result.status == "pending"
        assert result.amount_kobo == 5_000_000
        assert mock_request.call_args.kwargs["json"] == {
            "source": "balance",
            "amount": 5_000_000,
            "recipient": "RCP_abc",
            "reference": "PO-123",
            "reason": "Payout",
        }

    def test_rejects_non_positive_amount(self, mock_request):
        with pytest.raises(ValueError):
            PaystackAdapter.initiate_transfer(0, "RCP_abc", "PO-123", "Payout")

        mock_request.assert_not_called()


class TestResolveBankAccount:
    def test_returns_account_name(self, mock_request):
        mock_request.return_value = paystack_response(
            body={
                "status": True,
                "data": {"account_number": "0123456789", "account_name": "ADA OBI", "bank_id": 1},
            }
        )

        result = PaystackAdapter.resolve_bank_account("0123456789", "044")

        assert result == BankAccountResult("0123456789", "ADA OBI", 1)
        args, kwargs = mock_request.call_args
        assert args == ("GET", "https://api.paystack.co/bank/resolve")
        assert kwargs["params"] == {"account_number": "0123456789", "bank_code": "044"}


class TestVerifyTransaction:
    def test_parses_verification(self, mock_request):
        mock_request.return_value = paystack_response(
            body={
                "status": True,
                "data": {
                    "reference": "T123",
                    "status": "success",
                    "amount": 10_000_000,
                    "gateway_response": "Approved",
                    "customer": {"customer_code": "CUS_abc"},
                },
            }
        )

        result = PaystackAdapter.verify_transaction("T123")

        assert isinstance(result, TransactionVerification)
        assert result.is_successful
        assert result.amount_kobo == 10_000_000
        assert result.customer_code == "CUS_abc"
        assert mock_request.call_args.args[1] == "https://api.paystack.co/transaction/verify/T123"

    def test_abandoned_is_not_successful(self, mock_request):
        mock_request.return_value = paystack_response(
            body={"status": True, "data": {"reference": "T123", "status": "abandoned"}}
        )

        result = PaystackAdapter.verify_transaction("T123")

        assert not result.is_successful
        assert result.amount_kobo == 0

    @override_settings(PAYSTACK_BASE_URL="https://paystack.test/")
    def test_base_url_from_settings(self, mock_request):
        mock_request.return_value = paystack_response(
            body={"status": True, "data": {"status": "success", "amount": 100}}
        )

        PaystackAdapter.verify_transaction("T1")

        assert mock_request.call_args.args[1] == "https://paystack.test/transaction/verify/T1"


# =============================================================================
# Error Translation
# =============================================================================


class TestErrorTranslation:
    def test_timeout(self, mock_request):
        mock_request.side_effect = requests.Timeout("read timed out")

        with pytest.raises(ProviderUnavailable) as exc_info:
            PaystackAdapter.verify_transaction("T1")

        assert exc_info.value.error_code == "PROVIDER_TIMEOUT"
        assert exc_info.value.is_retryable

    def test_connection_error(self, mock_request):
        mock_request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(ProviderUnavailable):
            PaystackAdapter.verify_transaction("T1")

    @pytest.mark.parametrize("status_code", [500, 502, 503, 429])
    def test_server_errors_are_transient(self, mock_request, status_code):
        mock_request.return_value = paystack_response(
            status_code=status_code, body={"status": False, "message": "Try again"}
        )

        with pytest.raises(ProviderUnavailable) as exc_info:
            PaystackAdapter.initiate_transfer(100, "RCP_abc", "PO-1", "Payout")

        assert exc_info.value.status_code == status_code

    def test_client_error_is_rejection(self, mock_request):
        mock_request.return_value = paystack_response(
            status_code=400,
            body={"status": False, "message": "Your balance is not enough to fulfil this request"},
            reason="Bad Request",
        )

        with pytest.raises(ProviderRejected) as exc_info:
            PaystackAdapter.initiate_transfer(100, "RCP_abc", "PO-1", "Payout")

        assert exc_info.value.provider_message == (
            "Your balance is not enough to fulfil this request"
        )
        assert not exc_info.value.is_retryable

    def test_status_false_on_200(self, mock_request):
        mock_request.return_value = paystack_response(
            body={"status": False, "message": "Could not resolve account name"}
        )

        with pytest.raises(ProviderRejected):
            PaystackAdapter.resolve_bank_account("0123456789", "044")

    def test_unreadable_body(self, mock_request):
        mock_request.return_value = paystack_response(body=ValueError("not json"))

        with pytest.raises(ProviderRejected):
            PaystackAdapter.resolve_bank_account("0123456789", "044")


# =============================================================================
# Webhook Signatures
# =============================================================================


class TestWebhookSignature:
    body = b'{"event":"charge.success","data":{"id":1}}'

    def test_signature_is_hmac_sha512_hex(self):
        signature = PaystackAdapter.compute_signature(self.body)

        assert len(signature) == 128
        assert signature == PaystackAdapter.compute_signature(self.body, "sk_test_settlement")

    def test_valid_signature(self):
        PaystackAdapter.verify_webhook_signature(
            self.body, PaystackAdapter.compute_signature(self.body)
        )

    def test_missing_signature(self):
        with pytest.raises(InvalidSignature):
            PaystackAdapter.verify_webhook_signature(self.body, None)

    def test_wrong_secret(self):
        signature = PaystackAdapter.compute_signature(self.body, "sk_live_other")

        with pytest.raises(InvalidSignature):
            PaystackAdapter.verify_webhook_signature(self.body, signature)

    def test_body_must_match_byte_for_byte(self):
        signature = PaystackAdapter.compute_signature(self.body)

        with pytest.raises(InvalidSignature):
            PaystackAdapter.verify_webhook_signature(self.body + b" ", signature)

    @override_settings(PAYSTACK_SECRET_KEY="")
    def test_unconfigured_secret_rejects_everything(self):
        signature = hmac.new(b"", self.body, hashlib.sha512).hexdigest()

        with pytest.raises(InvalidSignature, match="not configured"):
            PaystackAdapter.verify_webhook_signature(self.body, signature)
