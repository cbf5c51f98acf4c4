"""
Tests for shared infrastructure: error rendering, ServiceResult and the
health probe.
"""

from unittest.mock import patch

from django.db import DatabaseError
from django.urls import reverse

from core.exceptions import BaseApplicationError, ExternalServiceError, NotFoundError
from core.services import ServiceResult


class TestBaseApplicationError:
    def test_to_dict_omits_empty_details(self):
        error = NotFoundError("Order 1 not found", error_code="ORDER_NOT_FOUND")

        assert error.to_dict() == {
            "error": "Order 1 not found",
            "error_code": "ORDER_NOT_FOUND",
        }

    def test_default_code_and_details(self):
        error = BaseApplicationError("Boom", details={"order_id": "1"})

        assert error.error_code == "APPLICATION_ERROR"
        assert error.to_dict()["details"] == {"order_id": "1"}
        assert str(error) == "[APPLICATION_ERROR] Boom"

    def test_external_error_records_service(self):
        error = ExternalServiceError("Timed out", service_name="paystack")

        assert error.details == {"service": "paystack"}
        assert error.is_retryable is False


class TestServiceResult:
    def test_ok(self):
        result = ServiceResult.ok({"status": "completed"})

        assert result.success is True
        assert bool(result) is True
        assert result.data == {"status": "completed"}

    def test_failure(self):
        result = ServiceResult.failure("No order", error_code="ORDER_NOT_FOUND")

        assert bool(result) is False
        assert result.error_code == "ORDER_NOT_FOUND"
        assert result.data is None


class TestHealthCheck:
    def test_healthy(self, client, db):
        response = client.get(reverse("health_check"))

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "database": "connected",
            "cache": "connected",
        }

    def test_database_down(self, client, db):
        with patch("core.views.connection") as connection:
            connection.cursor.side_effect = DatabaseError("down")
            response = client.get(reverse("health_check"))

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"
