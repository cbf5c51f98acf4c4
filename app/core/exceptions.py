"""
Application error taxonomy.

Services raise these before writing anything; the API layer renders them
with ``to_dict()``. Subclasses set ``default_error_code`` and, where the
HTTP status is fixed, ``http_status``.

Hierarchy:
    BaseApplicationError
    ├── ValidationError        bad input or a policy bound violated
    ├── NotFoundError          a referenced row does not exist
    ├── PermissionDeniedError  the actor is not allowed
    ├── ConflictError          the current state forbids the operation
    └── ExternalServiceError   a provider call failed

Usage:
    from core.exceptions import NotFoundError

    raise NotFoundError(
        f"Payout {payout_id} not found",
        error_code="PAYOUT_NOT_FOUND",
        details={"payout_id": str(payout_id)},
    )

Serializer and authentication failures stay with DRF; these classes are
for business rules.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Error with a message, a stable code and optional context.

    Attributes:
        message: Human-readable description
        error_code: Stable code clients branch on
        details: Identifiers and values that explain the failure
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        JSON body for an error response.

        Example:
            {
                "error": "Insufficient balance. Available: 45000.00",
                "error_code": "INSUFFICIENT_BALANCE",
                "details": {"required": "60000.00", "available": "45000.00"}
            }
        """
        body: dict[str, Any] = {"error": self.message, "error_code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, "
            f"error_code={self.error_code!r}, details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """A value failed a rule that needs the database or the current policy."""

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    default_error_code: str = "NOT_FOUND"


class PermissionDeniedError(BaseApplicationError):
    """The authenticated actor may not perform this operation."""

    default_error_code: str = "PERMISSION_DENIED"


class ConflictError(BaseApplicationError):
    """
    The row is not in a state that allows the operation.

    Covers illegal transitions, stale versions and lock contention; all
    render as HTTP 409.
    """

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    A call to a third-party service failed.

    Attributes:
        service_name: Provider that failed (added to ``details``)
        is_retryable: True when the same call may succeed later
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        service_name: str | None = None,
    ):
        details = details or {}
        if service_name:
            details["service"] = service_name
        super().__init__(message, error_code, details)
        self.service_name = service_name


__all__ = [
    "BaseApplicationError",
    "ConflictError",
    "ExternalServiceError",
    "NotFoundError",
    "PermissionDeniedError",
    "ValidationError",
]
