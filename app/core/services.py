"""
Service layer base classes.

Services own the settlement rules: views translate HTTP into service
calls, models own their fields and FSM transitions, and services decide
whether an operation is allowed and write the rows.

Two ways for a service to report an outcome:
    - Raise a core.exceptions subclass when a guard is violated. Views
      render it with ``to_dict()``.
    - Return a ServiceResult when a "failure" is an expected branch the
      caller handles itself. Webhook handlers use this for references
      that match no order or payout.

Usage:
    from core.services import BaseService, ServiceResult

    class PaymentService(BaseService):
        @classmethod
        def confirm_charge(cls, reference, amount) -> ServiceResult:
            with cls.atomic():
                order = Order.objects.select_for_update().filter(
                    payment_reference=reference
                ).first()
                if order is None:
                    return ServiceResult.failure("No order", error_code="ORDER_NOT_FOUND")
                ...
            return ServiceResult.ok({"order_id": str(order.id)})
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Outcome of an operation whose failure is not exceptional.

    Attributes:
        success: Whether the operation succeeded
        data: Payload on success
        error: Message on failure
        error_code: Machine-readable code on failure
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, data: T = None) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        return cls(success=False, error=error, error_code=error_code)

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for settlement services.

    Services are stateless: every method is a classmethod. Network calls
    to Paystack must stay outside ``atomic()`` blocks so a slow provider
    never holds row locks.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named ``<module>.<ServiceClass>``."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        ``transaction.atomic()`` under a name that reads well in services.

        Nested calls become savepoints.
        """
        with transaction.atomic():
            yield
