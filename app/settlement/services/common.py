"""
Helpers shared by the settlement services.

Usage:
    from settlement.services.common import fsm_guard, require_party

    require_party(actor, order.seller_id, "mark this order as sent")
    with fsm_guard(order, "mark_sent"):
        order.mark_sent(photo_url=photo_url)
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, timedelta
from typing import TYPE_CHECKING

from django_fsm import TransitionNotAllowed

from settlement.exceptions import InvalidTransition, Unauthorized

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

    from django.db import models


def is_admin(user: Any) -> bool:
    """Admins are staff or superusers."""
    return bool(
        user is not None
        and (getattr(user, "is_staff", False) or getattr(user, "is_superuser", False))
    )


def require_admin(actor: Any, action: str) -> None:
    """
    Raises:
        Unauthorized: If the actor is not an admin
    """
    if not is_admin(actor):
        raise Unauthorized(
            f"Only an admin can {action}",
            details={"actor_id": getattr(actor, "pk", None)},
        )


def require_party(actor: Any, *party_ids: Any, action: str) -> None:
    """
    Require the actor to be one of ``party_ids`` or an admin.

    Raises:
        Unauthorized: If the actor is neither
    """
    if actor is not None and actor.pk in party_ids:
        return
    if is_admin(actor):
        return
    raise Unauthorized(
        f"You are not allowed to {action}",
        details={"actor_id": getattr(actor, "pk", None)},
    )


def actor_label(actor: Any) -> str:
    """Identifier written to ``created_by`` on ledger entries."""
    if actor is None:
        return "system"
    return f"user:{actor.pk}"


@contextmanager
def fsm_guard(instance: models.Model, action: str) -> Generator[None, None, None]:
    """
    Translate django-fsm's TransitionNotAllowed into InvalidTransition.
    """
    try:
        yield
    except TransitionNotAllowed as e:
        raise InvalidTransition(
            f"Cannot {action} {instance.__class__.__name__.lower()} in its current state",
            details={
                "id": str(instance.pk),
                "action": action,
                "current_status": getattr(instance, "status", None),
            },
        ) from e


def add_business_days(start: date, days: int) -> date:
    """Move ``days`` working days forward, skipping Saturdays and Sundays."""
    current = start
    remaining = days
    while remaining > 0:
        current += timedelta(days=1)
        if current.weekday() < 5:
            remaining -= 1
    return current
