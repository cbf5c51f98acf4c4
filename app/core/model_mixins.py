"""
Mixins combined with BaseModel.

    class Payout(UUIDPrimaryKeyMixin, BaseModel):
        ...

List mixins before BaseModel so their fields and Meta win.
"""

from __future__ import annotations

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Random UUID primary key.

    Order and payout ids end up in URLs, Paystack metadata and ledger
    idempotency keys, so they must not be sequential.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Meta:
        abstract = True
