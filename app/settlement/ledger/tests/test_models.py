"""
Tests for LedgerEntry immutability and constraints.
"""

from decimal import Decimal

import pytest
from django.db import IntegrityError

from settlement.exceptions import LedgerImmutableError
from settlement.ledger.models import LedgerEntry, LedgerEntryKind
from settlement.tests.factories import LedgerEntryFactory


class TestLedgerEntryImmutability:
    def test_save_existing_entry_raises(self, db):
        entry = LedgerEntryFactory()
        entry.amount = Decimal("1.00")

        with pytest.raises(LedgerImmutableError):
            entry.save()

    def test_delete_raises(self, db):
        entry = LedgerEntryFactory()

        with pytest.raises(LedgerImmutableError):
            entry.delete()
        assert LedgerEntry.objects.filter(pk=entry.pk).exists()

    def test_queryset_update_raises(self, db):
        LedgerEntryFactory()

        with pytest.raises(LedgerImmutableError):
            LedgerEntry.objects.all().update(amount=Decimal("0.00"))

    def test_queryset_delete_raises(self, db):
        LedgerEntryFactory()

        with pytest.raises(LedgerImmutableError):
            LedgerEntry.objects.all().delete()


class TestLedgerEntryConstraints:
    def test_idempotency_key_unique(self, db):
        LedgerEntryFactory(idempotency_key="sale:dup")

        with pytest.raises(IntegrityError):
            LedgerEntryFactory(idempotency_key="sale:dup")

    def test_entry_requires_a_party(self, db):
        with pytest.raises(IntegrityError):
            LedgerEntry.objects.create(
                kind=LedgerEntryKind.SALE,
                amount=Decimal("10.00"),
                idempotency_key="sale:nobody",
            )

    def test_str(self, db):
        entry = LedgerEntryFactory(amount=Decimal("95000.00"))

        assert str(entry) == "Sale: 95000.00 NGN"
