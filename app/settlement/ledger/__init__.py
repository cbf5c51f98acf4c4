"""
Append-only settlement ledger.

Every credit to a seller (sale) or customer (refund) and every payout
debit is one immutable LedgerEntry. Writes go through LedgerService,
which makes them idempotent per ``idempotency_key`` and atomic as a
batch.

Modules:
    models: LedgerEntry, LedgerEntryKind
    services: LedgerService
    types: money helpers, SettlementSplit, RecordEntryParams
"""
