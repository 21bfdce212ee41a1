"""Ledger core: account directory, record store, transfer engine, seed data."""

from payments_ledger.ledger.directory import AccountDirectory
from payments_ledger.ledger.records import TransactionRecordStore
from payments_ledger.ledger.engine import LedgerEngine, TransferListener
from payments_ledger.ledger.seed import SEED_ACCOUNTS, seed_accounts

__all__ = [
    "AccountDirectory",
    "LedgerEngine",
    "SEED_ACCOUNTS",
    "TransactionRecordStore",
    "TransferListener",
    "seed_accounts",
]
