"""
Storage Services Package

Provides the abstract persistence interface and its implementations:
an in-memory store and a Google Sheets backed store.
"""

from payments_ledger.services.storage.interface import (
    PersistenceStore,
    StorageConnectionError,
    StorageError,
)
from payments_ledger.services.storage.memory import InMemoryPersistenceStore
from payments_ledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsPersistenceStore,
)

__all__ = [
    # Interface
    "PersistenceStore",
    # Exceptions
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "InMemoryPersistenceStore",
    "GoogleSheetsClient",
    "GoogleSheetsPersistenceStore",
]
