"""Services package."""

from payments_ledger.services.notifications import (
    InMemoryNotifier,
    LoggingNotifier,
    NotificationError,
    Notifier,
)
from payments_ledger.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsPersistenceStore,
    InMemoryPersistenceStore,
    PersistenceStore,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Notification services
    "InMemoryNotifier",
    "LoggingNotifier",
    "NotificationError",
    "Notifier",
    # Storage services
    "GoogleSheetsClient",
    "GoogleSheetsPersistenceStore",
    "InMemoryPersistenceStore",
    "PersistenceStore",
    "StorageConnectionError",
    "StorageError",
]
