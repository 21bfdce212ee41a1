"""
Abstract Persistence Interface

The ledger keeps its working state in memory and writes every committed
change through this interface. It allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for tests and offline demos
3. Inject failures and delays to exercise retries and timeouts

Implementations raise StorageError on failure. They never swallow
errors; the ledger decides whether to retry.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from payments_ledger.models.account import Account, TransactionRecord


class PersistenceStore(ABC):
    """
    Abstract interface for account and transaction record storage.

    Any storage implementation (Google Sheets, SQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save_account(self, account: Account) -> None:
        """
        Insert or replace an account (keyed by id), history included.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def fetch_accounts(self) -> list[Account]:
        """
        Every stored account.

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def save_transaction_record(self, record: TransactionRecord) -> None:
        """
        Append a transaction record. Records are never modified.

        Saving a record whose id is already stored is a no-op, so a
        retried append cannot duplicate history.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def delete_transaction_record(self, record_id: UUID) -> None:
        """
        Remove a record written for a transfer that then failed.

        Only the ledger's compensation path calls this, for a record that
        was never committed. Deleting an unknown id is a no-op.

        Raises:
            StorageError: If the delete fails
        """
        pass

    @abstractmethod
    async def fetch_transaction_records(self) -> list[TransactionRecord]:
        """
        Every stored transaction record, oldest first.

        Raises:
            StorageError: If the read fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
