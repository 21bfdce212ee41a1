"""In-memory persistence store."""

from uuid import UUID

from payments_ledger.models.account import Account, TransactionRecord
from payments_ledger.services.storage.interface import PersistenceStore


class InMemoryPersistenceStore(PersistenceStore):
    """
    Dict-backed store for tests and offline demos.

    Behaves like a remote store: it keeps its own copies, so nothing the
    ledger does in memory is visible here until it is saved.
    """

    def __init__(self):
        self._accounts: dict[int, Account] = {}
        self._records: list[TransactionRecord] = []

    async def save_account(self, account: Account) -> None:
        self._accounts[account.id] = account

    async def fetch_accounts(self) -> list[Account]:
        return [self._accounts[key] for key in sorted(self._accounts)]

    async def save_transaction_record(self, record: TransactionRecord) -> None:
        if any(existing.id == record.id for existing in self._records):
            return
        self._records.append(record)

    async def delete_transaction_record(self, record_id: UUID) -> None:
        self._records = [r for r in self._records if r.id != record_id]

    async def fetch_transaction_records(self) -> list[TransactionRecord]:
        return list(self._records)
