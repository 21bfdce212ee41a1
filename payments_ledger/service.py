"""
Payments Service

The single object a UI or API layer talks to. It owns the account
directory, the record store, the authenticator and the ledger engine,
and exposes them as explicit queries and commands:

- load / refresh      bring the in-memory state in line with storage
- login / authenticate
- transfer            always from the logged-in account
- account / history / records / verify_balances

Consumers learn about new transfers through `subscribe` (push) or the
in-memory notifier's inboxes (poll); there is no shared mutable state.
"""

import asyncio
from decimal import Decimal
from typing import Any, Callable, Optional

import structlog

from payments_ledger.audit import AuditLogger
from payments_ledger.auth import Authenticator
from payments_ledger.config import LedgerSettings, get_settings
from payments_ledger.errors import AuthenticationFailedError, PersistenceUnavailableError
from payments_ledger.ledger import (
    AccountDirectory,
    LedgerEngine,
    TransactionRecordStore,
    TransferListener,
    seed_accounts,
)
from payments_ledger.models.account import Account, Transaction, TransactionRecord
from payments_ledger.models.audit import AuditEventBuilder
from payments_ledger.models.transfer import Session, TransferResult
from payments_ledger.services.notifications import (
    InMemoryNotifier,
    LoggingNotifier,
    Notifier,
)
from payments_ledger.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsPersistenceStore,
    InMemoryPersistenceStore,
    PersistenceStore,
    StorageError,
)


logger = structlog.get_logger(__name__)


class PaymentsService:
    """
    Ledger service facade.

    Call `load()` once before use.
    """

    def __init__(
        self,
        store: Optional[PersistenceStore] = None,
        notifier: Optional[Notifier] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._settings = settings or get_settings().ledger
        self._store = store
        self._notifier = notifier
        self._audit_logger = audit_logger or AuditLogger()

        self._directory = AccountDirectory()
        self._records = TransactionRecordStore()
        self._authenticator = Authenticator(
            self._directory,
            audit_logger=self._audit_logger,
            iterations=self._settings.password_hash_iterations,
        )
        self._engine = LedgerEngine(
            self._directory,
            self._records,
            store=store,
            notifier=notifier,
            audit_logger=self._audit_logger,
            settings=self._settings,
        )

    @property
    def directory(self) -> AccountDirectory:
        return self._directory

    @property
    def engine(self) -> LedgerEngine:
        return self._engine

    @property
    def notifier(self) -> Optional[Notifier]:
        return self._notifier

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _fetch(self, operation: str, func: Callable) -> Any:
        try:
            return await asyncio.wait_for(
                self._engine.call_with_retry(func),
                timeout=self._settings.transfer_timeout_seconds,
            )
        except (asyncio.TimeoutError, StorageError) as e:
            reason = str(e) or "timed out"
            await self._audit_logger.log_persistence_failed(
                operation=operation,
                error_message=reason,
            )
            raise PersistenceUnavailableError(operation, reason) from e

    async def load(self) -> None:
        """
        Populate the directory and the record store.

        Seeds the demo accounts when storage is empty (or absent) and
        `seed_when_empty` is set, saving them back to storage.

        Raises:
            PersistenceUnavailableError: storage could not be read or seeded
        """
        if self._store is None:
            accounts = []
        else:
            accounts = await self._fetch("fetch_accounts", self._store.fetch_accounts)

        if not accounts and self._settings.seed_when_empty:
            accounts = seed_accounts(self._settings.password_hash_iterations)
            if self._store is not None:
                for account in accounts:
                    try:
                        await self._engine.call_with_retry(self._store.save_account, account)
                    except StorageError as e:
                        raise PersistenceUnavailableError("seed_accounts", str(e)) from e
            await self._audit_logger.log(
                AuditEventBuilder.accounts_seeded([account.id for account in accounts])
            )

        async with self._directory.lock_all():
            for account in accounts:
                self._directory.upsert(account)

        if self._store is not None:
            records = await self._fetch(
                "fetch_transaction_records", self._store.fetch_transaction_records
            )
            self._records.merge(records)

        logger.info(
            "ledger_loaded",
            accounts=len(self._directory),
            records=len(self._records),
        )

    async def refresh(self) -> None:
        """
        Re-read accounts and records from storage.

        Holds every account lock for both reads, so a refresh never sees
        a transfer whose record is stored but not yet committed.

        Raises:
            PersistenceUnavailableError: storage could not be read
        """
        if self._store is None:
            return

        async with self._directory.lock_all():
            accounts = await self._fetch("fetch_accounts", self._store.fetch_accounts)
            for account in accounts:
                self._directory.upsert(account)
            records = await self._fetch(
                "fetch_transaction_records", self._store.fetch_transaction_records
            )
            added = self._records.merge(records)

        await self._audit_logger.log(
            AuditEventBuilder.accounts_refreshed(len(accounts), added)
        )

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def authenticate(self, account_id: int, password: str) -> bool:
        """True iff the id exists and the password matches."""
        return await self._authenticator.authenticate(account_id, password)

    async def login(self, account_id: int, password: str) -> Session:
        """
        Raises:
            AuthenticationFailedError: unknown id or wrong password
        """
        return await self._authenticator.login(account_id, password)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def transfer(self, session: Session, receiver_id: int, amount: Any) -> TransferResult:
        """
        Transfer from the session's account to `receiver_id`.

        Raises:
            AuthenticationFailedError: the session's account no longer exists
            InvalidAmountError, SelfTransferError, AccountNotFoundError,
            PersistenceUnavailableError: see LedgerEngine.transfer
        """
        if session.account_id not in self._directory:
            raise AuthenticationFailedError()
        return await self._engine.transfer(session.account_id, receiver_id, amount)

    def subscribe(self, listener: TransferListener) -> Callable[[], None]:
        """Register a listener for committed transfers; returns an unsubscribe function."""
        return self._engine.subscribe(listener)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def account(self, account_id: int) -> Account:
        """
        Raises:
            AccountNotFoundError: no such account
        """
        return self._directory.get(account_id)

    def accounts(self) -> list[Account]:
        return self._directory.all()

    def history(self, account_id: int) -> tuple[Transaction, ...]:
        """
        An account's entries, oldest first.

        Raises:
            AccountNotFoundError: no such account
        """
        return self._directory.get(account_id).transactions

    def records(self) -> tuple[TransactionRecord, ...]:
        return self._records.all()

    def balance(self, account_id: int) -> Decimal:
        return self._directory.get(account_id).balance

    def verify_balances(self) -> list[int]:
        """Ids of accounts whose cached balance differs from their history total."""
        return [
            account.id
            for account in self._directory.all()
            if account.balance != account.recomputed_balance()
        ]


def create_service(
    use_storage: bool = True,
    settings: Optional[LedgerSettings] = None,
) -> PaymentsService:
    """
    Factory function to wire the service.

    Args:
        use_storage: Whether to use Google Sheets storage.
                     Falls back to in-memory storage when Google Sheets
                     is not configured, or when False.
        settings: Ledger settings; read from the environment when None.

    Returns:
        An unloaded PaymentsService; call `await service.load()`.
    """
    store: PersistenceStore
    notifier: Notifier

    if use_storage:
        try:
            store = GoogleSheetsPersistenceStore(GoogleSheetsClient())
            notifier = LoggingNotifier()
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            store = InMemoryPersistenceStore()
            notifier = InMemoryNotifier()
    else:
        store = InMemoryPersistenceStore()
        notifier = InMemoryNotifier()

    return PaymentsService(
        store=store,
        notifier=notifier,
        settings=settings,
    )
