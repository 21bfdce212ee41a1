"""
Ledger Engine

Records a transfer as two linked entries (debit on the sender, credit on
the receiver) plus one record in the global transaction record store.

Flow of one transfer:
1. Validate the amount and the two account ids
2. Lock both accounts (ascending id order)
3. Build the two entries, the record and the next account versions
4. Persist them (retry with backoff, bounded by the transfer timeout)
5. Commit them in memory
6. Unlock, then notify the receiver and the subscribed listeners

Step 4 is the only step that can fail after validation. When it does,
the stored accounts are restored and a written record is removed, on a
best-effort basis, and nothing is committed in memory, so a transfer is
visible completely or not at all. On timeout the write in flight is
cancelled, and a store backed by worker threads finishes that one call
before the cancellation returns; the undo starts only after that.

The sender is whatever id the caller passes; the service layer passes
the id of the authenticated session. Overdrafts are not checked.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union
from uuid import UUID

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from payments_ledger.audit import AuditLogger, create_correlation_id
from payments_ledger.config import LedgerSettings
from payments_ledger.errors import (
    PaymentsError,
    PersistenceUnavailableError,
    SelfTransferError,
    coerce_amount,
)
from payments_ledger.ledger.directory import AccountDirectory
from payments_ledger.ledger.records import TransactionRecordStore
from payments_ledger.models.account import Account, Transaction, TransactionRecord, utcnow
from payments_ledger.models.transfer import TransferResult
from payments_ledger.services.notifications import NotificationError, Notifier
from payments_ledger.services.storage import PersistenceStore, StorageError


logger = structlog.get_logger(__name__)

TransferListener = Callable[[TransferResult], Union[None, Awaitable[None]]]


class LedgerEngine:
    """
    Validates, persists and commits transfers.

    Args:
        directory: accounts to move money between
        records: global transaction record store
        store: persistence collaborator; None keeps everything in memory
        notifier: receives the "New Transaction" alert for the receiver
        audit_logger: structured audit trail
        settings: timeouts and retry policy
    """

    def __init__(
        self,
        directory: AccountDirectory,
        records: TransactionRecordStore,
        store: Optional[PersistenceStore] = None,
        notifier: Optional[Notifier] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._directory = directory
        self._records = records
        self._store = store
        self._notifier = notifier
        self._audit_logger = audit_logger
        self._settings = settings or LedgerSettings()
        self._listeners: list[TransferListener] = []

    def subscribe(self, listener: TransferListener) -> Callable[[], None]:
        """
        Call `listener` with every committed TransferResult.

        Listeners may be plain or async callables. Returns a function
        that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "persistence_retry",
            attempt=retry_state.attempt_number,
            error=str(exc),
        )

    async def call_with_retry(self, func: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        """
        Await `func(*args)`, retrying StorageError with exponential backoff.

        Raises:
            StorageError: the last failure once attempts are exhausted
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.persistence_retry_attempts),
            wait=wait_exponential(
                multiplier=self._settings.retry_wait_multiplier,
                min=self._settings.retry_wait_min_seconds,
                max=self._settings.retry_wait_max_seconds,
            ),
            retry=retry_if_exception_type(StorageError),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                result = await func(*args)
        return result

    async def _persist(
        self,
        sender: Account,
        receiver: Account,
        record: TransactionRecord,
    ) -> None:
        await self.call_with_retry(self._store.save_account, sender)
        await self.call_with_retry(self._store.save_account, receiver)
        await self.call_with_retry(self._store.save_transaction_record, record)

    async def _compensate(
        self,
        accounts: list[Account],
        record: TransactionRecord,
        correlation_id: UUID,
    ) -> None:
        """
        Best-effort undo of a failed persist.

        Writes back the pre-transfer account versions and removes the
        record if it got written. Runs once the failed persist has
        stopped, so nothing it writes can land afterwards.
        """
        for account in accounts:
            try:
                await asyncio.wait_for(
                    self._store.save_account(account),
                    timeout=self._settings.transfer_timeout_seconds,
                )
            except (asyncio.TimeoutError, StorageError) as e:
                logger.error(
                    "transfer_restore_failed",
                    account_id=account.id,
                    correlation_id=str(correlation_id),
                    error=str(e) or type(e).__name__,
                )
        try:
            await asyncio.wait_for(
                self._store.delete_transaction_record(record.id),
                timeout=self._settings.transfer_timeout_seconds,
            )
        except (asyncio.TimeoutError, StorageError) as e:
            logger.error(
                "transfer_record_removal_failed",
                record_id=str(record.id),
                correlation_id=str(correlation_id),
                error=str(e) or type(e).__name__,
            )

    # ------------------------------------------------------------------
    # Transfer
    # ------------------------------------------------------------------

    async def transfer(self, sender_id: int, receiver_id: int, amount: Any) -> TransferResult:
        """
        Move `amount` from `sender_id` to `receiver_id`.

        Raises:
            InvalidAmountError: amount not finite and strictly positive
            SelfTransferError: sender and receiver are the same account
            AccountNotFoundError: sender or receiver does not exist
            PersistenceUnavailableError: storage failed or timed out;
                nothing was committed
        """
        correlation_id = create_correlation_id()

        try:
            value = coerce_amount(amount)
            if sender_id == receiver_id:
                raise SelfTransferError(sender_id)
            self._directory.get(sender_id)
            self._directory.get(receiver_id)
        except PaymentsError as e:
            await self._audit_rejection(sender_id, receiver_id, amount, str(e), correlation_id)
            raise

        async with self._directory.lock_pair(sender_id, receiver_id):
            # Re-read under the lock; earlier reads may be stale
            sender = self._directory.get(sender_id)
            receiver = self._directory.get(receiver_id)

            timestamp = utcnow()
            debit = Transaction(
                sender_id=sender_id,
                receiver_id=receiver_id,
                amount=-value,
                timestamp=timestamp,
            )
            credit = Transaction(
                sender_id=sender_id,
                receiver_id=receiver_id,
                amount=value,
                timestamp=timestamp,
            )
            record = TransactionRecord(
                sender_name=sender.name,
                receiver_name=receiver.name,
                amount=value,
                timestamp=timestamp,
            )
            new_sender = sender.with_entry(debit)
            new_receiver = receiver.with_entry(credit)

            if self._store is not None:
                try:
                    await asyncio.wait_for(
                        self._persist(new_sender, new_receiver, record),
                        timeout=self._settings.transfer_timeout_seconds,
                    )
                except (asyncio.TimeoutError, StorageError) as e:
                    if isinstance(e, asyncio.TimeoutError):
                        reason = f"timed out after {self._settings.transfer_timeout_seconds}s"
                    else:
                        reason = str(e)
                    await self._compensate([sender, receiver], record, correlation_id)
                    if self._audit_logger:
                        await self._audit_logger.log_persistence_failed(
                            operation="transfer",
                            error_message=reason,
                            correlation_id=correlation_id,
                            account_id=sender_id,
                        )
                    await self._audit_rejection(
                        sender_id, receiver_id, value, reason, correlation_id
                    )
                    raise PersistenceUnavailableError("transfer", reason) from e

            # Commit. Nothing below can fail for validated input.
            self._directory.update(sender_id, lambda _: new_sender)
            self._directory.update(receiver_id, lambda _: new_receiver)
            self._records.append(record)

        result = TransferResult(
            debit=debit,
            credit=credit,
            record=record,
            sender=new_sender,
            receiver=new_receiver,
        )
        logger.info("transfer_committed", **result.to_log_dict())
        if self._audit_logger:
            await self._audit_logger.log_transfer_committed(
                sender_id=sender_id,
                receiver_id=receiver_id,
                amount=str(value),
                record_id=record.id,
                correlation_id=correlation_id,
            )

        await self._notify_receiver(result, correlation_id)
        await self._notify_listeners(result)
        return result

    async def _audit_rejection(
        self,
        sender_id: int,
        receiver_id: int,
        amount: Any,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        logger.info(
            "transfer_rejected",
            sender_id=sender_id,
            receiver_id=receiver_id,
            reason=reason,
        )
        if self._audit_logger:
            await self._audit_logger.log_transfer_rejected(
                sender_id=sender_id,
                receiver_id=receiver_id,
                amount=str(amount),
                reason=reason,
                correlation_id=correlation_id,
            )

    async def _notify_receiver(self, result: TransferResult, correlation_id: UUID) -> None:
        if self._notifier is None:
            return
        body = f"{result.record.amount} received from {result.sender.name}"
        try:
            await self._notifier.notify(
                result.receiver.id,
                self._settings.notification_title,
                body,
            )
        except NotificationError as e:
            logger.warning(
                "notification_failed",
                account_id=result.receiver.id,
                error=str(e),
            )
            await self._audit_notification_failed(result, str(e), correlation_id)
        except Exception as e:
            # Notifier bug; the transfer stays committed all the same
            logger.exception(
                "notifier_crashed",
                account_id=result.receiver.id,
                error=str(e),
            )
            await self._audit_notification_failed(result, str(e), correlation_id)

    async def _audit_notification_failed(
        self,
        result: TransferResult,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_notification_failed(
                account_id=result.receiver.id,
                error_message=reason,
                correlation_id=correlation_id,
            )

    async def _notify_listeners(self, result: TransferResult) -> None:
        for listener in list(self._listeners):
            try:
                outcome = listener(result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.warning(
                    "transfer_listener_failed",
                    listener=getattr(listener, "__name__", repr(listener)),
                    error=str(e),
                )
