"""
Account Directory

Owns the set of accounts, keyed by id, and one asyncio.Lock per account.

Accounts are immutable models: `update` swaps in the next version
produced by a mutator. Anything that reads an account, decides on a new
version and writes it back must hold that account's lock, which
`lock_pair` hands out in ascending id order so two transfers over the
same pair of accounts in opposite directions cannot deadlock.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Iterable, Optional

import structlog

from payments_ledger.errors import AccountNotFoundError
from payments_ledger.models.account import Account


logger = structlog.get_logger(__name__)


class AccountDirectory:
    """In-memory account directory."""

    def __init__(self, accounts: Optional[Iterable[Account]] = None):
        self._accounts: dict[int, Account] = {}
        self._locks: dict[int, asyncio.Lock] = {}
        for account in accounts or ():
            self.upsert(account)

    def __len__(self) -> int:
        return len(self._accounts)

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._accounts

    def find(self, account_id: int) -> Optional[Account]:
        """The account with this id, or None."""
        return self._accounts.get(account_id)

    def get(self, account_id: int) -> Account:
        """
        The account with this id.

        Raises:
            AccountNotFoundError: no such account
        """
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def all(self) -> list[Account]:
        """Every account, sorted by id."""
        return [self._accounts[key] for key in sorted(self._accounts)]

    def upsert(self, account: Account) -> None:
        """Insert or replace an account. A repeated id replaces the earlier one."""
        if account.id in self._accounts:
            logger.debug("account_replaced", account_id=account.id)
        self._accounts[account.id] = account
        self._locks.setdefault(account.id, asyncio.Lock())

    def update(self, account_id: int, mutator: Callable[[Account], Account]) -> Account:
        """
        Replace an account with `mutator(current)` and return the new version.

        The caller must hold the account's lock when the mutation depends
        on state read earlier.

        Raises:
            AccountNotFoundError: no such account
            ValueError: the mutator changed the account id
        """
        current = self.get(account_id)
        updated = mutator(current)
        if updated.id != account_id:
            raise ValueError(
                f"Mutator changed account id from {account_id} to {updated.id}"
            )
        self._accounts[account_id] = updated
        return updated

    def lock_for(self, account_id: int) -> asyncio.Lock:
        """
        Raises:
            AccountNotFoundError: no such account
        """
        try:
            return self._locks[account_id]
        except KeyError:
            raise AccountNotFoundError(account_id)

    @asynccontextmanager
    async def locked(self, *account_ids: int) -> AsyncIterator[None]:
        """
        Hold the locks of the given accounts, acquired in ascending id order.

        Duplicate ids take a single lock.
        """
        locks = [self.lock_for(account_id) for account_id in sorted(set(account_ids))]

        acquired: list[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def lock_pair(self, first_id: int, second_id: int):
        """Both accounts of a transfer; see `locked`."""
        return self.locked(first_id, second_id)

    def lock_all(self):
        """Every account currently in the directory; see `locked`."""
        return self.locked(*self._accounts)
