"""Tests for the account directory and its per-account locks."""

import asyncio
from decimal import Decimal

import pytest

from payments_ledger.errors import AccountNotFoundError
from payments_ledger.ledger import AccountDirectory
from payments_ledger.models import Account


class TestLookup:

    def test_find_existing_account(self, directory):
        account = directory.find(1234)
        assert account is not None
        assert account.name == "Mariana Silva"

    def test_find_unknown_account_returns_none(self, directory):
        assert directory.find(99999) is None

    def test_get_unknown_account_raises(self, directory):
        with pytest.raises(AccountNotFoundError) as exc_info:
            directory.get(99999)
        assert exc_info.value.account_id == 99999

    def test_all_is_sorted_by_id(self, directory):
        ids = [account.id for account in directory.all()]
        assert ids == [0, 1234, 2345, 3208, 3847, 40800]

    def test_duplicate_ids_last_one_wins(self):
        first = Account.opened(id=7, name="First", initial_balance=Decimal("1"), password_hash="x")
        second = Account.opened(id=7, name="Second", initial_balance=Decimal("2"), password_hash="x")
        directory = AccountDirectory([first, second])
        assert len(directory) == 1
        assert directory.get(7).name == "Second"


class TestUpdate:

    def test_update_replaces_account(self, directory):
        renamed = directory.update(2345, lambda a: a.model_copy(update={"name": "Samuel C."}))
        assert renamed.name == "Samuel C."
        assert directory.get(2345).name == "Samuel C."

    def test_update_unknown_account_raises(self, directory):
        with pytest.raises(AccountNotFoundError):
            directory.update(99999, lambda a: a)

    def test_update_cannot_change_id(self, directory):
        other = directory.get(2345)
        with pytest.raises(ValueError):
            directory.update(1234, lambda _: other)
        assert directory.get(1234).name == "Mariana Silva"


class TestLocks:

    def test_lock_pair_unknown_account_raises(self, directory):
        async def scenario():
            async with directory.lock_pair(1234, 99999):
                pass

        with pytest.raises(AccountNotFoundError):
            asyncio.run(scenario())

    def test_lock_pair_same_id_takes_one_lock(self, directory):
        async def scenario():
            async with directory.lock_pair(1234, 1234):
                return directory.lock_for(1234).locked()

        assert asyncio.run(scenario()) is True
        assert directory.lock_for(1234).locked() is False

    def test_opposite_order_pairs_do_not_deadlock(self, directory):
        order = []

        async def hold(first, second, label):
            async with directory.lock_pair(first, second):
                order.append(f"{label}-in")
                await asyncio.sleep(0.01)
                order.append(f"{label}-out")

        async def scenario():
            await asyncio.wait_for(
                asyncio.gather(hold(1234, 2345, "a"), hold(2345, 1234, "b")),
                timeout=2,
            )

        asyncio.run(scenario())
        # Critical sections never overlap
        assert order in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )

    def test_locks_released_after_error(self, directory):
        async def scenario():
            async with directory.lock_pair(1234, 2345):
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            asyncio.run(scenario())
        assert not directory.lock_for(1234).locked()
        assert not directory.lock_for(2345).locked()
