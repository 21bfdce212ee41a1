"""Tests for the Google Sheets store against a mocked worksheet."""

import asyncio
import time
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from payments_ledger.errors import PersistenceUnavailableError
from payments_ledger.ledger import LedgerEngine, TransactionRecordStore
from payments_ledger.models import Account, Transaction, TransactionRecord
from payments_ledger.services.storage import GoogleSheetsPersistenceStore, StorageError
from payments_ledger.services.storage.google_sheets import (
    ACCOUNT_COLUMNS,
    RECORD_COLUMNS,
    account_to_row,
    record_to_row,
    row_to_account,
    row_to_record,
)


WHEN = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def make_account(account_id: int = 1234, initial: str = "1500.00") -> Account:
    account = Account.opened(
        id=account_id,
        name="Mariana Silva",
        initial_balance=Decimal(initial),
        password_hash="$pbkdf2-sha256$1000$c2FsdA$Y2hlY2s",
    )
    return account.with_entry(
        Transaction(sender_id=account_id, receiver_id=2345, amount=Decimal("-50"), timestamp=WHEN)
    )


def make_record() -> TransactionRecord:
    return TransactionRecord(
        sender_name="Mariana Silva",
        receiver_name="Samuel Campos",
        amount=Decimal("50"),
        timestamp=WHEN,
    )


@pytest.fixture
def accounts_sheet():
    sheet = MagicMock()
    sheet.get_all_values.return_value = [ACCOUNT_COLUMNS]
    return sheet


@pytest.fixture
def records_sheet():
    sheet = MagicMock()
    sheet.get_all_values.return_value = [RECORD_COLUMNS]
    return sheet


@pytest.fixture
def sheets_store(accounts_sheet, records_sheet):
    client = MagicMock()
    client.get_accounts_sheet.return_value = accounts_sheet
    client.get_records_sheet.return_value = records_sheet
    return GoogleSheetsPersistenceStore(client=client)


class TestRowMapping:

    def test_account_row_keeps_history(self):
        account = make_account()
        restored = row_to_account(account_to_row(account))

        assert restored.id == 1234
        assert restored.balance == Decimal("1450.00")
        assert restored.transactions == account.transactions

    def test_house_account_row(self):
        house = Account.opened(
            id=0, name="Conta da Casa", initial_balance=Decimal("Infinity"), password_hash="x"
        )
        row = account_to_row(house)
        assert row[2] == "Infinity"
        assert row_to_account(row).balance == Decimal("Infinity")

    def test_record_row(self):
        record = make_record()
        row = record_to_row(record)
        assert row[1:4] == ["Mariana Silva", "Samuel Campos", "50"]
        assert row_to_record(row) == record


class TestSaveAccount:

    def test_new_account_is_appended(self, sheets_store, accounts_sheet):
        asyncio.run(sheets_store.save_account(make_account()))

        accounts_sheet.append_row.assert_called_once()
        row = accounts_sheet.append_row.call_args.args[0]
        assert row[0] == "1234"
        accounts_sheet.update.assert_not_called()

    def test_existing_account_is_updated_in_place(self, sheets_store, accounts_sheet):
        accounts_sheet.get_all_values.return_value = [
            ACCOUNT_COLUMNS,
            ["2345", "Samuel Campos"],
            ["1234", "Mariana Silva"],
        ]

        asyncio.run(sheets_store.save_account(make_account()))

        accounts_sheet.update.assert_called_once()
        assert accounts_sheet.update.call_args.kwargs["range_name"] == "A3"
        accounts_sheet.append_row.assert_not_called()

    def test_errors_become_storage_errors(self, sheets_store, accounts_sheet):
        accounts_sheet.get_all_values.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(StorageError, match="quota exceeded"):
            asyncio.run(sheets_store.save_account(make_account()))


class TestFetch:

    def test_malformed_rows_are_skipped(self, sheets_store, accounts_sheet):
        accounts_sheet.get_all_values.return_value = [
            ACCOUNT_COLUMNS,
            account_to_row(make_account()),
            ["9", "Broken", "not-a-number", "", "", "", ""],
            [],
        ]

        accounts = asyncio.run(sheets_store.fetch_accounts())

        assert [a.id for a in accounts] == [1234]

    def test_records_come_back_oldest_first(self, sheets_store, records_sheet):
        early = make_record()
        late = make_record().model_copy(update={"timestamp": WHEN.replace(hour=13)})
        records_sheet.get_all_values.return_value = [
            RECORD_COLUMNS,
            record_to_row(late),
            record_to_row(early),
        ]

        records = asyncio.run(sheets_store.fetch_transaction_records())

        assert [r.id for r in records] == [early.id, late.id]


class TestSaveRecord:

    def test_record_is_appended_once(self, sheets_store, records_sheet):
        record = make_record()
        asyncio.run(sheets_store.save_transaction_record(record))
        records_sheet.append_row.assert_called_once()

        records_sheet.get_all_values.return_value = [RECORD_COLUMNS, record_to_row(record)]
        asyncio.run(sheets_store.save_transaction_record(record))
        records_sheet.append_row.assert_called_once()


class FakeWorksheet:
    """In-memory worksheet whose reads and appends can be made slow."""

    def __init__(self, rows, read_delay=0.0, append_delay=0.0):
        self.rows = [list(row) for row in rows]
        self.read_delay = read_delay
        self.append_delay = append_delay
        self.appended = []

    def get_all_values(self):
        time.sleep(self.read_delay)
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        time.sleep(self.append_delay)
        self.rows.append(list(row))
        self.appended.append(list(row))

    def update(self, range_name, values):
        self.rows[int(range_name[1:]) - 1] = list(values[0])

    def delete_rows(self, index):
        del self.rows[index - 1]


class TestTransferTimeout:
    """A timed-out transfer leaves the sheets as they were."""

    def build(self, directory, settings, records_sheet):
        accounts_sheet = FakeWorksheet(
            [ACCOUNT_COLUMNS] + [account_to_row(a) for a in directory.all()]
        )
        client = MagicMock()
        client.get_accounts_sheet.return_value = accounts_sheet
        client.get_records_sheet.return_value = records_sheet
        engine = LedgerEngine(
            directory,
            TransactionRecordStore(),
            store=GoogleSheetsPersistenceStore(client=client),
            settings=settings.model_copy(update={"transfer_timeout_seconds": 0.1}),
        )
        return engine, accounts_sheet

    @staticmethod
    def balances(sheet):
        return {row[0]: row[3] for row in sheet.rows[1:]}

    def test_slow_record_write_never_lands(self, directory, settings):
        records_sheet = FakeWorksheet([RECORD_COLUMNS], read_delay=0.3)
        engine, accounts_sheet = self.build(directory, settings, records_sheet)

        with pytest.raises(PersistenceUnavailableError, match="timed out"):
            asyncio.run(engine.transfer(1234, 2345, 50))

        assert records_sheet.appended == []
        assert records_sheet.rows == [RECORD_COLUMNS]
        balances = self.balances(accounts_sheet)
        assert balances["1234"] == "1500.00"
        assert balances["2345"] == "2300.00"

    def test_late_record_is_removed(self, directory, settings):
        records_sheet = FakeWorksheet([RECORD_COLUMNS], append_delay=0.3)
        engine, accounts_sheet = self.build(directory, settings, records_sheet)

        with pytest.raises(PersistenceUnavailableError, match="timed out"):
            asyncio.run(engine.transfer(1234, 2345, 50))

        assert len(records_sheet.appended) == 1
        assert records_sheet.rows == [RECORD_COLUMNS]
        balances = self.balances(accounts_sheet)
        assert balances["1234"] == "1500.00"
        assert balances["2345"] == "2300.00"
        assert directory.get(1234).balance == Decimal("1500.00")
