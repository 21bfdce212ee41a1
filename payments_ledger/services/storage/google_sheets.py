"""
Google Sheets Storage Implementation

Google Sheets is the cloud record store for the demo: the accounts and
the transfer log can be inspected directly in a spreadsheet, and no
database has to be provisioned.

TRADEOFFS:
- Not suitable for high volume (fine for a demo ledger)
- No transactions: the ledger orders its writes and restores the
  previous account versions itself when a transfer fails half way
- Limited query capabilities (we filter in Python)

gspread is synchronous, so every call runs in a worker thread to keep
the event loop (and the ledger's timeouts) responsive.
"""

import asyncio
import json
import threading
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from payments_ledger.config import GoogleSheetsSettings, get_settings
from payments_ledger.models.account import Account, Transaction, TransactionRecord, utcnow
from payments_ledger.services.storage.interface import (
    PersistenceStore,
    StorageConnectionError,
    StorageError,
)


logger = structlog.get_logger(__name__)


# Column mappings for Accounts sheet
ACCOUNT_COLUMNS = [
    "id",
    "name",
    "initial_balance",
    "balance",
    "password_hash",
    "transactions_json",
    "updated_at",
]

# Column mappings for TransactionRecords sheet
RECORD_COLUMNS = [
    "id",
    "sender_name",
    "receiver_name",
    "amount",
    "timestamp",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_accounts_sheet(self) -> gspread.Worksheet:
        """Get or create the Accounts worksheet."""
        return self._get_or_create(
            self._settings.accounts_sheet_name, ACCOUNT_COLUMNS, rows=100
        )

    def get_records_sheet(self) -> gspread.Worksheet:
        """Get or create the TransactionRecords worksheet."""
        return self._get_or_create(
            self._settings.records_sheet_name, RECORD_COLUMNS, rows=5000
        )


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def account_to_row(account: Account) -> list:
    """Convert an Account to a spreadsheet row."""
    return [
        str(account.id),
        account.name,
        str(account.initial_balance),
        str(account.balance),
        account.password_hash,
        json.dumps([entry.model_dump(mode="json") for entry in account.transactions]),
        utcnow().isoformat(),
    ]


def row_to_account(row: list) -> Account:
    """Convert a spreadsheet row to an Account."""
    entries_json = _safe_get(row, 5)
    entries = tuple(
        Transaction.model_validate(item)
        for item in (json.loads(entries_json) if entries_json else [])
    )
    return Account(
        id=int(_safe_get(row, 0)),
        name=_safe_get(row, 1),
        initial_balance=Decimal(_safe_get(row, 2)),
        balance=Decimal(_safe_get(row, 3)),
        password_hash=_safe_get(row, 4),
        transactions=entries,
    )


def record_to_row(record: TransactionRecord) -> list:
    """Convert a TransactionRecord to a spreadsheet row."""
    return [
        str(record.id),
        record.sender_name,
        record.receiver_name,
        str(record.amount),
        record.timestamp.isoformat(),
    ]


def row_to_record(row: list) -> TransactionRecord:
    """Convert a spreadsheet row to a TransactionRecord."""
    return TransactionRecord(
        id=UUID(_safe_get(row, 0)),
        sender_name=_safe_get(row, 1),
        receiver_name=_safe_get(row, 2),
        amount=Decimal(_safe_get(row, 3)),
        timestamp=datetime.fromisoformat(_safe_get(row, 4)),
    )


class GoogleSheetsPersistenceStore(PersistenceStore):
    """
    Google Sheets implementation of the persistence store.

    Accounts are upserted one row per account id, with the entry history
    JSON-serialized in one cell. Transaction records are append-only rows.

    A worker thread cannot be interrupted, so a cancelled write (e.g. by
    the ledger's transfer timeout) sets a flag that the thread checks
    before touching the sheet, and the cancelled caller only resumes once
    the thread has stopped. When the caller sees the cancellation, the
    sheet is no longer changing behind its back.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def _run_write(self, func: Callable[..., None], *args: Any) -> None:
        cancelled = threading.Event()
        worker = asyncio.ensure_future(asyncio.to_thread(func, *args, cancelled))
        try:
            await asyncio.shield(worker)
        except asyncio.CancelledError:
            cancelled.set()
            try:
                await worker
            except Exception as e:
                logger.warning("cancelled_write_failed", error=str(e))
            raise

    # Sync bodies, run in a worker thread

    def _save_account(self, account: Account, cancelled: threading.Event) -> None:
        sheet = self._client.get_accounts_sheet()
        new_row = account_to_row(account)
        all_rows = sheet.get_all_values()
        if cancelled.is_set():
            return

        # Start from 2 (row 1 is header)
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == str(account.id):
                sheet.update(range_name=f"A{idx}", values=[new_row])
                return

        sheet.append_row(new_row, value_input_option="RAW")

    def _fetch_accounts(self) -> list[Account]:
        sheet = self._client.get_accounts_sheet()
        accounts = []
        for row in sheet.get_all_values()[1:]:  # Skip header
            if not row or not row[0]:
                continue
            try:
                accounts.append(row_to_account(row))
            except Exception as e:
                logger.warning("malformed_account_row", row_id=row[0], error=str(e))
        return accounts

    def _save_transaction_record(
        self, record: TransactionRecord, cancelled: threading.Event
    ) -> None:
        sheet = self._client.get_records_sheet()
        existing_ids = {row[0] for row in sheet.get_all_values()[1:] if row}
        if cancelled.is_set() or str(record.id) in existing_ids:
            return
        sheet.append_row(record_to_row(record), value_input_option="RAW")

    def _delete_transaction_record(self, record_id: UUID, cancelled: threading.Event) -> None:
        sheet = self._client.get_records_sheet()
        all_rows = sheet.get_all_values()
        if cancelled.is_set():
            return
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == str(record_id):
                sheet.delete_rows(idx)
                return

    def _fetch_transaction_records(self) -> list[TransactionRecord]:
        sheet = self._client.get_records_sheet()
        records = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                records.append(row_to_record(row))
            except Exception as e:
                logger.warning("malformed_record_row", row_id=row[0], error=str(e))
        records.sort(key=lambda r: r.timestamp)
        return records

    async def save_account(self, account: Account) -> None:
        """Upsert an account row."""
        try:
            await self._run_write(self._save_account, account)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save account {account.id}: {e}")

    async def fetch_accounts(self) -> list[Account]:
        """Read every account row."""
        try:
            return await asyncio.to_thread(self._fetch_accounts)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to fetch accounts: {e}")

    async def save_transaction_record(self, record: TransactionRecord) -> None:
        """Append a record row unless its id is already present."""
        try:
            await self._run_write(self._save_transaction_record, record)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save transaction record {record.id}: {e}")

    async def delete_transaction_record(self, record_id: UUID) -> None:
        """Delete the row of an uncommitted record, if present."""
        try:
            await self._run_write(self._delete_transaction_record, record_id)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete transaction record {record_id}: {e}")

    async def fetch_transaction_records(self) -> list[TransactionRecord]:
        """Read every record row, oldest first."""
        try:
            return await asyncio.to_thread(self._fetch_transaction_records)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to fetch transaction records: {e}")
