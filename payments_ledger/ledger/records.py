"""
Transaction Record Store

Append-only, in-memory log of completed transfers. Records are never
removed or rewritten, so the length of `all()` only ever grows.
"""

from typing import Iterable

from payments_ledger.models.account import TransactionRecord


class TransactionRecordStore:
    """Global audit log of committed transfers, in insertion order."""

    def __init__(self):
        self._records: list[TransactionRecord] = []
        self._ids: set = set()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record: object) -> bool:
        return isinstance(record, TransactionRecord) and record.id in self._ids

    def append(self, record: TransactionRecord) -> None:
        """
        Append a record.

        Raises:
            ValueError: a record with the same id is already stored
        """
        if record.id in self._ids:
            raise ValueError(f"Transaction record {record.id} already recorded")
        self._records.append(record)
        self._ids.add(record.id)

    def all(self) -> tuple[TransactionRecord, ...]:
        """Snapshot of every record, oldest first."""
        return tuple(self._records)

    def merge(self, records: Iterable[TransactionRecord]) -> int:
        """
        Append the records not already stored, ordered by timestamp.

        Used when loading from persistence. Returns how many were added.
        """
        new_records = sorted(
            (record for record in records if record.id not in self._ids),
            key=lambda r: r.timestamp,
        )
        added = 0
        for record in new_records:
            # The input may itself contain duplicates
            if record.id in self._ids:
                continue
            self.append(record)
            added += 1
        return added
