"""
Transfer, Session and Notification Models

Value objects that flow out of the ledger towards callers:
the outcome of a transfer, the proof of a successful login and the
alert handed to the notifier.
"""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from payments_ledger.models.account import (
    Account,
    Transaction,
    TransactionRecord,
    utcnow,
)


class Session(BaseModel):
    """
    An authenticated login.

    The ledger takes the sender of every transfer from here, never
    from the request body.
    """
    model_config = ConfigDict(frozen=True)

    session_id: UUID = Field(default_factory=uuid4)
    account_id: int
    created_at: datetime = Field(default_factory=utcnow)


class Notification(BaseModel):
    """User-facing alert about an incoming transfer."""
    model_config = ConfigDict(frozen=True)

    account_id: int
    title: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utcnow)


class TransferResult(BaseModel):
    """
    Everything a committed transfer produced.

    `sender` and `receiver` are the account versions that were
    committed, including the new entries.
    """
    model_config = ConfigDict(frozen=True)

    debit: Transaction
    credit: Transaction
    record: TransactionRecord
    sender: Account
    receiver: Account

    @property
    def amount(self):
        return self.record.amount

    def to_log_dict(self) -> dict:
        return {
            "sender_id": self.sender.id,
            "receiver_id": self.receiver.id,
            "amount": str(self.record.amount),
            "debit_id": str(self.debit.id),
            "credit_id": str(self.credit.id),
            "record_id": str(self.record.id),
        }
