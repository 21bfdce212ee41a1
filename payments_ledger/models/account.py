"""
Core Ledger Models

These models define the strict schemas for accounts and the two
kinds of history the ledger keeps:

- Transaction: one signed entry on one account's history
  (negative for the debit side, positive for the credit side)
- TransactionRecord: one line in the global audit log of transfers,
  with denormalized sender/receiver names for display

All models are frozen. The ledger never mutates an account in place;
it builds the next version with `Account.with_entry` and swaps it into
the directory.

DESIGN DECISION: balance is a cached sum of the history,
    balance == initial_balance + sum(entry.amount)
and the model refuses to exist in any other state.
"""

from datetime import datetime, timezone
from decimal import Context, Decimal, localcontext
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# Id of the system account that funds everything. Its balance is infinite.
HOUSE_ACCOUNT_ID = 0

UNLIMITED_BALANCE = Decimal("Infinity")

# Wide enough that sums of bounded transfer amounts never round, so the
# cached balance and the recomputed one always agree.
BALANCE_CONTEXT = Context(prec=80)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Transaction(BaseModel):
    """
    One entry on an account's history.

    A transfer produces two of these with the same id pair and
    timestamp: amount=-X on the sender and amount=+X on the receiver.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique entry identifier"
    )
    sender_id: int = Field(
        ...,
        description="Account the money left"
    )
    receiver_id: int = Field(
        ...,
        description="Account the money arrived at"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount: negative on the debit entry, positive on the credit entry"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the transfer was committed (UTC)"
    )

    @field_validator('amount')
    @classmethod
    def amount_must_be_nonzero_and_finite(cls, v: Decimal) -> Decimal:
        if not v.is_finite() or v == 0:
            raise ValueError("Transaction amount must be finite and non-zero")
        return v

    @property
    def is_debit(self) -> bool:
        return self.amount < 0


class Account(BaseModel):
    """
    A customer (or the house) account.

    Passwords are never stored in clear text; `password_hash` holds a
    salted PBKDF2 hash produced by `payments_ledger.auth.passwords`.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: int = Field(
        ...,
        ge=0,
        description="Account id, the directory lookup key"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Account holder display name"
    )
    initial_balance: Decimal = Field(
        ...,
        allow_inf_nan=True,
        description="Balance before any recorded transaction"
    )
    balance: Decimal = Field(
        ...,
        allow_inf_nan=True,
        description="Cached balance: initial_balance plus the history total"
    )
    password_hash: str = Field(
        ...,
        min_length=1,
        description="Salted password hash"
    )
    transactions: tuple[Transaction, ...] = Field(
        default_factory=tuple,
        description="Entry history in commit order"
    )

    @model_validator(mode='after')
    def validate_balance(self) -> 'Account':
        """Only the house account may be unbounded, and balance must match history."""
        if self.initial_balance.is_nan():
            raise ValueError("Initial balance cannot be NaN")
        if not self.initial_balance.is_finite():
            if self.id != HOUSE_ACCOUNT_ID or self.initial_balance < 0:
                raise ValueError("Only the house account may have an unlimited balance")

        expected = self.recomputed_balance()
        if self.balance != expected:
            raise ValueError(
                f"Balance {self.balance} does not match history total {expected}"
            )
        return self

    @classmethod
    def opened(
        cls,
        id: int,
        name: str,
        initial_balance: Decimal,
        password_hash: str,
    ) -> "Account":
        """A fresh account with an empty history."""
        return cls(
            id=id,
            name=name,
            initial_balance=initial_balance,
            balance=initial_balance,
            password_hash=password_hash,
        )

    @property
    def is_house_account(self) -> bool:
        return self.id == HOUSE_ACCOUNT_ID

    def recomputed_balance(self) -> Decimal:
        """initial_balance plus every entry on the history."""
        with localcontext(BALANCE_CONTEXT):
            return self.initial_balance + sum(
                (entry.amount for entry in self.transactions),
                Decimal("0"),
            )

    def with_entry(self, entry: Transaction) -> "Account":
        """Return the next version of this account with `entry` appended."""
        if self.id not in (entry.sender_id, entry.receiver_id):
            raise ValueError(f"Entry {entry.id} does not involve account {self.id}")
        with localcontext(BALANCE_CONTEXT):
            balance = self.balance + entry.amount
        return Account(
            id=self.id,
            name=self.name,
            initial_balance=self.initial_balance,
            balance=balance,
            password_hash=self.password_hash,
            transactions=self.transactions + (entry,),
        )

    def to_public_dict(self) -> dict:
        """Account summary without the password hash, for logs and UIs."""
        return {
            "id": self.id,
            "name": self.name,
            "balance": str(self.balance),
            "transaction_count": len(self.transactions),
        }


class TransactionRecord(BaseModel):
    """
    A completed transfer in the global record store.

    Names are copied, not referenced: renaming an account later does
    not rewrite old records.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique record identifier"
    )
    sender_name: str = Field(..., min_length=1, max_length=200)
    receiver_name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Unsigned transferred amount"
    )
    timestamp: datetime = Field(default_factory=utcnow)

    def to_log_dict(self) -> dict:
        return {
            "record_id": str(self.id),
            "sender_name": self.sender_name,
            "receiver_name": self.receiver_name,
            "amount": str(self.amount),
            "timestamp": self.timestamp.isoformat(),
        }
