"""
Ledger Exceptions

Every failure a caller of the ledger can observe is one of these.
Storage adapters raise their own StorageError family
(see services.storage.interface); the ledger translates those into
PersistenceUnavailableError once its retry policy is exhausted.
"""

from decimal import Decimal
from typing import Any


class PaymentsError(Exception):
    """Base exception for all ledger operations."""
    pass


class AccountNotFoundError(PaymentsError):
    """No account with the given id exists in the directory."""

    def __init__(self, account_id: int):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class AuthenticationFailedError(PaymentsError):
    """
    Login rejected.

    Raised for both unknown ids and wrong passwords, with the
    same message, so callers cannot tell which accounts exist.
    """

    def __init__(self):
        super().__init__("Invalid account id or password")


class PersistenceUnavailableError(PaymentsError):
    """
    The persistence store could not complete an operation.

    The in-memory ledger state is unchanged when this is raised,
    so the caller may simply retry later.
    """

    def __init__(self, operation: str, reason: str, retryable: bool = True):
        self.operation = operation
        self.reason = reason
        self.retryable = retryable
        super().__init__(f"Persistence unavailable during {operation}: {reason}")


class InvalidTransferError(PaymentsError):
    """A transfer request failed validation before touching any account."""
    pass


class InvalidAmountError(InvalidTransferError):
    """Amount is not a finite, strictly positive number."""

    def __init__(self, amount: Any):
        self.amount = amount
        super().__init__(f"Invalid transfer amount: {amount!r}")


class SelfTransferError(InvalidTransferError):
    """Sender and receiver are the same account."""

    def __init__(self, account_id: int):
        self.account_id = account_id
        super().__init__(f"Cannot transfer from account {account_id} to itself")


# Largest accepted transfer: 15 integer digits, 8 decimal places
MAX_AMOUNT_INTEGER_DIGITS = 15
MAX_AMOUNT_DECIMAL_PLACES = 8


def coerce_amount(amount: Any) -> Decimal:
    """
    Convert a user-supplied amount to a Decimal and validate it.

    Accepts int, str, float and Decimal. Floats go through str() so 0.1
    becomes Decimal("0.1"), not its binary expansion. No rounding is
    applied: an amount with more digits than the bounds above is refused.

    Raises:
        InvalidAmountError: wrong type, non-numeric, non-finite, zero,
            negative or out of bounds
    """
    if isinstance(amount, bool) or not isinstance(amount, (int, str, float, Decimal)):
        raise InvalidAmountError(amount)
    try:
        if isinstance(amount, float):
            value = Decimal(str(amount))
        else:
            value = Decimal(amount)
    except (ArithmeticError, TypeError, ValueError):
        raise InvalidAmountError(amount)

    if not value.is_finite() or value <= 0:
        raise InvalidAmountError(amount)
    if value.adjusted() >= MAX_AMOUNT_INTEGER_DIGITS:
        raise InvalidAmountError(amount)
    if value.normalize().as_tuple().exponent < -MAX_AMOUNT_DECIMAL_PLACES:
        raise InvalidAmountError(amount)
    return value
