"""
Data Models Package

All Pydantic models used by the ledger. Everything that crosses a
component boundary (directory, engine, storage, notifier) is one of these.
"""

from payments_ledger.models.account import (
    HOUSE_ACCOUNT_ID,
    UNLIMITED_BALANCE,
    Account,
    Transaction,
    TransactionRecord,
)
from payments_ledger.models.transfer import (
    Notification,
    Session,
    TransferResult,
)
from payments_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "HOUSE_ACCOUNT_ID",
    "UNLIMITED_BALANCE",
    "Account",
    "Transaction",
    "TransactionRecord",
    # Transfer models
    "Notification",
    "Session",
    "TransferResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
