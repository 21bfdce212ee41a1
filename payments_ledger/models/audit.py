"""
Audit Models for Payments Ledger

Every login attempt, transfer outcome and collaborator failure is
turned into an AuditEvent and written to the structured log.
This gives:
1. Traceability of every money movement
2. Debugging information when storage or notifications fail
3. A record of failed logins (no lockout exists, so this is the only trace)

Audit events never carry passwords or password hashes.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from payments_ledger.models.account import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Authentication
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"

    # Transfers
    TRANSFER_COMMITTED = "transfer_committed"
    TRANSFER_REJECTED = "transfer_rejected"

    # Collaborators
    PERSISTENCE_FAILED = "persistence_failed"
    NOTIFICATION_FAILED = "notification_failed"

    # Directory lifecycle
    ACCOUNTS_SEEDED = "accounts_seeded"
    ACCOUNTS_REFRESHED = "accounts_refreshed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    `account_id` is the account the event is about (the sender for
    transfers, the claimed id for logins).
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    account_id: Optional[int] = None
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Ties together events of one request (e.g. one transfer)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "account_id": self.account_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.login_failed(account_id=1234)
        await audit_logger.log(event)
    """

    @staticmethod
    def login_succeeded(account_id: int, session_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            account_id=account_id,
            correlation_id=session_id,
            description=f"Account {account_id} logged in",
        )

    @staticmethod
    def login_failed(account_id: int) -> AuditEvent:
        # Same description whether the account exists or not
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            account_id=account_id,
            description=f"Login rejected for account id {account_id}",
        )

    @staticmethod
    def transfer_committed(
        sender_id: int,
        receiver_id: int,
        amount: str,
        record_id: UUID,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_COMMITTED,
            account_id=sender_id,
            correlation_id=correlation_id,
            description=f"Transferred {amount} from {sender_id} to {receiver_id}",
            details={
                "receiver_id": receiver_id,
                "amount": amount,
                "record_id": str(record_id),
            },
        )

    @staticmethod
    def transfer_rejected(
        sender_id: int,
        receiver_id: int,
        amount: str,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_REJECTED,
            severity=AuditSeverity.WARNING,
            account_id=sender_id,
            correlation_id=correlation_id,
            description=f"Transfer from {sender_id} to {receiver_id} rejected",
            details={
                "receiver_id": receiver_id,
                "amount": amount,
            },
            error_message=reason,
        )

    @staticmethod
    def persistence_failed(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
        account_id: Optional[int] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            account_id=account_id,
            correlation_id=correlation_id,
            description=f"Persistence failed during {operation}",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def notification_failed(
        account_id: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_FAILED,
            severity=AuditSeverity.WARNING,
            account_id=account_id,
            correlation_id=correlation_id,
            description=f"Could not notify account {account_id}",
            error_message=error_message,
        )

    @staticmethod
    def accounts_seeded(account_ids: list[int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNTS_SEEDED,
            description=f"Seeded {len(account_ids)} demo accounts",
            details={"account_ids": account_ids},
        )

    @staticmethod
    def accounts_refreshed(account_count: int, record_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNTS_REFRESHED,
            severity=AuditSeverity.DEBUG,
            description=f"Loaded {account_count} accounts and {record_count} records from storage",
            details={
                "account_count": account_count,
                "record_count": record_count,
            },
        )
