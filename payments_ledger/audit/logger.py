"""
Audit Logger

Every significant ledger action is logged as a structured event:
logins, committed and rejected transfers, storage and notifier failures.

The audit logger:
- Is async so it can sit on the same call paths as the ledger
- Never raises into the caller (a broken log sink must not block a transfer)
- Supports correlation IDs to trace the events of one request
"""

import logging
import sys
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from payments_ledger.config import LoggingSettings
from payments_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Safe to call more than once; the last call wins.
    """
    settings = settings or LoggingSettings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.level),
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configure structlog for local logging
configure_logging()

logger = structlog.get_logger(__name__)


class AuditLogger:
    """
    Central audit logging service.

    Writes AuditEvents to the structured log at the event's severity.
    """

    def __init__(
        self,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        max_events: int = 1000,
    ):
        self._logger = logger or structlog.get_logger("payments_ledger.audit")
        self._events: deque[AuditEvent] = deque(maxlen=max_events)

    @property
    def events(self) -> tuple[AuditEvent, ...]:
        """Most recent events logged by this instance, oldest first."""
        return tuple(self._events)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the log sink failed; never raises.
        """
        self._events.append(event)
        log_dict = event.to_log_dict()

        try:
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            logger.error("audit_log_failed", event_id=str(event.event_id), error=str(e))
            return False

        return True

    async def log_login_succeeded(self, account_id: int, session_id: UUID) -> None:
        """Log a successful login."""
        await self.log(AuditEventBuilder.login_succeeded(account_id, session_id))

    async def log_login_failed(self, account_id: int) -> None:
        """Log a rejected login."""
        await self.log(AuditEventBuilder.login_failed(account_id))

    async def log_transfer_committed(
        self,
        sender_id: int,
        receiver_id: int,
        amount: str,
        record_id: UUID,
        correlation_id: UUID,
    ) -> None:
        """Log a committed transfer."""
        event = AuditEventBuilder.transfer_committed(
            sender_id=sender_id,
            receiver_id=receiver_id,
            amount=amount,
            record_id=record_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transfer_rejected(
        self,
        sender_id: int,
        receiver_id: int,
        amount: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """Log a transfer that was refused or failed closed."""
        event = AuditEventBuilder.transfer_rejected(
            sender_id=sender_id,
            receiver_id=receiver_id,
            amount=amount,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_persistence_failed(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
        account_id: Optional[int] = None,
    ) -> None:
        """Log a storage failure after retries were exhausted."""
        event = AuditEventBuilder.persistence_failed(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
            account_id=account_id,
        )
        await self.log(event)

    async def log_notification_failed(
        self,
        account_id: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a notifier failure."""
        event = AuditEventBuilder.notification_failed(
            account_id=account_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request (e.g. a transfer) and pass it
    through all subsequent operations.
    """
    return uuid4()
