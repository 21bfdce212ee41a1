"""Notifier that writes alerts to the structured log."""

from typing import Optional

import structlog

from payments_ledger.services.notifications.interface import NotificationError, Notifier


class LoggingNotifier(Notifier):
    """Stands in for a push service by logging each alert."""

    def __init__(self, logger: Optional[structlog.stdlib.BoundLogger] = None):
        self._logger = logger or structlog.get_logger("payments_ledger.notifications")

    async def notify(self, account_id: int, title: str, body: str) -> None:
        try:
            self._logger.info(
                "notification_dispatched",
                account_id=account_id,
                title=title,
                body=body,
            )
        except Exception as e:
            raise NotificationError(f"Could not log alert for account {account_id}: {e}") from e
