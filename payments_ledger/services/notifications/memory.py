"""
In-Memory Notifier

Keeps one inbox per account. A UI (or a test) polls `inbox()` instead of
being pushed to, which is how consumers learn about incoming transfers
without binding to ledger state.
"""

from collections import defaultdict

from pydantic import ValidationError

from payments_ledger.models.transfer import Notification
from payments_ledger.services.notifications.interface import NotificationError, Notifier


class InMemoryNotifier(Notifier):
    """Collects notifications per account."""

    def __init__(self):
        self._inboxes: dict[int, list[Notification]] = defaultdict(list)

    async def notify(self, account_id: int, title: str, body: str) -> None:
        try:
            notification = Notification(account_id=account_id, title=title, body=body)
        except ValidationError as e:
            raise NotificationError(f"Malformed alert for account {account_id}: {e}") from e
        self._inboxes[account_id].append(notification)

    def inbox(self, account_id: int) -> list[Notification]:
        """Notifications sent to an account, oldest first."""
        return list(self._inboxes.get(account_id, []))

    def drain(self, account_id: int) -> list[Notification]:
        """Return and clear an account's inbox."""
        return self._inboxes.pop(account_id, [])

    @property
    def sent(self) -> list[Notification]:
        """Every notification, grouped by account in first-seen order."""
        return [n for inbox in self._inboxes.values() for n in inbox]
