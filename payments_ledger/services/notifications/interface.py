"""
Abstract Notifier Interface

Receives "transfer completed" alerts addressed to an account.
Delivery is fire-and-forget: the ledger logs notifier errors and never
undoes a committed transfer because an alert could not be sent.
"""

from abc import ABC, abstractmethod


class Notifier(ABC):
    """Dispatches user-facing alerts."""

    @abstractmethod
    async def notify(self, account_id: int, title: str, body: str) -> None:
        """
        Send an alert to the holder of `account_id`.

        Raises:
            NotificationError: If the alert could not be handed off
        """
        pass


class NotificationError(Exception):
    """An alert could not be dispatched."""
    pass
