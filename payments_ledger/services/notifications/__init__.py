"""
Notification Services Package

Provides the abstract notifier interface plus a structlog-backed notifier
and an in-memory notifier with pollable per-account inboxes.
"""

from payments_ledger.services.notifications.interface import (
    NotificationError,
    Notifier,
)
from payments_ledger.services.notifications.logging_notifier import LoggingNotifier
from payments_ledger.services.notifications.memory import InMemoryNotifier

__all__ = [
    "InMemoryNotifier",
    "LoggingNotifier",
    "NotificationError",
    "Notifier",
]
