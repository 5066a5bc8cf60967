"""Outbound notices for signers and requesters."""

from sealsign_api.notifications.service import (
    CeleryNotifier,
    EmailMessage,
    LogNotifier,
    MemoryNotifier,
    Notifier,
    get_notifier,
)

__all__ = ["CeleryNotifier", "EmailMessage", "LogNotifier", "MemoryNotifier", "Notifier", "get_notifier"]
