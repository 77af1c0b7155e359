"""Email notifications for account and security events."""

from flowgrid_auth.core.notifications.dispatcher import (
    NotificationDispatcher,
    Notifier,
    get_notifier,
    notifier,
)


__all__ = [
    "NotificationDispatcher",
    "Notifier",
    "get_notifier",
    "notifier",
]
