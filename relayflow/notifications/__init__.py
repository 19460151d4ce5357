from .payload import build_notification_payload
from .service import NotificationService, Notifier, NullNotifier

__all__ = [
    "NotificationService",
    "Notifier",
    "NullNotifier",
    "build_notification_payload",
]
