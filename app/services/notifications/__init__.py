from app.services.notifications.outbox import (
    DeliveryReport,
    NotificationDispatcher,
    enqueue_notification,
)
from app.services.notifications.senders import (
    LoggingNotificationSender,
    WebhookNotificationSender,
    get_notification_sender,
)

__all__ = [
    "DeliveryReport",
    "LoggingNotificationSender",
    "NotificationDispatcher",
    "WebhookNotificationSender",
    "enqueue_notification",
    "get_notification_sender",
]
