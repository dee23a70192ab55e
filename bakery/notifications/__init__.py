from bakery.notifications.dispatcher import (
    LogNotificationDispatcher,
    NotificationDispatcher,
    NotificationResult,
    ResendEmailDispatcher,
    get_dispatcher,
)
from bakery.notifications.payloads import NotificationPayload, build_payload
from bakery.notifications.scheduler import NotificationScheduler, get_notification_scheduler

__all__ = [
    "LogNotificationDispatcher",
    "NotificationDispatcher",
    "NotificationPayload",
    "NotificationResult",
    "NotificationScheduler",
    "ResendEmailDispatcher",
    "build_payload",
    "get_dispatcher",
    "get_notification_scheduler",
]
