"""Notification scheduling package."""

from clientist.services.notifications.scheduler import (
    DateTrigger,
    DelayTrigger,
    LocalNotificationScheduler,
    NotificationCategory,
    NotificationError,
    NotificationPreferences,
    NotificationSchedulerInterface,
    ScheduledNotification,
    Trigger,
)

__all__ = [
    "DateTrigger",
    "DelayTrigger",
    "LocalNotificationScheduler",
    "NotificationCategory",
    "NotificationError",
    "NotificationPreferences",
    "NotificationSchedulerInterface",
    "ScheduledNotification",
    "Trigger",
]
