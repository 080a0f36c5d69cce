"""
Local Notification Scheduler

Schedules on-device notifications for reminders, task due dates, lead
follow-ups and invoice due dates.

DESIGN DECISION: Scheduling is best-effort. A notification that cannot
be scheduled (category switched off, trigger already in the past,
scheduler disabled) returns None instead of raising, and callers never
let a scheduling failure undo the record they just saved.

Pending notifications are kept as a JSON array in the same key-value
store as the fallback data, so a process that restarts still knows
what is due.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional, Union
from uuid import uuid4

import structlog
from pydantic import BaseModel, Field

from clientist.audit import AuditLogger
from clientist.models.base import UtcDatetime, utc_now
from clientist.services.storage import KeyValueStoreInterface, load, save


logger = structlog.get_logger(__name__)

PREFERENCES_KEY = "clientist_notification_preferences"
PENDING_KEY = "clientist_scheduled_notifications"


class NotificationCategory(str, Enum):
    TASKS = "tasks"
    REMINDERS = "reminders"
    LEADS = "leads"
    INVOICES = "invoices"


class DateTrigger(BaseModel):
    """Fire at an absolute point in time."""
    at: UtcDatetime

    def fire_at(self, now: datetime) -> datetime:
        return self.at


class DelayTrigger(BaseModel):
    """Fire a number of seconds after scheduling."""
    seconds: int = Field(..., gt=0)

    def fire_at(self, now: datetime) -> datetime:
        return now + timedelta(seconds=self.seconds)


Trigger = Union[DateTrigger, DelayTrigger]


class NotificationPreferences(BaseModel):
    """Per-category switches. Everything is on until the user says otherwise."""
    tasks: bool = True
    reminders: bool = True
    leads: bool = True
    invoices: bool = True

    def allows(self, category: NotificationCategory) -> bool:
        return getattr(self, category.value)


class ScheduledNotification(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    title: str = Field(..., min_length=1, max_length=200)
    body: str = ""
    category: NotificationCategory
    data: dict[str, Any] = Field(default_factory=dict)
    fire_at: UtcDatetime
    created_at: UtcDatetime = Field(default_factory=utc_now)


class NotificationError(Exception):
    """Raised when a notification cannot be persisted."""
    pass


class NotificationSchedulerInterface(ABC):

    @abstractmethod
    async def schedule(
        self,
        title: str,
        trigger: Trigger,
        body: str = "",
        category: NotificationCategory = NotificationCategory.REMINDERS,
        data: Optional[dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Schedule a notification.

        Returns the notification id, or None if it was skipped.
        """
        pass

    @abstractmethod
    async def cancel(self, notification_id: str) -> bool:
        pass

    @abstractmethod
    async def cancel_all(self) -> None:
        pass


class LocalNotificationScheduler(NotificationSchedulerInterface):
    """Scheduler that keeps pending notifications in the local store."""

    def __init__(
        self,
        store: KeyValueStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        enabled: bool = True,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._enabled = enabled

    async def get_preferences(self) -> NotificationPreferences:
        raw = await load(self._store, PREFERENCES_KEY, None)
        if not isinstance(raw, dict):
            return NotificationPreferences()
        try:
            return NotificationPreferences.model_validate(raw)
        except Exception:
            logger.warning("notification_preferences_invalid")
            return NotificationPreferences()

    async def save_preferences(self, preferences: NotificationPreferences) -> None:
        await save(self._store, PREFERENCES_KEY, preferences.model_dump())

    async def schedule(
        self,
        title: str,
        trigger: Trigger,
        body: str = "",
        category: NotificationCategory = NotificationCategory.REMINDERS,
        data: Optional[dict[str, Any]] = None,
    ) -> Optional[str]:
        if not self._enabled:
            return None

        preferences = await self.get_preferences()
        if not preferences.allows(category):
            logger.info("notification_skipped", reason="category_disabled", category=category.value)
            return None

        now = utc_now()
        fire_at = trigger.fire_at(now)
        if fire_at <= now:
            logger.info("notification_skipped", reason="trigger_in_past", fire_at=fire_at.isoformat())
            return None

        notification = ScheduledNotification(
            title=title,
            body=body,
            category=category,
            data=data or {},
            fire_at=fire_at,
        )

        try:
            pending = await self.pending()
            await self._write([*pending, notification])
        except Exception as e:
            raise NotificationError(f"Could not schedule '{title}': {e}") from e

        if self._audit_logger:
            await self._audit_logger.log_notification_scheduled(
                notification_id=notification.id,
                category=category.value,
                fire_at=fire_at,
            )

        return notification.id

    async def pending(self) -> list[ScheduledNotification]:
        """All scheduled notifications, soonest first."""
        rows = await load(self._store, PENDING_KEY, [])
        if not isinstance(rows, list):
            return []
        notifications = []
        for row in rows:
            try:
                notifications.append(ScheduledNotification.model_validate(row))
            except Exception:
                logger.warning("scheduled_notification_skipped")
        return sorted(notifications, key=lambda n: n.fire_at)

    async def due(self, now: Optional[datetime] = None) -> list[ScheduledNotification]:
        now = now or utc_now()
        return [n for n in await self.pending() if n.fire_at <= now]

    async def cancel(self, notification_id: str) -> bool:
        pending = await self.pending()
        remaining = [n for n in pending if n.id != notification_id]
        if len(remaining) == len(pending):
            return False
        await self._write(remaining)
        return True

    async def cancel_category(self, category: NotificationCategory) -> int:
        pending = await self.pending()
        remaining = [n for n in pending if n.category != category]
        await self._write(remaining)
        return len(pending) - len(remaining)

    async def cancel_all(self) -> None:
        await self._store.remove_item(PENDING_KEY)

    async def _write(self, notifications: list[ScheduledNotification]) -> None:
        await save(self._store, PENDING_KEY, [n.model_dump(mode="json") for n in notifications])
