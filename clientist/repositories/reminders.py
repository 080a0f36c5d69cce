"""
Reminders

Creating a reminder also schedules a local notification for it. The
notification is a side effect: if scheduling fails the reminder is
still saved and the failure only shows up in the audit trail.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from clientist.audit import AuditLogger
from clientist.models import Reminder
from clientist.repositories.base import FallbackRepository, logger
from clientist.services.notifications import (
    DateTrigger,
    NotificationCategory,
    NotificationSchedulerInterface,
)
from clientist.services.storage import KeyValueStoreInterface, RemoteBackendInterface


class ReminderRepository(FallbackRepository[Reminder]):
    table = "reminders"
    storage_key = "clientist_reminders"
    model = Reminder
    entity_type = "reminder"
    parent_field = "client_id"
    order_by = [("at", False)]

    def __init__(
        self,
        backend: RemoteBackendInterface,
        store: KeyValueStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        scheduler: Optional[NotificationSchedulerInterface] = None,
    ):
        super().__init__(backend, store, audit_logger)
        self._scheduler = scheduler

    async def list_reminders(self, client_id: UUID) -> list[Reminder]:
        return await self.list_records(parent_id=client_id)

    async def create_reminder(
        self,
        client_id: UUID,
        title: str,
        at: datetime,
        owner_id: Optional[str] = None,
    ) -> Reminder:
        reminder = await self.create(
            Reminder(client_id=client_id, title=title, at=at),
            owner_id=owner_id,
        )

        if self._scheduler:
            try:
                await self._scheduler.schedule(
                    title=title,
                    trigger=DateTrigger(at=reminder.at),
                    body="Client reminder",
                    category=NotificationCategory.REMINDERS,
                    data={"reminder_id": str(reminder.id), "client_id": str(client_id)},
                )
            except Exception as e:
                if self._audit_logger:
                    await self._audit_logger.log_notification_failed(
                        title=title,
                        error_message=str(e),
                    )
                else:
                    logger.warning("notification_failed", title=title, error=str(e))

        return reminder
