"""Tests for the local notification scheduler."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from clientist.models import utc_now
from clientist.models.audit import AuditEventType
from clientist.services.notifications import (
    DateTrigger,
    DelayTrigger,
    LocalNotificationScheduler,
    NotificationCategory,
    NotificationPreferences,
)
from clientist.services.notifications.scheduler import PENDING_KEY, PREFERENCES_KEY
from clientist.services.storage import LocalAuditStorage
from conftest import run


@pytest.fixture
def scheduler(store, audit_logger):
    return LocalNotificationScheduler(store, audit_logger=audit_logger)


class TestSchedule:

    def test_future_date_is_scheduled(self, scheduler, store):
        """Test a future trigger returns an id and is persisted."""
        at = utc_now() + timedelta(hours=2)
        notification_id = run(scheduler.schedule(
            "Call Asha",
            DateTrigger(at=at),
            category=NotificationCategory.REMINDERS,
            data={"client_id": "c-1"},
        ))

        assert notification_id is not None
        assert PENDING_KEY in store.keys()
        pending = run(scheduler.pending())
        assert len(pending) == 1
        assert pending[0].id == notification_id
        assert pending[0].fire_at == at
        assert pending[0].data == {"client_id": "c-1"}

    def test_past_date_is_skipped(self, scheduler):
        """Test a trigger in the past schedules nothing."""
        result = run(scheduler.schedule("Too late", DateTrigger(at=utc_now() - timedelta(minutes=1))))
        assert result is None
        assert run(scheduler.pending()) == []

    def test_delay_trigger(self, scheduler):
        before = utc_now()
        run(scheduler.schedule("Soon", DelayTrigger(seconds=60)))
        pending = run(scheduler.pending())
        assert pending[0].fire_at >= before + timedelta(seconds=60)

    def test_delay_must_be_positive(self):
        with pytest.raises(ValidationError):
            DelayTrigger(seconds=0)

    def test_disabled_scheduler(self, store):
        scheduler = LocalNotificationScheduler(store, enabled=False)
        result = run(scheduler.schedule("Nope", DelayTrigger(seconds=60)))
        assert result is None

    def test_category_switched_off(self, scheduler, store):
        """Test per-category preferences are honoured and persisted."""
        run(scheduler.save_preferences(NotificationPreferences(leads=False)))

        assert PREFERENCES_KEY in store.keys()
        assert run(scheduler.get_preferences()).leads is False
        skipped = run(scheduler.schedule(
            "Follow up", DelayTrigger(seconds=60), category=NotificationCategory.LEADS,
        ))
        kept = run(scheduler.schedule(
            "Invoice due", DelayTrigger(seconds=60), category=NotificationCategory.INVOICES,
        ))
        assert skipped is None
        assert kept is not None

    def test_scheduling_is_audited(self, scheduler, store):
        run(scheduler.schedule("Audited", DelayTrigger(seconds=60)))
        events = run(LocalAuditStorage(store).get_recent_events())
        assert any(e.event_type == AuditEventType.NOTIFICATION_SCHEDULED for e in events)


class TestPending:

    def test_pending_sorted_and_due(self, scheduler):
        """Test pending() is soonest first and due() filters by time."""
        now = utc_now()
        run(scheduler.schedule("Later", DateTrigger(at=now + timedelta(hours=5))))
        run(scheduler.schedule("Sooner", DateTrigger(at=now + timedelta(hours=1))))

        assert [n.title for n in run(scheduler.pending())] == ["Sooner", "Later"]
        assert run(scheduler.due(now)) == []
        due = run(scheduler.due(now + timedelta(hours=2)))
        assert [n.title for n in due] == ["Sooner"]

    def test_corrupt_pending_list(self, scheduler, store):
        run(store.set_item(PENDING_KEY, '{"not": "a list"}'))
        assert run(scheduler.pending()) == []


class TestCancel:

    def test_cancel_one(self, scheduler):
        first = run(scheduler.schedule("One", DelayTrigger(seconds=60)))
        run(scheduler.schedule("Two", DelayTrigger(seconds=60)))

        assert run(scheduler.cancel(first)) is True
        assert run(scheduler.cancel(first)) is False
        assert [n.title for n in run(scheduler.pending())] == ["Two"]

    def test_cancel_category(self, scheduler):
        run(scheduler.schedule("Lead", DelayTrigger(seconds=60), category=NotificationCategory.LEADS))
        run(scheduler.schedule("Task", DelayTrigger(seconds=60), category=NotificationCategory.TASKS))

        assert run(scheduler.cancel_category(NotificationCategory.LEADS)) == 1
        assert [n.category for n in run(scheduler.pending())] == [NotificationCategory.TASKS]

    def test_cancel_all(self, scheduler, store):
        run(scheduler.schedule("One", DelayTrigger(seconds=60)))
        run(scheduler.cancel_all())
        assert PENDING_KEY not in store.keys()
        assert run(scheduler.pending()) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
