"""Tests for dashboard counters."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from clientist.models import (
    Client,
    ClientStatus,
    Invoice,
    InvoiceStatus,
    Job,
    JobPriority,
    JobStatus,
    Lead,
    LeadStatus,
    Task,
    TaskStatus,
)
from clientist.queries import DashboardOverview, ServiceProviderStats


UTC = timezone.utc
# A Wednesday
NOW = datetime(2024, 6, 12, 12, 0, tzinfo=UTC)


def task(title, due_in=None, status=TaskStatus.TODO):
    return Task(
        client_id=uuid4(),
        title=title,
        due_date=NOW + due_in if due_in is not None else None,
        status=status,
    )


class TestDashboardOverview:
    """Tests for the main dashboard numbers."""

    def test_overdue_counts_open_past_due_tasks(self):
        """Test done tasks with past due dates are not overdue."""
        tasks = [
            task("late", timedelta(days=-1)),
            task("late but done", timedelta(days=-1), status=TaskStatus.DONE),
            task("late in progress", timedelta(hours=-2), status=TaskStatus.IN_PROGRESS),
            task("future", timedelta(days=1)),
            task("undated"),
        ]
        overview = DashboardOverview.from_records([], tasks, now=NOW)
        assert overview.overdue_tasks == 2

    def test_client_count_and_follow_ups(self):
        """Test clients idle longer than the window need a follow-up."""
        clients = [
            Client(name="Idle", last_activity_at=NOW - timedelta(days=8)),
            Client(name="Recent", last_activity_at=NOW - timedelta(days=2)),
            Client(name="Never"),
        ]
        overview = DashboardOverview.from_records(clients, [], now=NOW)
        assert overview.client_count == 3
        assert overview.follow_ups == 1

    def test_follow_up_window_is_configurable(self):
        """Test a shorter window catches more clients."""
        clients = [Client(name="Recent", last_activity_at=NOW - timedelta(days=2))]
        overview = DashboardOverview.from_records(clients, [], now=NOW, follow_up_days=1)
        assert overview.follow_ups == 1

    def test_upcoming_sorted_and_limited(self):
        """Test upcoming is due >= now, ascending, first five."""
        tasks = [task(f"t{i}", timedelta(days=i)) for i in (6, 3, 1, 5, 2, 4, 0)]
        tasks.append(task("past", timedelta(days=-1)))
        overview = DashboardOverview.from_records([], tasks, now=NOW)
        assert [t.title for t in overview.upcoming] == ["t0", "t1", "t2", "t3", "t4"]

    def test_empty(self):
        """Test everything is zero with no records."""
        overview = DashboardOverview.from_records([], [], now=NOW)
        assert overview.client_count == 0
        assert overview.overdue_tasks == 0
        assert overview.upcoming == []


class TestServiceProviderStats:
    """Tests for the service-provider counters."""

    @pytest.fixture
    def stats(self):
        client_id = uuid4()
        clients = [
            Client(name="A", status=ClientStatus.ACTIVE),
            Client(name="B", status=ClientStatus.ARCHIVED),
        ]
        jobs = [
            Job(client_id=client_id, title="today", created_at=NOW - timedelta(hours=3)),
            Job(client_id=client_id, title="monday", created_at=datetime(2024, 6, 10, 9, tzinfo=UTC),
                status=JobStatus.COMPLETED),
            Job(client_id=client_id, title="early june", created_at=datetime(2024, 6, 2, 9, tzinfo=UTC),
                status=JobStatus.PENDING_PAYMENT, priority=JobPriority.URGENT),
            Job(client_id=client_id, title="may", created_at=datetime(2024, 5, 20, 9, tzinfo=UTC),
                is_urgent=True, status=JobStatus.CANCELLED),
        ]
        invoices = [
            Invoice(client_id=client_id, invoice_number="1", status=InvoiceStatus.PAID,
                    total_amount=Decimal("400"), invoice_date=date(2024, 6, 3)),
            Invoice(client_id=client_id, invoice_number="2", status=InvoiceStatus.PAID,
                    total_amount=Decimal("250"), invoice_date=date(2024, 5, 3)),
            Invoice(client_id=client_id, invoice_number="3", status=InvoiceStatus.PARTIALLY_PAID,
                    total_amount=Decimal("300"), amount_paid=Decimal("100"), invoice_date=date(2024, 6, 5)),
            Invoice(client_id=client_id, invoice_number="4", status=InvoiceStatus.OVERDUE,
                    total_amount=Decimal("50"), invoice_date=date(2024, 4, 1)),
            Invoice(client_id=client_id, invoice_number="5", status=InvoiceStatus.CANCELLED,
                    total_amount=Decimal("999"), invoice_date=date(2024, 6, 1)),
        ]
        leads = [
            Lead(full_name="N", status=LeadStatus.NEW_LEAD),
            Lead(full_name="H1", status=LeadStatus.HOT_LEAD),
            Lead(full_name="H2", status=LeadStatus.HOT_LEAD),
        ]
        return ServiceProviderStats.from_records(clients, jobs, invoices, leads, now=NOW)

    def test_client_counts(self, stats):
        assert stats.total_clients == 2
        assert stats.active_clients == 1

    def test_job_windows(self, stats):
        """Test today / this week (from Sunday) / this month."""
        assert stats.jobs_today == 1
        assert stats.jobs_this_week == 2
        assert stats.jobs_this_month == 3

    def test_job_statuses(self, stats):
        assert stats.total_jobs_completed == 1
        assert stats.jobs_in_progress == 1
        assert stats.pending_payment_jobs == 1
        assert stats.urgent_jobs == 1

    def test_earnings(self, stats):
        """Test monthly and total earnings count paid invoices only."""
        assert stats.monthly_earnings == Decimal("400")
        assert stats.total_earnings == Decimal("650")

    def test_outstanding(self, stats):
        """Test outstanding uses amount due and skips paid/cancelled."""
        assert stats.outstanding_payments == Decimal("250")
        assert stats.outstanding_payments_count == 2
        assert stats.overdue_invoices_count == 1

    def test_leads(self, stats):
        assert stats.new_leads == 1
        assert stats.hot_leads == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
