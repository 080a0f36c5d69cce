"""
Dashboard Counters

Pure functions of the records passed in; nothing here touches storage.
"now" is always injectable so the counters are testable.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field

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
    ensure_utc,
    utc_now,
)


DEFAULT_FOLLOW_UP_DAYS = 7
DEFAULT_UPCOMING_LIMIT = 5


class DashboardOverview(BaseModel):
    """Headline numbers for the main dashboard."""

    client_count: int = 0
    overdue_tasks: int = 0
    follow_ups: int = 0
    upcoming: list[Task] = Field(default_factory=list)

    @classmethod
    def from_records(
        cls,
        clients: Iterable[Client],
        tasks: Iterable[Task],
        now: Optional[datetime] = None,
        follow_up_days: int = DEFAULT_FOLLOW_UP_DAYS,
        upcoming_limit: int = DEFAULT_UPCOMING_LIMIT,
    ) -> "DashboardOverview":
        now = ensure_utc(now) or utc_now()
        clients = list(clients)
        tasks = list(tasks)

        follow_up_cutoff = now - timedelta(days=follow_up_days)
        follow_ups = [
            client for client in clients
            if client.last_activity_at is not None
            and client.last_activity_at < follow_up_cutoff
        ]

        upcoming = sorted(
            (task for task in tasks if task.due_date is not None and task.due_date >= now),
            key=lambda task: task.due_date,
        )

        return cls(
            client_count=len(clients),
            overdue_tasks=sum(1 for task in tasks if task.is_overdue(now)),
            follow_ups=len(follow_ups),
            upcoming=upcoming[:upcoming_limit],
        )


def _start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class ServiceProviderStats(BaseModel):
    """Counters for the service-provider dashboard."""

    total_clients: int = 0
    active_clients: int = 0
    jobs_today: int = 0
    jobs_this_week: int = 0
    jobs_this_month: int = 0
    total_jobs_completed: int = 0
    jobs_in_progress: int = 0
    pending_payment_jobs: int = 0
    urgent_jobs: int = 0
    monthly_earnings: Decimal = Decimal("0")
    total_earnings: Decimal = Decimal("0")
    outstanding_payments: Decimal = Decimal("0")
    outstanding_payments_count: int = 0
    new_leads: int = 0
    hot_leads: int = 0
    overdue_invoices_count: int = 0

    @classmethod
    def from_records(
        cls,
        clients: Iterable[Client],
        jobs: Iterable[Job],
        invoices: Iterable[Invoice],
        leads: Iterable[Lead],
        now: Optional[datetime] = None,
    ) -> "ServiceProviderStats":
        now = ensure_utc(now) or utc_now()
        clients, jobs, invoices, leads = list(clients), list(jobs), list(invoices), list(leads)

        start_of_day = _start_of_day(now)
        # Weeks start on Sunday
        start_of_week = start_of_day - timedelta(days=(now.weekday() + 1) % 7)
        start_of_month = start_of_day.replace(day=1)

        paid = [i for i in invoices if i.status == InvoiceStatus.PAID]
        outstanding = [i for i in invoices if i.is_outstanding]

        return cls(
            total_clients=len(clients),
            active_clients=sum(1 for c in clients if c.status == ClientStatus.ACTIVE),
            jobs_today=sum(1 for j in jobs if j.created_at >= start_of_day),
            jobs_this_week=sum(1 for j in jobs if j.created_at >= start_of_week),
            jobs_this_month=sum(1 for j in jobs if j.created_at >= start_of_month),
            total_jobs_completed=sum(1 for j in jobs if j.status == JobStatus.COMPLETED),
            jobs_in_progress=sum(1 for j in jobs if j.status == JobStatus.IN_PROGRESS),
            pending_payment_jobs=sum(1 for j in jobs if j.status == JobStatus.PENDING_PAYMENT),
            urgent_jobs=sum(
                1 for j in jobs
                if j.is_open and (j.is_urgent or j.priority == JobPriority.URGENT)
            ),
            monthly_earnings=sum(
                (i.total_amount for i in paid if i.invoice_date >= start_of_month.date()),
                Decimal("0"),
            ),
            total_earnings=sum((i.total_amount for i in paid), Decimal("0")),
            outstanding_payments=sum(
                (i.amount_due or i.total_amount or Decimal("0") for i in outstanding),
                Decimal("0"),
            ),
            outstanding_payments_count=len(outstanding),
            new_leads=sum(1 for l in leads if l.status == LeadStatus.NEW_LEAD),
            hot_leads=sum(1 for l in leads if l.status == LeadStatus.HOT_LEAD),
            overdue_invoices_count=sum(1 for i in invoices if i.status == InvoiceStatus.OVERDUE),
        )
