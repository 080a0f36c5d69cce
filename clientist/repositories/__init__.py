"""
Repositories Package

One remote-first, local-fallback accessor per entity type.
"""

from clientist.repositories.base import FallbackRepository
from clientist.repositories.clients import ClientRepository
from clientist.repositories.invoices import InvoiceRepository, payment_status
from clientist.repositories.jobs import JobRepository
from clientist.repositories.leads import LeadRepository
from clientist.repositories.payments import PaymentRepository
from clientist.repositories.reminders import ReminderRepository
from clientist.repositories.tasks import TaskRepository

__all__ = [
    "FallbackRepository",
    "ClientRepository",
    "InvoiceRepository",
    "JobRepository",
    "LeadRepository",
    "PaymentRepository",
    "ReminderRepository",
    "TaskRepository",
    "payment_status",
]
