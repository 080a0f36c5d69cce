"""
Data Models Package

This package contains all Pydantic models used in Clientist.
All data flowing through the system must conform to these schemas.
"""

from clientist.models.base import Record, ensure_utc, new_id, utc_now
from clientist.models.entities import (
    ChecklistItem,
    Client,
    ClientStatus,
    Invoice,
    InvoiceItem,
    InvoiceItemType,
    InvoiceStatus,
    Job,
    JobPriority,
    JobStatus,
    Lead,
    LeadSource,
    LeadStatus,
    Payment,
    PaymentMethod,
    Reminder,
    Task,
    TaskRepeat,
    TaskStatus,
)
from clientist.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from clientist.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Base
    "Record",
    "ensure_utc",
    "new_id",
    "utc_now",
    # Entities
    "ChecklistItem",
    "Client",
    "ClientStatus",
    "Invoice",
    "InvoiceItem",
    "InvoiceItemType",
    "InvoiceStatus",
    "Job",
    "JobPriority",
    "JobStatus",
    "Lead",
    "LeadSource",
    "LeadStatus",
    "Payment",
    "PaymentMethod",
    "Reminder",
    "Task",
    "TaskRepeat",
    "TaskStatus",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
