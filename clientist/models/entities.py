"""
Core Data Models for Clientist

These models define the schemas for every record the app stores.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Serialize to the same JSON for the backend and the local store
4. Carry a small, fixed set of legal status values per entity

DESIGN DECISION: Status fields are str-Enums rather than free text so
filters behave the same remotely and locally.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from clientist.models.base import Record, UtcDatetime, new_id


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ClientStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class TaskStatus(str, Enum):
    """
    Task progress.

    Only DONE stops a task from counting as overdue.
    """
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class TaskRepeat(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class JobStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PENDING_PAYMENT = "pending_payment"
    CANCELLED = "cancelled"


class JobPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class InvoiceStatus(str, Enum):
    """
    Invoice payment state.

    CRITICAL: Only PAID invoices count towards earnings.
    """
    UNPAID = "unpaid"
    PAID = "paid"
    PARTIALLY_PAID = "partially_paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class InvoiceItemType(str, Enum):
    SERVICE = "service"
    PART = "part"
    LABOR = "labor"
    OTHER = "other"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    UPI = "upi"
    OTHER = "other"


class LeadStatus(str, Enum):
    NEW_LEAD = "new_lead"
    CALL_LATER = "call_later"
    HOT_LEAD = "hot_lead"
    PRICE_REQUESTED = "price_requested"
    CLOSED_CONVERTED = "closed_converted"
    LOST = "lost"


class LeadSource(str, Enum):
    PHONE_CALL = "phone_call"
    WHATSAPP = "whatsapp"
    REFERRAL = "referral"
    WEBSITE = "website"
    OTHER = "other"


# =============================================================================
# CLIENTS
# =============================================================================

class Client(Record):
    """A customer of the business."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Client display name"
    )
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=200)
    address: Optional[str] = Field(default=None, max_length=500)
    tags: list[str] = Field(default_factory=list)
    category: Optional[str] = Field(default=None, max_length=100)
    priority: int = Field(default=0, ge=0, le=5)
    status: ClientStatus = Field(default=ClientStatus.ACTIVE)
    notes: Optional[str] = Field(default=None, max_length=2000)
    attachments: list[str] = Field(default_factory=list)
    custom_fields: dict[str, str] = Field(
        default_factory=dict,
        description="User-defined key/value fields"
    )
    profile_picture_url: Optional[str] = None
    is_vip: bool = False
    last_activity_at: Optional[UtcDatetime] = Field(
        default=None,
        description="Last time anything happened with this client"
    )


# =============================================================================
# TASKS & REMINDERS
# =============================================================================

class ChecklistItem(BaseModel):
    """One tick-box inside a task."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=new_id)
    text: str = Field(..., min_length=1, max_length=200)
    done: bool = False


class Task(Record):
    """A to-do attached to a client."""

    client_id: UUID = Field(
        ...,
        description="Owning client"
    )
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    due_date: Optional[UtcDatetime] = None
    status: TaskStatus = Field(default=TaskStatus.TODO)
    checklist: list[ChecklistItem] = Field(default_factory=list)
    reminder_at: Optional[UtcDatetime] = None
    repeat: TaskRepeat = Field(default=TaskRepeat.NONE)

    def is_overdue(self, now: UtcDatetime) -> bool:
        """Past its due date and not done."""
        return (
            self.due_date is not None
            and self.due_date < now
            and self.status != TaskStatus.DONE
        )


class Reminder(Record):
    """A dated reminder for a client; also scheduled as a notification."""

    client_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    at: UtcDatetime = Field(
        ...,
        description="When the reminder should fire"
    )


# =============================================================================
# JOBS
# =============================================================================

class Job(Record):
    """A work order for a client."""

    client_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    location_address: Optional[str] = Field(default=None, max_length=500)
    status: JobStatus = Field(default=JobStatus.IN_PROGRESS)
    priority: JobPriority = Field(default=JobPriority.NORMAL)
    job_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    parts_cost: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    labor_cost: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    total_cost: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    scheduled_date: Optional[UtcDatetime] = None
    technician_notes: Optional[str] = Field(default=None, max_length=2000)
    is_urgent: bool = False

    @model_validator(mode='after')
    def fill_total_cost(self) -> 'Job':
        if self.total_cost is None:
            if self.job_price is not None:
                self.total_cost = self.job_price
            else:
                self.total_cost = self.parts_cost + self.labor_cost
        return self

    @property
    def is_open(self) -> bool:
        return self.status not in (JobStatus.COMPLETED, JobStatus.CANCELLED)


# =============================================================================
# INVOICES & PAYMENTS
# =============================================================================

class InvoiceItem(BaseModel):
    """A line on an invoice."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=new_id)
    description: str = Field(..., min_length=1, max_length=200)
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    amount: Optional[Decimal] = Field(default=None, ge=0)
    item_type: InvoiceItemType = Field(default=InvoiceItemType.SERVICE)

    @model_validator(mode='after')
    def fill_amount(self) -> 'InvoiceItem':
        if self.amount is None:
            self.amount = self.quantity * self.unit_price
        return self


class Invoice(Record):
    """
    An invoice issued to a client.

    Totals are derived when not given:
    subtotal = sum of item amounts, total = subtotal + tax - discount,
    amount_due = total - amount_paid. An invoice with no items but a
    given total gets the subtotal that total implies.
    """

    client_id: UUID
    job_id: Optional[UUID] = None
    invoice_number: str = Field(..., min_length=1, max_length=50)
    invoice_date: date = Field(default_factory=date.today)
    due_date: Optional[date] = None
    status: InvoiceStatus = Field(default=InvoiceStatus.UNPAID)
    items: list[InvoiceItem] = Field(default_factory=list)
    subtotal: Optional[Decimal] = Field(default=None, ge=0)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    total_amount: Optional[Decimal] = Field(default=None, ge=0)
    amount_paid: Decimal = Field(default=Decimal("0"), ge=0)
    amount_due: Optional[Decimal] = None
    notes: Optional[str] = Field(default=None, max_length=2000)

    @model_validator(mode='after')
    def fill_totals(self) -> 'Invoice':
        if self.subtotal is None:
            if not self.items and self.total_amount is not None:
                implied = self.total_amount - self.tax_amount + self.discount_amount
                self.subtotal = max(implied, Decimal("0"))
            else:
                self.subtotal = sum(
                    (item.amount for item in self.items), Decimal("0")
                )
        if self.total_amount is None:
            total = self.subtotal + self.tax_amount - self.discount_amount
            self.total_amount = max(total, Decimal("0"))
        if self.amount_due is None:
            self.amount_due = self.total_amount - self.amount_paid
        return self

    @property
    def is_outstanding(self) -> bool:
        return self.status not in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)


class Payment(Record):
    """Money received from a client, optionally against an invoice."""

    client_id: UUID
    invoice_id: Optional[UUID] = None
    job_id: Optional[UUID] = None
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_date: date = Field(default_factory=date.today)
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH)
    notes: Optional[str] = Field(default=None, max_length=1000)


# =============================================================================
# LEADS
# =============================================================================

class Lead(Record):
    """A prospective client."""

    full_name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=200)
    service_interested: Optional[str] = Field(default=None, max_length=200)
    source: Optional[LeadSource] = None
    status: LeadStatus = Field(default=LeadStatus.NEW_LEAD)
    notes: Optional[str] = Field(default=None, max_length=2000)
    expected_value: Optional[Decimal] = Field(default=None, ge=0)
    next_follow_up: Optional[UtcDatetime] = None
    converted_client_id: Optional[UUID] = None
    conversion_date: Optional[UtcDatetime] = None
