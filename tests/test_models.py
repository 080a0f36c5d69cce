"""
Tests for Clientist

Test strategy:
1. Unit tests for individual components (models, validators, queries)
2. Integration tests for repositories and flows (with fake backends)
3. No real backend calls in tests
"""

import importlib

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from clientist.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Client,
    ClientStatus,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    Job,
    Lead,
    LeadStatus,
    Payment,
    Task,
    TaskStatus,
    ensure_utc,
    new_id,
)


UTC = timezone.utc


class TestRecordBase:
    """Tests for fields every record shares."""

    def test_ids_are_generated_client_side(self):
        """Test that each record gets its own uuid4 without a server."""
        a = Client(name="Asha")
        b = Client(name="Ben")
        assert isinstance(a.id, UUID)
        assert a.id != b.id
        assert a.id.version == 4

    def test_new_id_is_uuid4(self):
        """Test the single id factory."""
        assert new_id().version == 4

    def test_timestamps_are_utc(self):
        """Test created_at/updated_at are timezone-aware UTC."""
        client = Client(name="Asha")
        assert client.created_at.tzinfo is not None
        assert client.created_at.utcoffset() == timedelta(0)

    def test_naive_datetimes_are_treated_as_utc(self):
        """Test that a naive datetime is read as UTC."""
        naive = datetime(2024, 1, 15, 10, 30)
        assert ensure_utc(naive) == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)

    def test_aware_datetimes_are_converted_to_utc(self):
        """Test that other offsets are converted to UTC."""
        ist = timezone(timedelta(hours=5, minutes=30))
        value = ensure_utc(datetime(2024, 1, 15, 16, 0, tzinfo=ist))
        assert value == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)

    def test_row_round_trip(self):
        """Test a record survives to_row/from_row unchanged."""
        client = Client(name="Asha", tags=["vip"], custom_fields={"Gate code": "1234"})
        assert Client.from_row(client.to_row()) == client

    def test_unknown_columns_are_ignored(self):
        """Test rows with joined/extra columns still parse."""
        row = Client(name="Asha").to_row()
        row["joined_column"] = {"anything": 1}
        assert Client.from_row(row).name == "Asha"


class TestClientModel:
    """Tests for the Client model."""

    def test_client_defaults(self):
        """Test default values."""
        client = Client(name="  Asha  ")
        assert client.name == "Asha"
        assert client.status == ClientStatus.ACTIVE
        assert client.custom_fields == {}
        assert client.is_vip is False

    def test_client_requires_name(self):
        """Test that a blank name is rejected."""
        with pytest.raises(ValueError):
            Client(name="   ")

    def test_client_priority_range(self):
        """Test that priority is limited to 0..5."""
        with pytest.raises(ValueError):
            Client(name="Asha", priority=6)


class TestTaskModel:
    """Tests for the overdue rule."""

    NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)

    def test_past_due_open_task_is_overdue(self):
        """Test a task past its due date and not done is overdue."""
        task = Task(client_id=uuid4(), title="Call back", due_date=self.NOW - timedelta(days=1))
        assert task.is_overdue(self.NOW)

    def test_past_due_done_task_is_not_overdue(self):
        """Test a done task is never overdue."""
        task = Task(
            client_id=uuid4(),
            title="Call back",
            due_date=self.NOW - timedelta(days=1),
            status=TaskStatus.DONE,
        )
        assert not task.is_overdue(self.NOW)

    def test_in_progress_task_can_be_overdue(self):
        """Test only DONE stops a task counting as overdue."""
        task = Task(
            client_id=uuid4(),
            title="Call back",
            due_date=self.NOW - timedelta(minutes=1),
            status=TaskStatus.IN_PROGRESS,
        )
        assert task.is_overdue(self.NOW)

    def test_future_and_undated_tasks_are_not_overdue(self):
        """Test tasks due later or without a due date."""
        future = Task(client_id=uuid4(), title="Later", due_date=self.NOW + timedelta(hours=1))
        undated = Task(client_id=uuid4(), title="Someday")
        assert not future.is_overdue(self.NOW)
        assert not undated.is_overdue(self.NOW)


class TestBillingModels:
    """Tests for jobs, invoices and payments."""

    def test_job_total_from_price(self):
        """Test job total_cost uses job_price when given."""
        job = Job(client_id=uuid4(), title="Boiler", job_price=Decimal("250.00"))
        assert job.total_cost == Decimal("250.00")

    def test_job_total_from_costs(self):
        """Test job total_cost falls back to parts + labor."""
        job = Job(
            client_id=uuid4(),
            title="Boiler",
            parts_cost=Decimal("80.00"),
            labor_cost=Decimal("120.00"),
        )
        assert job.total_cost == Decimal("200.00")
        assert job.is_open

    def test_invoice_item_amount(self):
        """Test line amount = quantity x unit price."""
        item = InvoiceItem(description="Hours", quantity=Decimal("3"), unit_price=Decimal("40.00"))
        assert item.amount == Decimal("120.00")

    def test_invoice_totals_from_items(self):
        """Test subtotal, total and amount due are derived."""
        invoice = Invoice(
            client_id=uuid4(),
            invoice_number="INV-001",
            items=[
                InvoiceItem(description="Labor", quantity=Decimal("2"), unit_price=Decimal("100.00")),
                InvoiceItem(description="Parts", amount=Decimal("50.00")),
            ],
            tax_amount=Decimal("25.00"),
            discount_amount=Decimal("15.00"),
            amount_paid=Decimal("60.00"),
        )
        assert invoice.subtotal == Decimal("250.00")
        assert invoice.total_amount == Decimal("260.00")
        assert invoice.amount_due == Decimal("200.00")
        assert invoice.is_outstanding

    def test_invoice_total_never_negative(self):
        """Test a discount larger than the subtotal clamps the total at zero."""
        invoice = Invoice(
            client_id=uuid4(),
            invoice_number="INV-002",
            items=[InvoiceItem(description="Visit", amount=Decimal("10"))],
            discount_amount=Decimal("50"),
        )
        assert invoice.total_amount == Decimal("0")

    def test_total_only_invoice_implies_subtotal(self):
        """Test an invoice given just a total gets the matching subtotal."""
        invoice = Invoice(
            client_id=uuid4(),
            invoice_number="INV-003",
            total_amount=Decimal("115"),
            tax_amount=Decimal("15"),
        )
        assert invoice.subtotal == Decimal("100")
        assert invoice.amount_due == Decimal("115")

    def test_paid_invoice_is_not_outstanding(self):
        """Test outstanding excludes paid and cancelled invoices."""
        paid = Invoice(client_id=uuid4(), invoice_number="1", total_amount=Decimal("5"), status=InvoiceStatus.PAID)
        cancelled = Invoice(client_id=uuid4(), invoice_number="2", total_amount=Decimal("5"), status=InvoiceStatus.CANCELLED)
        assert not paid.is_outstanding
        assert not cancelled.is_outstanding

    def test_invoice_dates(self):
        """Test invoice_date defaults to today."""
        invoice = Invoice(client_id=uuid4(), invoice_number="3", total_amount=Decimal("5"))
        assert invoice.invoice_date == date.today()

    def test_payment_rejects_zero_amount(self):
        """Test payments must be positive."""
        with pytest.raises(ValueError):
            Payment(client_id=uuid4(), amount=Decimal("0"))


class TestLeadModel:
    """Tests for the Lead model."""

    def test_lead_defaults(self):
        """Test a new lead starts as NEW_LEAD and unconverted."""
        lead = Lead(full_name="Dana Roy")
        assert lead.status == LeadStatus.NEW_LEAD
        assert lead.converted_client_id is None

    def test_lead_status_values(self):
        """Test lead status string values."""
        assert LeadStatus("closed_converted") == LeadStatus.CLOSED_CONVERTED
        assert LeadStatus.HOT_LEAD.value == "hot_lead"


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            severity=AuditSeverity.INFO,
            entity_type="client",
            entity_id=uuid4(),
            description="Test event",
        )
        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.event_id is not None

    def test_remote_fallback_is_a_warning(self):
        """Test fallback events are warning-level."""
        event = AuditEventBuilder.remote_fallback(
            table="clients",
            operation="insert",
            error_message="timeout",
        )
        assert event.event_type == AuditEventType.REMOTE_FALLBACK
        assert event.severity == AuditSeverity.WARNING

    def test_lead_converted_event(self):
        """Test lead conversion event carries both ids."""
        lead_id, client_id = uuid4(), uuid4()
        event = AuditEventBuilder.lead_converted(lead_id=lead_id, client_id=client_id)
        assert event.event_type == AuditEventType.LEAD_CONVERTED
        assert str(client_id) in str(event.to_log_dict())



class TestPackageImports:
    """Every layer imports cleanly on its own."""

    @pytest.mark.parametrize("module", [
        "clientist.repositories",
        "clientist.repositories.base",
        "clientist.queries",
        "clientist.validation",
        "clientist.services.notifications",
        "clientist.services.images",
        "clientist.orchestrator",
    ])
    def test_import(self, module):
        """Test the module imports without errors."""
        assert importlib.import_module(module) is not None

    def test_repository_list_does_not_shadow_builtin(self):
        """Test the generic accessor keeps list usable in its annotations."""
        from clientist.repositories.base import FallbackRepository
        assert not hasattr(FallbackRepository, "list")
        assert callable(FallbackRepository.list_records)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
