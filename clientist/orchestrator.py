"""
Main Orchestrator for Clientist

This module ties together all the components and defines the
end-to-end flows for:
1. Clients (create/edit/delete, custom fields, tasks, reminders, picture)
2. Billing (jobs, invoices, payments applied to invoices)
3. Leads (capture, status changes, conversion into a client)
4. Dashboard (counters and earnings)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written unless the form passed validation
- Side effects (notifications, pictures) never undo a saved record
- Every step is audited

Storage degradation is NOT visible here: repositories fall back to the
local store on their own and callers cannot tell the difference.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Union
from uuid import UUID

import structlog
from pydantic_core import to_jsonable_python

from clientist.audit import AuditLogger, create_correlation_id
from clientist.config import Settings, get_settings
from clientist.models import (
    Client,
    Invoice,
    Job,
    Lead,
    LeadStatus,
    Payment,
    Reminder,
    Task,
    TaskStatus,
    ValidationResult,
    utc_now,
)
from clientist.models.base import UTC
from clientist.queries import DashboardOverview, EarningsSummary, ServiceProviderStats
from clientist.repositories import (
    ClientRepository,
    InvoiceRepository,
    JobRepository,
    LeadRepository,
    PaymentRepository,
    ReminderRepository,
    TaskRepository,
)
from clientist.services.images import LocalImageStore
from clientist.services.notifications import (
    DateTrigger,
    LocalNotificationScheduler,
    NotificationCategory,
    NotificationSchedulerInterface,
)
from clientist.services.storage import (
    JsonFileKeyValueStore,
    KeyValueStoreInterface,
    LocalAuditStorage,
    NotFoundError,
    OfflineBackend,
    RemoteBackendInterface,
    SupabaseBackend,
    SupabaseClient,
)
from clientist.validation import FormValidationError, FormValidator


logger = structlog.get_logger(__name__)

# Invoice due-date notifications fire at this time of day (UTC)
INVOICE_REMINDER_TIME = time(9, 0)


async def _reject_if_invalid(
    validator: FormValidator,
    result: ValidationResult,
    audit_logger: Optional[AuditLogger],
    correlation_id: Optional[UUID] = None,
) -> None:
    """Raise FormValidationError (after auditing it) if the form failed."""
    if result.is_valid:
        return

    if audit_logger:
        await audit_logger.log_validation_failed(
            form=result.form,
            issues=[
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in result.issues
            ],
            correlation_id=correlation_id,
        )

    raise FormValidationError(result, validator.get_user_friendly_summary(result))


async def _schedule_best_effort(
    scheduler: Optional[NotificationSchedulerInterface],
    audit_logger: Optional[AuditLogger],
    title: str,
    at: datetime,
    category: NotificationCategory,
    body: str = "",
    data: Optional[dict[str, Any]] = None,
) -> Optional[str]:
    if scheduler is None:
        return None
    try:
        return await scheduler.schedule(
            title=title,
            trigger=DateTrigger(at=at),
            body=body,
            category=category,
            data=data,
        )
    except Exception as e:
        if audit_logger:
            await audit_logger.log_notification_failed(title=title, error_message=str(e))
        else:
            logger.warning("notification_failed", title=title, error=str(e))
        return None


class ClientFlow:
    """
    Orchestrates everything that happens on a client's page.

    Deleting a client also removes its local profile picture.
    """

    def __init__(
        self,
        clients: ClientRepository,
        tasks: TaskRepository,
        reminders: ReminderRepository,
        validator: Optional[FormValidator] = None,
        images: Optional[LocalImageStore] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._clients = clients
        self._tasks = tasks
        self._reminders = reminders
        self._validator = validator or FormValidator()
        self._images = images
        self._audit_logger = audit_logger

    async def list_clients(self, owner_id: Optional[str] = None) -> list[Client]:
        return await self._clients.list_clients(owner_id)

    async def get_client(self, client_id: UUID) -> Optional[Client]:
        return await self._clients.get(client_id)

    async def create_client(
        self,
        data: dict[str, Any],
        owner_id: Optional[str] = None,
    ) -> Client:
        """
        Validate and save a new client.

        Raises:
            FormValidationError: The form has errors; nothing was written
        """
        result = self._validator.validate_client(data)
        await _reject_if_invalid(self._validator, result, self._audit_logger)

        client = Client.model_validate({"last_activity_at": utc_now(), **data})
        client = await self._clients.create(client, owner_id=owner_id)

        if self._audit_logger:
            await self._audit_logger.log_record_created("client", client.id)

        return client

    async def update_client(
        self,
        client_id: UUID,
        changes: dict[str, Any],
    ) -> Optional[Client]:
        """
        Validate and apply changes to an existing client.

        Returns None if the client does not exist.
        """
        current = await self._clients.get(client_id)
        if current is None:
            return None

        merged = {**current.to_row(), **to_jsonable_python(changes)}
        result = self._validator.validate_client(merged)
        await _reject_if_invalid(self._validator, result, self._audit_logger)

        updated = await self._clients.update(
            client_id, {**changes, "last_activity_at": utc_now()}
        )

        if updated and self._audit_logger:
            await self._audit_logger.log_record_updated("client", client_id, sorted(changes))

        return updated

    async def delete_client(self, client_id: UUID) -> bool:
        deleted = await self._clients.delete(client_id)

        if self._images:
            if await self._images.cleanup(client_id) and self._audit_logger:
                await self._audit_logger.log_image_deleted(client_id)

        if deleted and self._audit_logger:
            await self._audit_logger.log_record_deleted("client", client_id)

        return deleted

    async def set_custom_field(
        self,
        client_id: UUID,
        key: str,
        value: str,
    ) -> Optional[Client]:
        result = self._validator.validate_custom_field(key, value)
        await _reject_if_invalid(self._validator, result, self._audit_logger)
        key = key.strip()

        updated = await self._clients.upsert_custom_field(client_id, key, value)

        if updated and self._audit_logger:
            await self._audit_logger.log_record_updated(
                "client", client_id, [f"custom_fields.{key}"]
            )

        return updated

    async def add_task(
        self,
        client_id: UUID,
        data: dict[str, Any],
        owner_id: Optional[str] = None,
    ) -> Task:
        form = {**data, "client_id": client_id}
        result = self._validator.validate_task(form)
        await _reject_if_invalid(self._validator, result, self._audit_logger)

        task = await self._tasks.create(Task.model_validate(form), owner_id=owner_id)
        await self._clients.touch(client_id)

        if self._audit_logger:
            await self._audit_logger.log_record_created("task", task.id)

        return task

    async def list_tasks(self, client_id: UUID) -> list[Task]:
        return await self._tasks.list_tasks(client_id)

    async def set_task_status(self, task_id: UUID, status: TaskStatus) -> Optional[Task]:
        task = await self._tasks.set_status(task_id, status)

        if task:
            await self._clients.touch(task.client_id)
            if self._audit_logger:
                await self._audit_logger.log_record_updated("task", task_id, ["status"])

        return task

    async def add_reminder(
        self,
        client_id: UUID,
        title: str,
        at: datetime,
        owner_id: Optional[str] = None,
    ) -> Reminder:
        result = self._validator.validate_reminder(
            {"client_id": client_id, "title": title, "at": at}
        )
        await _reject_if_invalid(self._validator, result, self._audit_logger)

        reminder = await self._reminders.create_reminder(
            client_id, title, at, owner_id=owner_id
        )

        if self._audit_logger:
            await self._audit_logger.log_record_created("reminder", reminder.id)

        return reminder

    async def list_reminders(self, client_id: UUID) -> list[Reminder]:
        return await self._reminders.list_reminders(client_id)

    async def set_profile_image(
        self,
        client_id: UUID,
        source: Union[str, Path],
    ) -> str:
        """
        Store a new profile picture and point the client at it.

        Raises:
            InvalidImageError: The source is not a usable image
        """
        if self._images is None:
            raise RuntimeError("No image store configured")

        uri = await self._images.save_client_image(client_id, source)
        await self._clients.update(client_id, {"profile_picture_url": uri})

        if self._audit_logger:
            await self._audit_logger.log_image_saved(client_id, uri)

        return uri

    async def remove_profile_image(self, client_id: UUID) -> None:
        if self._images:
            await self._images.cleanup(client_id)
        await self._clients.update(client_id, {"profile_picture_url": None})

        if self._audit_logger:
            await self._audit_logger.log_image_deleted(client_id)


class BillingFlow:
    """
    Orchestrates jobs, invoices and payments.

    Flow for a payment:
    1. Validate the payment (against the invoice, if any)
    2. Save the payment
    3. Apply it to the invoice (amount_paid, amount_due, status)
    """

    def __init__(
        self,
        jobs: JobRepository,
        invoices: InvoiceRepository,
        payments: PaymentRepository,
        validator: Optional[FormValidator] = None,
        scheduler: Optional[NotificationSchedulerInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._jobs = jobs
        self._invoices = invoices
        self._payments = payments
        self._validator = validator or FormValidator()
        self._scheduler = scheduler
        self._audit_logger = audit_logger

    async def create_job(
        self,
        data: dict[str, Any],
        owner_id: Optional[str] = None,
    ) -> Job:
        result = self._validator.validate_job(data)
        await _reject_if_invalid(self._validator, result, self._audit_logger)

        job = await self._jobs.create(Job.model_validate(data), owner_id=owner_id)

        if self._audit_logger:
            await self._audit_logger.log_record_created("job", job.id)

        return job

    async def create_invoice(
        self,
        data: dict[str, Any],
        owner_id: Optional[str] = None,
    ) -> Invoice:
        """
        Validate and save an invoice; totals are computed from its items.

        A due date also schedules an invoice notification (best-effort).
        """
        result = self._validator.validate_invoice(data)
        await _reject_if_invalid(self._validator, result, self._audit_logger)

        invoice = await self._invoices.create(Invoice.model_validate(data), owner_id=owner_id)

        if self._audit_logger:
            await self._audit_logger.log_record_created("invoice", invoice.id)

        if invoice.due_date:
            await _schedule_best_effort(
                self._scheduler,
                self._audit_logger,
                title=f"Invoice {invoice.invoice_number} is due",
                at=datetime.combine(invoice.due_date, INVOICE_REMINDER_TIME, tzinfo=UTC),
                category=NotificationCategory.INVOICES,
                data={"invoice_id": str(invoice.id)},
            )

        return invoice

    async def record_payment(
        self,
        data: dict[str, Any],
        owner_id: Optional[str] = None,
    ) -> tuple[Payment, Optional[Invoice]]:
        """
        Save a payment and apply it to its invoice.

        Returns:
            (payment, updated_invoice) - the invoice is None when the
            payment is not linked to one

        Raises:
            FormValidationError: The form has errors; nothing was written
            NotFoundError: The linked invoice does not exist
        """
        correlation_id = create_correlation_id()

        invoice = None
        invoice_id = data.get("invoice_id")
        if invoice_id:
            invoice = await self._invoices.get(UUID(str(invoice_id)))
            if invoice is None:
                raise NotFoundError(f"Invoice not found: {invoice_id}")

        result = self._validator.validate_payment(data, invoice=invoice)
        await _reject_if_invalid(self._validator, result, self._audit_logger, correlation_id)

        payment = await self._payments.create(Payment.model_validate(data), owner_id=owner_id)

        updated = None
        if invoice is not None:
            updated = await self._invoices.apply_payment(invoice.id, payment.amount)

        if self._audit_logger:
            await self._audit_logger.log_payment_recorded(
                payment_id=payment.id,
                amount=str(payment.amount),
                invoice_id=payment.invoice_id,
                correlation_id=correlation_id,
            )

        return payment, updated


class LeadFlow:
    """
    Orchestrates leads, from first contact to conversion.

    Converting a lead:
    1. Creates a client from the lead's contact details
    2. Marks the lead CLOSED_CONVERTED
    3. Stores the new client's id and the conversion time on the lead
    """

    def __init__(
        self,
        leads: LeadRepository,
        clients: ClientRepository,
        validator: Optional[FormValidator] = None,
        scheduler: Optional[NotificationSchedulerInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._leads = leads
        self._clients = clients
        self._validator = validator or FormValidator()
        self._scheduler = scheduler
        self._audit_logger = audit_logger

    async def list_leads(
        self,
        owner_id: Optional[str] = None,
        status: Optional[LeadStatus] = None,
    ) -> list[Lead]:
        return await self._leads.list_leads(owner_id, status)

    async def create_lead(
        self,
        data: dict[str, Any],
        owner_id: Optional[str] = None,
    ) -> Lead:
        result = self._validator.validate_lead(data)
        await _reject_if_invalid(self._validator, result, self._audit_logger)

        lead = await self._leads.create(Lead.model_validate(data), owner_id=owner_id)

        if self._audit_logger:
            await self._audit_logger.log_record_created("lead", lead.id)

        if lead.next_follow_up:
            await _schedule_best_effort(
                self._scheduler,
                self._audit_logger,
                title=f"Follow up with {lead.full_name}",
                at=lead.next_follow_up,
                category=NotificationCategory.LEADS,
                data={"lead_id": str(lead.id)},
            )

        return lead

    async def update_status(self, lead_id: UUID, status: LeadStatus) -> Optional[Lead]:
        lead = await self._leads.update(lead_id, {"status": status})

        if lead and self._audit_logger:
            await self._audit_logger.log_record_updated("lead", lead_id, ["status"])

        return lead

    async def convert_to_client(
        self,
        lead_id: UUID,
        owner_id: Optional[str] = None,
        overrides: Optional[dict[str, Any]] = None,
    ) -> tuple[Lead, Client]:
        """
        Turn a lead into a client.

        A lead that was already converted returns its existing client.

        Raises:
            NotFoundError: No such lead (or its converted client is gone)
            FormValidationError: The resulting client form has errors
        """
        correlation_id = create_correlation_id()

        lead = await self._leads.get(lead_id)
        if lead is None:
            raise NotFoundError(f"Lead not found: {lead_id}")

        if lead.status == LeadStatus.CLOSED_CONVERTED and lead.converted_client_id:
            client = await self._clients.get(lead.converted_client_id)
            if client is None:
                raise NotFoundError(f"Converted client not found: {lead.converted_client_id}")
            return lead, client

        form = {
            "name": lead.full_name,
            "phone": lead.phone,
            "email": lead.email,
            "notes": lead.notes,
            **(overrides or {}),
        }
        result = self._validator.validate_client(form)
        await _reject_if_invalid(self._validator, result, self._audit_logger, correlation_id)

        client = Client.model_validate({"last_activity_at": utc_now(), **form})
        client = await self._clients.create(client, owner_id=owner_id or lead.user_id)

        updated = await self._leads.mark_converted(lead_id, client.id)

        if self._audit_logger:
            await self._audit_logger.log_record_created("client", client.id, correlation_id)
            await self._audit_logger.log_lead_converted(lead_id, client.id, correlation_id)

        return updated or lead, client


class DashboardFlow:
    """Loads records and computes the dashboard's numbers."""

    def __init__(
        self,
        clients: ClientRepository,
        tasks: TaskRepository,
        jobs: JobRepository,
        invoices: InvoiceRepository,
        leads: LeadRepository,
        follow_up_days: int = 7,
        upcoming_limit: int = 5,
    ):
        self._clients = clients
        self._tasks = tasks
        self._jobs = jobs
        self._invoices = invoices
        self._leads = leads
        self._follow_up_days = follow_up_days
        self._upcoming_limit = upcoming_limit

    async def load_overview(
        self,
        owner_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DashboardOverview:
        clients = await self._clients.list_clients(owner_id)
        # Tasks are loaded per client
        per_client = await asyncio.gather(
            *(self._tasks.list_tasks(client.id) for client in clients)
        )
        tasks = [task for client_tasks in per_client for task in client_tasks]

        return DashboardOverview.from_records(
            clients,
            tasks,
            now=now,
            follow_up_days=self._follow_up_days,
            upcoming_limit=self._upcoming_limit,
        )

    async def load_service_provider_stats(
        self,
        owner_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ServiceProviderStats:
        clients, jobs, invoices, leads = await asyncio.gather(
            self._clients.list_clients(owner_id),
            self._jobs.list_jobs(owner_id),
            self._invoices.list_invoices(owner_id),
            self._leads.list_leads(owner_id),
        )
        return ServiceProviderStats.from_records(clients, jobs, invoices, leads, now=now)

    async def load_earnings(
        self,
        owner_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> EarningsSummary:
        invoices = await self._invoices.list_invoices(owner_id)
        return EarningsSummary.from_invoices(invoices, now=now)


@dataclass
class AppComponents:
    """Everything the app needs, wired together."""

    settings: Settings
    backend: RemoteBackendInterface
    store: KeyValueStoreInterface
    audit_logger: AuditLogger
    scheduler: LocalNotificationScheduler
    images: LocalImageStore
    clients: ClientRepository
    tasks: TaskRepository
    reminders: ReminderRepository
    jobs: JobRepository
    invoices: InvoiceRepository
    payments: PaymentRepository
    leads: LeadRepository
    client_flow: ClientFlow
    billing_flow: BillingFlow
    lead_flow: LeadFlow
    dashboard_flow: DashboardFlow

    async def current_user_id(self) -> Optional[str]:
        """Signed-in user id, or None when there is no session."""
        try:
            return await self.backend.current_user_id()
        except Exception as e:
            logger.info("no_user_session", error=str(e))
            return None


def create_app_components(
    settings: Optional[Settings] = None,
    backend: Optional[RemoteBackendInterface] = None,
    local_store: Optional[KeyValueStoreInterface] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to get_settings())
        backend: Remote backend. If None, Supabase is configured from
                 settings; if that fails the app runs local-only.
        local_store: Key-value store for the fallback copies. If None,
                     a JSON file store in the configured data directory.
    """
    settings = settings or get_settings()
    storage_settings = settings.storage
    app_settings = settings.app

    store = local_store or JsonFileKeyValueStore(storage_settings.data_dir)
    audit_logger = AuditLogger(LocalAuditStorage(store))

    if backend is None:
        try:
            backend = SupabaseBackend(SupabaseClient(settings.supabase))
        except Exception as e:
            # Backend not configured - continue local-only
            logger.warning("backend_not_configured", error=str(e))
            backend = OfflineBackend()

    scheduler = LocalNotificationScheduler(
        store,
        audit_logger=audit_logger,
        enabled=settings.notifications.enabled,
    )
    images = LocalImageStore(
        storage_settings.images_dir,
        supported_formats=tuple(app_settings.supported_formats_list),
    )
    validator = FormValidator(max_amount=Decimal(str(app_settings.max_invoice_amount)))

    clients = ClientRepository(backend, store, audit_logger)
    tasks = TaskRepository(backend, store, audit_logger)
    reminders = ReminderRepository(backend, store, audit_logger, scheduler=scheduler)
    jobs = JobRepository(backend, store, audit_logger)
    invoices = InvoiceRepository(backend, store, audit_logger)
    payments = PaymentRepository(backend, store, audit_logger)
    leads = LeadRepository(backend, store, audit_logger)

    return AppComponents(
        settings=settings,
        backend=backend,
        store=store,
        audit_logger=audit_logger,
        scheduler=scheduler,
        images=images,
        clients=clients,
        tasks=tasks,
        reminders=reminders,
        jobs=jobs,
        invoices=invoices,
        payments=payments,
        leads=leads,
        client_flow=ClientFlow(
            clients, tasks, reminders,
            validator=validator,
            images=images,
            audit_logger=audit_logger,
        ),
        billing_flow=BillingFlow(
            jobs, invoices, payments,
            validator=validator,
            scheduler=scheduler,
            audit_logger=audit_logger,
        ),
        lead_flow=LeadFlow(
            leads, clients,
            validator=validator,
            scheduler=scheduler,
            audit_logger=audit_logger,
        ),
        dashboard_flow=DashboardFlow(
            clients, tasks, jobs, invoices, leads,
            follow_up_days=app_settings.follow_up_days,
            upcoming_limit=app_settings.upcoming_limit,
        ),
    )
