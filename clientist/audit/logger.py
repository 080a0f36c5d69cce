"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of user actions
2. The only visible trace of remote calls that silently fell back to
   the local store
3. Debugging capability for best-effort side effects

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

import structlog

from clientist.models.audit import AuditEvent, AuditEventBuilder
from clientist.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (append-only, when configured)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("clientist.audit")

    async def log(self, event: AuditEvent, persist: bool = True) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available and persist
        is set.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage and persist:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_record_created(
        self,
        entity_type: str,
        entity_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_created(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    async def log_record_updated(
        self,
        entity_type: str,
        entity_id: UUID,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_updated(
            entity_type=entity_type,
            entity_id=entity_id,
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_record_deleted(
        self,
        entity_type: str,
        entity_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_deleted(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    async def log_remote_fallback(
        self,
        table: str,
        operation: str,
        error_message: str,
        persist: bool = True,
    ) -> None:
        """
        Log that a backend call failed and the local store was used.

        Reads fall back on every render while offline, so callers pass
        persist=False for them and they only reach the structured log.
        """
        await self.log(
            AuditEventBuilder.remote_fallback(
                table=table,
                operation=operation,
                error_message=error_message,
            ),
            persist=persist,
        )

    async def log_validation_failed(
        self,
        form: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            form=form,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_lead_converted(
        self,
        lead_id: UUID,
        client_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.lead_converted(
            lead_id=lead_id,
            client_id=client_id,
            correlation_id=correlation_id,
        ))

    async def log_payment_recorded(
        self,
        payment_id: UUID,
        amount: str,
        invoice_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.payment_recorded(
            payment_id=payment_id,
            amount=amount,
            invoice_id=invoice_id,
            correlation_id=correlation_id,
        ))

    async def log_notification_scheduled(
        self,
        notification_id: str,
        category: str,
        fire_at: datetime,
    ) -> None:
        await self.log(AuditEventBuilder.notification_scheduled(
            notification_id=notification_id,
            category=category,
            fire_at=fire_at,
        ))

    async def log_notification_failed(
        self,
        title: str,
        error_message: str,
    ) -> None:
        await self.log(AuditEventBuilder.notification_failed(
            title=title,
            error_message=error_message,
        ))

    async def log_image_saved(self, client_id: UUID, uri: str) -> None:
        await self.log(AuditEventBuilder.image_saved(client_id=client_id, uri=uri))

    async def log_image_deleted(self, client_id: UUID) -> None:
        await self.log(AuditEventBuilder.image_deleted(client_id=client_id))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step user action (e.g. lead conversion).
    """
    return uuid4()
