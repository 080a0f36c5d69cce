"""
Audit Models for Clientist

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of user actions (created, edited, converted, paid)
2. Visibility into silent degradation (remote call failed, local copy used)
3. Debugging information when best-effort side effects fail

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from clientist.models.base import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Record lifecycle
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"

    # Degradation
    REMOTE_FALLBACK = "remote_fallback"

    # Forms
    VALIDATION_FAILED = "validation_failed"

    # Business events
    LEAD_CONVERTED = "lead_converted"
    PAYMENT_RECORDED = "payment_recorded"

    # Side effects
    NOTIFICATION_SCHEDULED = "notification_scheduled"
    NOTIFICATION_FAILED = "notification_failed"
    IMAGE_SAVED = "image_saved"
    IMAGE_DELETED = "image_deleted"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'client', 'invoice', 'image')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., a lead conversion)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("client", client.id)
        event = AuditEventBuilder.remote_fallback("clients", "list", str(exc))
    """

    @staticmethod
    def record_created(
        entity_type: str,
        entity_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} created",
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        entity_type: str,
        entity_id: UUID,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} updated",
            details={"fields": sorted(fields)},
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        entity_type: str,
        entity_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} deleted",
            is_user_action=True,
        )

    @staticmethod
    def remote_fallback(
        table: str,
        operation: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_FALLBACK,
            severity=AuditSeverity.WARNING,
            entity_type=table,
            description=f"Backend {operation} on '{table}' failed, used local store",
            details={"table": table, "operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        form: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=form,
            correlation_id=correlation_id,
            description=f"{form.capitalize()} form rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def lead_converted(
        lead_id: UUID,
        client_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEAD_CONVERTED,
            entity_type="lead",
            entity_id=lead_id,
            correlation_id=correlation_id,
            description="Lead converted to client",
            details={"client_id": str(client_id)},
            is_user_action=True,
        )

    @staticmethod
    def payment_recorded(
        payment_id: UUID,
        amount: str,
        invoice_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            description=f"Payment recorded: {amount}",
            details={
                "amount": amount,
                "invoice_id": str(invoice_id) if invoice_id else None,
            },
            is_user_action=True,
        )

    @staticmethod
    def notification_scheduled(
        notification_id: str,
        category: str,
        fire_at: datetime,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_SCHEDULED,
            entity_type="notification",
            description=f"Notification scheduled for {fire_at.isoformat()}",
            details={
                "notification_id": notification_id,
                "category": category,
            },
        )

    @staticmethod
    def notification_failed(
        title: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="notification",
            description=f"Could not schedule notification: {title}",
            error_message=error_message,
        )

    @staticmethod
    def image_saved(
        client_id: UUID,
        uri: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMAGE_SAVED,
            entity_type="client",
            entity_id=client_id,
            description="Client profile image saved locally",
            details={"uri": uri},
            is_user_action=True,
        )

    @staticmethod
    def image_deleted(
        client_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMAGE_DELETED,
            entity_type="client",
            entity_id=client_id,
            description="Client profile image removed",
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
