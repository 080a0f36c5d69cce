"""
Two-Stage Form Validation

DESIGN DECISION: Every form is validated in two distinct stages before
anything is written:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Types, lengths, numeric ranges, legal status values
- Delegated to the pydantic model of the record being created

STAGE 2 - SEMANTIC VALIDATION:
- Business rules the schema cannot express
- Dates in the wrong order, reminders in the past
- Suspiciously large amounts, overpayments

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can correct the form.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from clientist.config import get_settings
from clientist.models import (
    Client,
    Invoice,
    Job,
    Lead,
    Payment,
    Reminder,
    Task,
    ValidationIssue,
    ValidationResult,
    utc_now,
)


_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_PATTERN = re.compile(r"^\+?[0-9 ()-]{6,}$")


class FormValidationError(Exception):
    """Raised when a form fails validation; nothing has been written."""

    def __init__(self, result: ValidationResult, summary: Optional[str] = None):
        self.result = result
        super().__init__(summary or f"{result.form} form has {result.error_count} error(s)")


def _schema_issues(error: ValidationError) -> list[ValidationIssue]:
    issues = []
    for detail in error.errors():
        field = ".".join(str(part) for part in detail.get("loc", ())) or "form"
        missing = detail.get("type") == "missing"
        issues.append(ValidationIssue(
            field=field,
            issue_type="missing" if missing else "invalid_value",
            message=f"{field.replace('_', ' ').capitalize()}: {detail.get('msg', 'invalid value')}",
            severity="error",
            suggested_fix="This field is required" if missing else None,
        ))
    return issues


class FormValidator:
    """
    Validates raw form input for every record type.

    Each validate_* method takes the form data as a dict and returns a
    ValidationResult; it never raises for bad input.
    """

    def __init__(self, max_amount: Optional[Decimal] = None):
        if max_amount is None:
            max_amount = Decimal(str(get_settings().app.max_invoice_amount))
        self._max_amount = max_amount

    def _run(
        self,
        form: str,
        model: type[BaseModel],
        data: dict[str, Any],
        semantic: Callable[[Any], list[ValidationIssue]],
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []

        # Stage 1: Schema validation
        try:
            record = model.model_validate(data)
            schema_valid = True
        except ValidationError as e:
            record = None
            schema_valid = False
            issues.extend(_schema_issues(e))

        # Stage 2 only runs on a well-formed record
        semantic_valid = False
        if record is not None:
            semantic_issues = semantic(record)
            issues.extend(semantic_issues)
            semantic_valid = not any(issue.severity == "error" for issue in semantic_issues)

        return ValidationResult(
            form=form,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=issues,
            warnings=[issue.message for issue in issues if issue.severity == "warning"],
        )

    # ------------------------------------------------------------------
    # Shared checks

    def _contact_issues(self, email: Optional[str], phone: Optional[str]) -> list[ValidationIssue]:
        issues = []
        if email and not _EMAIL_PATTERN.match(email):
            issues.append(ValidationIssue(
                field="email",
                issue_type="invalid_format",
                message=f"'{email}' is not a valid email address",
                severity="error",
                suggested_fix="Use the form name@example.com",
            ))
        if phone and not _PHONE_PATTERN.match(phone):
            issues.append(ValidationIssue(
                field="phone",
                issue_type="invalid_format",
                message=f"'{phone}' does not look like a phone number",
                severity="error",
                suggested_fix="Use digits, spaces, dashes and an optional leading +",
            ))
        return issues

    def _amount_issues(self, field: str, amount: Optional[Decimal]) -> list[ValidationIssue]:
        if amount is not None and amount > self._max_amount:
            return [ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            )]
        return []

    def _past_date_issue(
        self,
        field: str,
        when: Optional[datetime],
        message: str,
        severity: str = "warning",
    ) -> list[ValidationIssue]:
        if when is not None and when <= utc_now():
            return [ValidationIssue(
                field=field,
                issue_type="past_date",
                message=message,
                severity=severity,
                suggested_fix="Pick a time in the future",
            )]
        return []

    # ------------------------------------------------------------------
    # Forms

    def validate_client(self, data: dict[str, Any]) -> ValidationResult:
        def semantic(client: Client) -> list[ValidationIssue]:
            issues = self._contact_issues(client.email, client.phone)
            for key in client.custom_fields:
                if not key.strip():
                    issues.append(ValidationIssue(
                        field="custom_fields",
                        issue_type="invalid_value",
                        message="Custom field names cannot be empty",
                        severity="error",
                    ))
                    break
            return issues

        return self._run("client", Client, data, semantic)

    def validate_task(self, data: dict[str, Any]) -> ValidationResult:
        def semantic(task: Task) -> list[ValidationIssue]:
            issues = self._past_date_issue(
                "due_date", task.due_date,
                "Due date is in the past; the task will show as overdue",
            )
            if task.reminder_at and task.due_date and task.reminder_at > task.due_date:
                issues.append(ValidationIssue(
                    field="reminder_at",
                    issue_type="inconsistent",
                    message="Reminder is set after the due date",
                    severity="warning",
                    suggested_fix="Remind before the task is due",
                ))
            return issues

        return self._run("task", Task, data, semantic)

    def validate_reminder(self, data: dict[str, Any]) -> ValidationResult:
        def semantic(reminder: Reminder) -> list[ValidationIssue]:
            return self._past_date_issue(
                "at", reminder.at,
                "Reminder time is in the past; no notification will be sent",
            )

        return self._run("reminder", Reminder, data, semantic)

    def validate_job(self, data: dict[str, Any]) -> ValidationResult:
        def semantic(job: Job) -> list[ValidationIssue]:
            return self._amount_issues("total_cost", job.total_cost)

        return self._run("job", Job, data, semantic)

    def validate_invoice(self, data: dict[str, Any]) -> ValidationResult:
        def semantic(invoice: Invoice) -> list[ValidationIssue]:
            issues = []
            if not invoice.items and not invoice.total_amount:
                issues.append(ValidationIssue(
                    field="items",
                    issue_type="missing",
                    message="Invoice has no line items and no total",
                    severity="error",
                    suggested_fix="Add at least one line item",
                ))
            if invoice.discount_amount > invoice.subtotal + invoice.tax_amount:
                issues.append(ValidationIssue(
                    field="discount_amount",
                    issue_type="invalid_value",
                    message="Discount is larger than the invoice amount",
                    severity="error",
                    suggested_fix="Reduce the discount",
                ))
            if invoice.due_date and invoice.due_date < invoice.invoice_date:
                issues.append(ValidationIssue(
                    field="due_date",
                    issue_type="inconsistent",
                    message="Due date is before invoice date",
                    severity="warning",
                    suggested_fix="Please verify both dates",
                ))
            issues.extend(self._amount_issues("total_amount", invoice.total_amount))
            return issues

        return self._run("invoice", Invoice, data, semantic)

    def validate_payment(
        self,
        data: dict[str, Any],
        invoice: Optional[Invoice] = None,
    ) -> ValidationResult:
        def semantic(payment: Payment) -> list[ValidationIssue]:
            issues = self._amount_issues("amount", payment.amount)
            if invoice is not None:
                if payment.invoice_id is not None and payment.invoice_id != invoice.id:
                    issues.append(ValidationIssue(
                        field="invoice_id",
                        issue_type="inconsistent",
                        message="Payment refers to a different invoice",
                        severity="error",
                    ))
                elif invoice.amount_due is not None and payment.amount > invoice.amount_due:
                    issues.append(ValidationIssue(
                        field="amount",
                        issue_type="suspicious_value",
                        message=(
                            f"Payment ({payment.amount:,.2f}) is more than the "
                            f"amount due ({invoice.amount_due:,.2f})"
                        ),
                        severity="warning",
                        suggested_fix="Please verify the amount received",
                    ))
            return issues

        return self._run("payment", Payment, data, semantic)

    def validate_lead(self, data: dict[str, Any]) -> ValidationResult:
        def semantic(lead: Lead) -> list[ValidationIssue]:
            issues = self._contact_issues(lead.email, lead.phone)
            if not lead.email and not lead.phone:
                issues.append(ValidationIssue(
                    field="phone",
                    issue_type="missing",
                    message="No way to contact this lead",
                    severity="warning",
                    suggested_fix="Add a phone number or email",
                ))
            issues.extend(self._amount_issues("expected_value", lead.expected_value))
            return issues

        return self._run("lead", Lead, data, semantic)

    def validate_custom_field(self, key: str, value: str) -> ValidationResult:
        issues = []
        if not key or not key.strip():
            issues.append(ValidationIssue(
                field="custom_fields",
                issue_type="missing",
                message="Custom field names cannot be empty",
                severity="error",
                suggested_fix="Give the field a name",
            ))
        elif len(key) > 100:
            issues.append(ValidationIssue(
                field="custom_fields",
                issue_type="invalid_value",
                message="Custom field name is too long (max 100 characters)",
                severity="error",
            ))
        if len(value) > 2000:
            issues.append(ValidationIssue(
                field="custom_fields",
                issue_type="invalid_value",
                message="Custom field value is too long (max 2000 characters)",
                severity="error",
            ))

        valid = not issues
        return ValidationResult(
            form="custom_field",
            schema_valid=valid,
            semantic_valid=valid,
            is_valid=valid,
            issues=issues,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show next to the form.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        errors = [issue for issue in result.issues if issue.severity == "error"]
        if errors:
            lines.append("❌ Please fix the following before saving:")
            for issue in errors:
                lines.append(f"  • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"    → {issue.suggested_fix}")

        if result.warnings:
            lines.append("⚠️ Please double-check:")
            for warning in result.warnings:
                lines.append(f"  • {warning}")

        return "\n".join(lines)
