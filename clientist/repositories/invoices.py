"""
Invoices

Payment application rule:
- amount_paid grows by the payment amount
- amount_due = total_amount - amount_paid
- status is PAID once amount_paid reaches the total, PARTIALLY_PAID
  while something has been paid, UNPAID otherwise

subtotal, total_amount and amount_due are derived. An update that changes
what they are derived from recomputes them, unless the caller sets them.
"""

from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic_core import to_jsonable_python

from clientist.models import Invoice, InvoiceStatus
from clientist.repositories.base import FallbackRepository


def stale_totals(changes: dict[str, Any]) -> set[str]:
    """Derived fields that changes make stale and does not set itself."""
    stale = set()
    if "items" in changes:
        stale.add("subtotal")
    if stale or changes.keys() & {"subtotal", "tax_amount", "discount_amount"}:
        stale.add("total_amount")
    if stale or changes.keys() & {"total_amount", "amount_paid"}:
        stale.add("amount_due")
    return stale - changes.keys()


def recompute_totals(invoice: Invoice, changes: dict[str, Any]) -> Invoice:
    """The invoice with changes applied and its stale totals derived again."""
    row = invoice.to_row()
    for field in stale_totals(changes):
        row.pop(field, None)
    return Invoice.model_validate({**row, **to_jsonable_python(changes)})


def payment_status(total_amount: Decimal, amount_paid: Decimal) -> InvoiceStatus:
    if amount_paid >= total_amount:
        return InvoiceStatus.PAID
    if amount_paid > 0:
        return InvoiceStatus.PARTIALLY_PAID
    return InvoiceStatus.UNPAID


class InvoiceRepository(FallbackRepository[Invoice]):
    table = "invoices"
    storage_key = "clientist_invoices"
    model = Invoice
    entity_type = "invoice"
    parent_field = "client_id"
    order_by = [("invoice_date", True), ("created_at", True)]

    async def list_invoices(
        self,
        owner_id: Optional[str],
        status: Optional[InvoiceStatus] = None,
        client_id: Optional[UUID] = None,
    ) -> list[Invoice]:
        return await self.list_records(owner_id=owner_id, parent_id=client_id, status=status)

    async def apply_payment(
        self,
        invoice_id: UUID,
        amount: Decimal,
    ) -> Optional[Invoice]:
        """
        Add a payment to the invoice's running totals.

        Returns the updated invoice, or None if the invoice does not exist.
        """
        invoice = await self.get(invoice_id)
        if invoice is None:
            return None

        amount_paid = invoice.amount_paid + Decimal(amount)
        return await self.update(invoice_id, {
            "amount_paid": amount_paid,
            "amount_due": invoice.total_amount - amount_paid,
            "status": payment_status(invoice.total_amount, amount_paid),
        })

    async def update(
        self,
        record_id: UUID,
        changes: dict[str, Any],
    ) -> Optional[Invoice]:
        stale = stale_totals(changes)
        if stale:
            current = await self.get(record_id)
            if current is None:
                return None
            recomputed = recompute_totals(current, changes)
            changes = {**changes, **{field: getattr(recomputed, field) for field in stale}}
        return await super().update(record_id, changes)
