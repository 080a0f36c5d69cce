"""Payments received."""

from typing import Optional
from uuid import UUID

from clientist.models import Payment
from clientist.repositories.base import FallbackRepository


class PaymentRepository(FallbackRepository[Payment]):
    table = "payments"
    storage_key = "clientist_payments"
    model = Payment
    entity_type = "payment"
    parent_field = "client_id"
    order_by = [("payment_date", True), ("created_at", True)]

    async def list_payments(
        self,
        owner_id: Optional[str],
        client_id: Optional[UUID] = None,
        invoice_id: Optional[UUID] = None,
    ) -> list[Payment]:
        return await self.list_records(
            owner_id=owner_id,
            parent_id=client_id,
            invoice_id=invoice_id,
        )
