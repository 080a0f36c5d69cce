"""Leads (prospective clients)."""

from typing import Optional
from uuid import UUID

from clientist.models import Lead, LeadStatus, utc_now
from clientist.repositories.base import FallbackRepository


class LeadRepository(FallbackRepository[Lead]):
    table = "leads"
    storage_key = "clientist_leads"
    model = Lead
    entity_type = "lead"

    async def list_leads(
        self,
        owner_id: Optional[str],
        status: Optional[LeadStatus] = None,
    ) -> list[Lead]:
        return await self.list_records(owner_id=owner_id, status=status)

    async def mark_converted(self, lead_id: UUID, client_id: UUID) -> Optional[Lead]:
        return await self.update(lead_id, {
            "status": LeadStatus.CLOSED_CONVERTED,
            "converted_client_id": client_id,
            "conversion_date": utc_now(),
        })
