"""Jobs (work orders)."""

from typing import Optional
from uuid import UUID

from clientist.models import Job, JobStatus
from clientist.repositories.base import FallbackRepository


class JobRepository(FallbackRepository[Job]):
    table = "jobs"
    storage_key = "clientist_jobs"
    model = Job
    entity_type = "job"
    parent_field = "client_id"

    async def list_jobs(
        self,
        owner_id: Optional[str],
        status: Optional[JobStatus] = None,
        client_id: Optional[UUID] = None,
    ) -> list[Job]:
        return await self.list_records(owner_id=owner_id, parent_id=client_id, status=status)
