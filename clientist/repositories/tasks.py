"""Tasks attached to clients."""

from typing import Optional
from uuid import UUID

from clientist.models import Task, TaskStatus
from clientist.repositories.base import FallbackRepository


class TaskRepository(FallbackRepository[Task]):
    table = "tasks"
    storage_key = "clientist_tasks"
    model = Task
    entity_type = "task"
    parent_field = "client_id"
    order_by = [("due_date", False), ("created_at", True)]

    async def list_tasks(
        self,
        client_id: UUID,
        status: Optional[TaskStatus] = None,
    ) -> list[Task]:
        return await self.list_records(parent_id=client_id, status=status)

    async def set_status(self, task_id: UUID, status: TaskStatus) -> Optional[Task]:
        return await self.update(task_id, {"status": status})
