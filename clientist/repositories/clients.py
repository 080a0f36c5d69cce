"""Client records."""

from typing import Optional
from uuid import UUID

from clientist.models import Client, utc_now
from clientist.repositories.base import FallbackRepository


class ClientRepository(FallbackRepository[Client]):
    table = "clients"
    storage_key = "clientist_clients"
    model = Client
    entity_type = "client"

    async def list_clients(self, owner_id: Optional[str] = None) -> list[Client]:
        return await self.list_records(owner_id=owner_id)

    async def upsert_custom_field(
        self,
        client_id: UUID,
        key: str,
        value: str,
    ) -> Optional[Client]:
        """
        Set one entry of the client's custom_fields map.

        The map is read, modified and written back as a whole, remotely
        or (on any remote failure) against the local copy.
        """
        now = utc_now()
        try:
            rows = await self._backend.select(self.table, {"id": client_id}, limit=1)
            if not rows:
                return None
            current = self.model.model_validate(rows[0])
            fields = {**current.custom_fields, key: value}
            rows = await self._backend.update(
                self.table,
                {"id": client_id},
                {"custom_fields": fields, "updated_at": now.isoformat()},
            )
            return self.model.model_validate(rows[0]) if rows else None
        except Exception as e:
            await self._note_fallback("upsert_custom_field", e)

        clients = await self._load_local()
        updated = None
        next_clients = []
        for client in clients:
            if client.id == client_id:
                updated = client.model_copy(update={
                    "custom_fields": {**client.custom_fields, key: value},
                    "updated_at": now,
                })
                next_clients.append(updated)
            else:
                next_clients.append(client)

        if updated is None:
            return None

        await self._save_local(next_clients)
        return updated

    async def touch(self, client_id: UUID) -> Optional[Client]:
        """Record activity on the client now."""
        return await self.update(client_id, {"last_activity_at": utc_now()})
