"""
Remote-first Repository with Local Fallback

DESIGN DECISION: Every read and write first goes to the hosted backend.
If that call raises anything at all (network, auth, schema, a malformed
row), the same operation is applied to the JSON array stored under the
entity's fixed key in the local key-value store instead.

GUARANTEES:
- Reads always return a list (possibly empty) or a single record/None
- Callers never learn whether the remote or the local copy served them
- Local writes rewrite the whole collection (prepend on create,
  replace-by-id on update, filter-out on delete)

KNOWN WEAKNESSES (kept on purpose, there is no sync engine):
- Staleness is invisible to the caller
- Last writer wins: two concurrent fallback writes to the same key race
  and the later one silently drops the earlier one
- Records written locally are never pushed to the backend later
"""

from typing import Any, ClassVar, Generic, Optional, TypeVar
from uuid import UUID

import structlog
from pydantic_core import to_jsonable_python

from clientist.audit import AuditLogger
from clientist.models.base import Record, utc_now
from clientist.services.storage import (
    KeyValueStoreInterface,
    RemoteBackendInterface,
    load,
    save,
)
from clientist.services.storage.interface import OrderBy


RecordT = TypeVar("RecordT", bound=Record)

logger = structlog.get_logger(__name__)


class FallbackRepository(Generic[RecordT]):
    """
    Generic remote-first accessor for one entity type.

    Subclasses set the table, the local key, the model and which column
    points at the parent record.
    """

    table: ClassVar[str]
    storage_key: ClassVar[str]
    model: ClassVar[type[Record]]
    entity_type: ClassVar[str]
    parent_field: ClassVar[Optional[str]] = None
    owner_field: ClassVar[Optional[str]] = "user_id"
    order_by: ClassVar[OrderBy] = [("created_at", True)]

    def __init__(
        self,
        backend: RemoteBackendInterface,
        store: KeyValueStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._backend = backend
        self._store = store
        self._audit_logger = audit_logger

    # ------------------------------------------------------------------
    # Reads

    async def list_records(
        self,
        owner_id: Optional[str] = None,
        parent_id: Optional[UUID] = None,
        **filters: Any,
    ) -> list[RecordT]:
        """List records matching all given filters (None values are ignored)."""
        query = self._build_filters(owner_id, parent_id, filters)
        try:
            rows = await self._backend.select(
                self.table,
                query,
                order_by=self.order_by,
            )
            return [self.model.model_validate(row) for row in rows]
        except Exception as e:
            await self._note_fallback("list", e, persist=False)
            records = await self._load_local()
            return [record for record in records if _matches(record, query)]

    async def get(self, record_id: UUID) -> Optional[RecordT]:
        try:
            rows = await self._backend.select(self.table, {"id": record_id}, limit=1)
            return self.model.model_validate(rows[0]) if rows else None
        except Exception as e:
            await self._note_fallback("get", e, persist=False)
            for record in await self._load_local():
                if record.id == record_id:
                    return record
            return None

    # ------------------------------------------------------------------
    # Writes

    async def create(
        self,
        record: RecordT,
        owner_id: Optional[str] = None,
    ) -> RecordT:
        """
        Insert a record. The returned record is the one we built, whether
        it landed remotely or only in the local store.
        """
        if owner_id is not None and self.owner_field:
            record = record.model_copy(update={self.owner_field: owner_id})

        try:
            await self._backend.insert(self.table, record.to_row())
        except Exception as e:
            await self._note_fallback("insert", e)
            records = await self._load_local()
            await self._save_local([record, *records])

        return record

    async def update(
        self,
        record_id: UUID,
        changes: dict[str, Any],
    ) -> Optional[RecordT]:
        """
        Apply changes to one record.

        Returns the updated record, or None if no record has that id.
        """
        changes = {**changes, "updated_at": utc_now()}
        try:
            rows = await self._backend.update(
                self.table,
                {"id": record_id},
                to_jsonable_python(changes),
            )
            return self.model.model_validate(rows[0]) if rows else None
        except Exception as e:
            await self._note_fallback("update", e)

        records = await self._load_local()
        updated = None
        next_records = []
        for record in records:
            if record.id == record_id:
                updated = self._merge(record, changes)
                next_records.append(updated)
            else:
                next_records.append(record)

        if updated is None:
            return None

        await self._save_local(next_records)
        return updated

    async def delete(self, record_id: UUID) -> bool:
        """Delete one record. Returns True if something was removed."""
        try:
            deleted = await self._backend.delete(self.table, {"id": record_id})
            return deleted > 0
        except Exception as e:
            await self._note_fallback("delete", e)

        records = await self._load_local()
        remaining = [record for record in records if record.id != record_id]
        if len(remaining) == len(records):
            return False

        await self._save_local(remaining)
        return True

    # ------------------------------------------------------------------
    # Helpers

    def _build_filters(
        self,
        owner_id: Optional[str],
        parent_id: Optional[UUID],
        filters: dict[str, Any],
    ) -> dict[str, Any]:
        query = {key: value for key, value in filters.items() if value is not None}
        if owner_id is not None and self.owner_field:
            query[self.owner_field] = owner_id
        if parent_id is not None:
            if not self.parent_field:
                raise ValueError(f"{self.entity_type} has no parent reference")
            query[self.parent_field] = parent_id
        return query

    def _merge(self, record: RecordT, changes: dict[str, Any]) -> RecordT:
        merged = {**record.to_row(), **to_jsonable_python(changes)}
        return self.model.model_validate(merged)

    async def _load_local(self) -> list[RecordT]:
        rows = await load(self._store, self.storage_key, [])
        if not isinstance(rows, list):
            return []
        records = []
        for row in rows:
            try:
                records.append(self.model.model_validate(row))
            except Exception:
                logger.warning(
                    "local_row_skipped",
                    key=self.storage_key,
                    row_id=row.get("id") if isinstance(row, dict) else None,
                )
        return records

    async def _save_local(self, records: list[RecordT]) -> None:
        await save(self._store, self.storage_key, [record.to_row() for record in records])

    async def _note_fallback(
        self,
        operation: str,
        error: Exception,
        persist: bool = True,
    ) -> None:
        """Report a fallback. Only writes are persisted to the audit log."""
        if self._audit_logger:
            await self._audit_logger.log_remote_fallback(
                table=self.table,
                operation=operation,
                error_message=str(error) or type(error).__name__,
                persist=persist,
            )
        else:
            logger.warning(
                "remote_fallback",
                table=self.table,
                operation=operation,
                error=str(error),
            )


def _matches(record: Record, filters: dict[str, Any]) -> bool:
    """Equality match on the record's JSON form, mirroring backend eq filters."""
    row = record.to_row()
    return all(
        row.get(column) == to_jsonable_python(value)
        for column, value in filters.items()
    )
