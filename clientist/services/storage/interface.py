"""
Abstract Storage Interfaces

DESIGN DECISION: We define abstract interfaces for both storage layers.
This allows us to:
1. Swap Supabase for another hosted backend later
2. Use in-memory fakes for testing
3. Run fully local when no backend is configured
4. Keep repositories decoupled from any vendor SDK

The remote interface is intentionally small - table-scoped
select/insert/update/delete with equality filters, which is all the
app ever asks of the backend.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from clientist.models.audit import AuditEvent


Row = dict[str, Any]

# (column, descending)
OrderBy = list[tuple[str, bool]]


class RemoteBackendInterface(ABC):
    """
    Abstract interface for the hosted relational backend.

    Implementations raise StorageError (or a subclass) on any failure;
    callers in the repository layer treat every exception the same way.
    """

    @abstractmethod
    async def current_user_id(self) -> str:
        """
        Return the authenticated user's id.

        Raises:
            AuthenticationError: If no user is signed in
        """
        pass

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[Row]:
        """
        Select rows matching all equality filters.

        Args:
            table: Table name
            filters: {column: value}, combined with AND
            order_by: [(column, descending), ...]
            limit: Maximum number of rows

        Returns:
            Matching rows as dicts
        """
        pass

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """
        Insert a row and return it as stored.

        Raises:
            StorageError: If insert fails
        """
        pass

    @abstractmethod
    async def update(
        self,
        table: str,
        filters: dict[str, Any],
        changes: Row,
    ) -> list[Row]:
        """
        Update rows matching filters and return them as stored.

        Returns:
            Updated rows (empty if nothing matched)
        """
        pass

    @abstractmethod
    async def delete(self, table: str, filters: dict[str, Any]) -> int:
        """
        Delete rows matching filters.

        Returns:
            Number of rows deleted
        """
        pass


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for on-device key-value storage.

    Values are strings; callers store JSON.
    """

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Remove a key. Removing a missing key is not an error."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class BackendUnavailableError(StorageError):
    """Could not reach the storage backend."""
    pass


class AuthenticationError(StorageError):
    """No authenticated user for a backend call."""
    pass
