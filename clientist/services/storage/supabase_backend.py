"""
Supabase Backend Implementation

DESIGN DECISION: Supabase is the hosted backend because it gives us:
1. A real relational database with row-level security
2. Built-in auth (the signed-in user id scopes every query)
3. Storage for files, should we need it later

TRADEOFFS:
- Every call is a network round-trip; there is no offline mode here
  (the repository layer provides the local fallback)
- Only equality filters are exposed; richer filtering is done in Python

The implementation follows the abstract interface, so repositories never
import the SDK directly.
"""

from enum import Enum
from typing import Any, Optional
from uuid import UUID

from supabase import Client, create_client
from tenacity import retry, stop_after_attempt, wait_exponential

from clientist.config import SupabaseSettings, get_settings
from clientist.services.storage.interface import (
    AuthenticationError,
    BackendUnavailableError,
    OrderBy,
    RemoteBackendInterface,
    Row,
    StorageError,
)


def _plain(value: Any) -> Any:
    """Convert filter values to what PostgREST expects."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    return value


class SupabaseClient:
    """
    Low-level Supabase client wrapper.

    Handles client creation (with retries) and caches the connection.
    """

    def __init__(self, settings: Optional[SupabaseSettings] = None):
        self._client: Optional[Client] = None
        self._settings = settings or get_settings().supabase

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> Client:
        """Create the Supabase client on first use."""
        if self._client is None:
            try:
                self._client = create_client(
                    self._settings.url,
                    self._settings.key,
                )
            except Exception as e:
                raise BackendUnavailableError(f"Failed to connect to Supabase: {e}")

        return self._client


class SupabaseBackend(RemoteBackendInterface):
    """
    Supabase implementation of the remote backend.

    One table per entity; rows are the records' JSON dumps.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def current_user_id(self) -> str:
        client = self._client.connect()
        try:
            response = client.auth.get_user()
        except Exception as e:
            raise AuthenticationError(f"Failed to read session: {e}")
        if response is None or response.user is None:
            raise AuthenticationError("User not authenticated")
        return response.user.id

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[Row]:
        try:
            query = self._client.connect().table(table).select("*")
            for column, value in (filters or {}).items():
                query = query.eq(column, _plain(value))
            for column, descending in order_by or []:
                query = query.order(column, desc=descending)
            if limit is not None:
                query = query.limit(limit)
            response = query.execute()
            return list(response.data or [])
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to select from {table}: {e}")

    async def insert(self, table: str, row: Row) -> Row:
        try:
            response = self._client.connect().table(table).insert(row).execute()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert into {table}: {e}")
        if not response.data:
            raise StorageError(f"Insert into {table} returned no row")
        return response.data[0]

    async def update(
        self,
        table: str,
        filters: dict[str, Any],
        changes: Row,
    ) -> list[Row]:
        if not filters:
            raise StorageError("Refusing to update without filters")
        try:
            query = self._client.connect().table(table).update(changes)
            for column, value in filters.items():
                query = query.eq(column, _plain(value))
            response = query.execute()
            return list(response.data or [])
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {table}: {e}")

    async def delete(self, table: str, filters: dict[str, Any]) -> int:
        if not filters:
            raise StorageError("Refusing to delete without filters")
        try:
            query = self._client.connect().table(table).delete()
            for column, value in filters.items():
                query = query.eq(column, _plain(value))
            response = query.execute()
            return len(response.data or [])
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete from {table}: {e}")


class OfflineBackend(RemoteBackendInterface):
    """
    Backend used when no hosted backend is configured.

    Every call fails, so every repository call takes the local path and
    there is never a signed-in user.
    """

    async def current_user_id(self) -> str:
        raise BackendUnavailableError("No backend configured")

    async def select(self, table, filters=None, order_by=None, limit=None):
        raise BackendUnavailableError("No backend configured")

    async def insert(self, table, row):
        raise BackendUnavailableError("No backend configured")

    async def update(self, table, filters, changes):
        raise BackendUnavailableError("No backend configured")

    async def delete(self, table, filters):
        raise BackendUnavailableError("No backend configured")
