"""
Storage Services Package

Provides abstract interfaces and concrete implementations for both the
hosted backend (Supabase) and the on-device key-value store.
"""

from clientist.services.storage.interface import (
    AuditStorageInterface,
    AuthenticationError,
    BackendUnavailableError,
    KeyValueStoreInterface,
    NotFoundError,
    RemoteBackendInterface,
    StorageError,
)
from clientist.services.storage.local_store import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    LocalAuditStorage,
    load,
    save,
)
from clientist.services.storage.supabase_backend import (
    OfflineBackend,
    SupabaseBackend,
    SupabaseClient,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStoreInterface",
    "RemoteBackendInterface",
    # Exceptions
    "AuthenticationError",
    "BackendUnavailableError",
    "NotFoundError",
    "StorageError",
    # Local store
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "LocalAuditStorage",
    "load",
    "save",
    # Supabase implementation
    "OfflineBackend",
    "SupabaseBackend",
    "SupabaseClient",
]
