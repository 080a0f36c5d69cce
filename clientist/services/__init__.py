"""
Services package.

Sub-packages:
- storage: hosted backend (Supabase) and on-device key-value store
- notifications: local notification scheduling
- images: client profile pictures on disk

Only storage is re-exported here; notifications and images depend on
the audit logger, which itself depends on storage.
"""

from clientist.services.storage import (
    AuditStorageInterface,
    BackendUnavailableError,
    KeyValueStoreInterface,
    NotFoundError,
    RemoteBackendInterface,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "BackendUnavailableError",
    "KeyValueStoreInterface",
    "NotFoundError",
    "RemoteBackendInterface",
    "StorageError",
]
