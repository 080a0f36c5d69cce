"""
On-device Key-Value Storage

The local fallback store holds one JSON document per fixed string key
(e.g. "clientist_clients" -> JSON array of clients).

TRADEOFFS:
- Whole-document rewrites only; there are no partial updates
- No locking: two writers doing read-modify-write on the same key race,
  and the later write wins
- Corrupt or missing documents read back as the caller's fallback value
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Optional, TypeVar

import structlog

from clientist.models.audit import AuditEvent
from clientist.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStoreInterface,
    StorageError,
)


T = TypeVar("T")

AUDIT_LOG_KEY = "clientist_audit_log"
MAX_AUDIT_EVENTS = 1000

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")

logger = structlog.get_logger(__name__)


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """
    Key-value store backed by one file per key in a data directory.

    File writes go through a temp file and os.replace so a crash never
    leaves half a document behind.
    """

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    async def get_item(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}")

    async def set_item(self, key: str, value: str) -> None:
        path = self._path_for(key)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".json.tmp")
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}")

    async def remove_item(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {key}: {e}")


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


async def load(store: KeyValueStoreInterface, key: str, fallback: T) -> T:
    """
    Read and decode the JSON document under key.

    Returns fallback when the key is missing, empty, or not valid JSON.
    """
    raw = await store.get_item(key)
    if not raw:
        return fallback
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("local_document_corrupt", key=key)
        return fallback


async def save(store: KeyValueStoreInterface, key: str, value: Any) -> None:
    """Encode value as JSON and store it under key."""
    await store.set_item(key, json.dumps(value, ensure_ascii=False))


class LocalAuditStorage(AuditStorageInterface):
    """
    Audit log kept in the local key-value store.

    Audit events are append-only. Only the newest max_events are kept so
    the document, and every rewrite of it, stays bounded.
    """

    def __init__(
        self,
        store: KeyValueStoreInterface,
        key: str = AUDIT_LOG_KEY,
        max_events: int = MAX_AUDIT_EVENTS,
    ):
        self._store = store
        self._key = key
        self._max_events = max_events

    async def append_event(self, event: AuditEvent) -> bool:
        events = await load(self._store, self._key, [])
        if not isinstance(events, list):
            events = []
        events.append(event.model_dump(mode="json"))
        events = events[-self._max_events:]
        await save(self._store, self._key, events)
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        rows = await load(self._store, self._key, [])

        events = []
        for row in rows:
            try:
                events.append(AuditEvent.model_validate(row))
            except Exception:
                continue  # Skip malformed entries

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
