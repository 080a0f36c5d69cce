"""
Shared fakes for the test suite.

No real backend is ever contacted: repositories run against an in-memory
backend, or against one that always fails so every call takes the local
fallback path.
"""

import asyncio
from typing import Any, Optional

import pytest
from pydantic_core import to_jsonable_python

from clientist.audit import AuditLogger
from clientist.services.storage import (
    BackendUnavailableError,
    InMemoryKeyValueStore,
    LocalAuditStorage,
    RemoteBackendInterface,
)


def _matches(row: dict[str, Any], filters: Optional[dict[str, Any]]) -> bool:
    return all(
        row.get(column) == to_jsonable_python(value)
        for column, value in (filters or {}).items()
    )


class FakeBackend(RemoteBackendInterface):
    """In-memory stand-in for the hosted backend."""

    def __init__(self, user_id: str = "user-1"):
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.user_id = user_id
        self.calls: list[tuple[str, str]] = []

    async def current_user_id(self) -> str:
        return self.user_id

    async def select(self, table, filters=None, order_by=None, limit=None):
        self.calls.append(("select", table))
        rows = [dict(row) for row in self.tables.get(table, []) if _matches(row, filters)]
        for column, descending in reversed(order_by or []):
            rows.sort(key=lambda row: str(row.get(column) or ""), reverse=descending)
        return rows[:limit] if limit is not None else rows

    async def insert(self, table, row):
        self.calls.append(("insert", table))
        self.tables.setdefault(table, []).append(dict(row))
        return dict(row)

    async def update(self, table, filters, changes):
        self.calls.append(("update", table))
        updated = []
        for row in self.tables.get(table, []):
            if _matches(row, filters):
                row.update(changes)
                updated.append(dict(row))
        return updated

    async def delete(self, table, filters):
        self.calls.append(("delete", table))
        rows = self.tables.get(table, [])
        remaining = [row for row in rows if not _matches(row, filters)]
        self.tables[table] = remaining
        return len(rows) - len(remaining)


class FailingBackend(RemoteBackendInterface):
    """Backend whose every call fails, like a device with no network."""

    async def current_user_id(self) -> str:
        raise BackendUnavailableError("offline")

    async def select(self, table, filters=None, order_by=None, limit=None):
        raise ConnectionError("network unreachable")

    async def insert(self, table, row):
        raise ConnectionError("network unreachable")

    async def update(self, table, filters, changes):
        raise ConnectionError("network unreachable")

    async def delete(self, table, filters):
        raise ConnectionError("network unreachable")


class YieldingStore(InMemoryKeyValueStore):
    """In-memory store that yields to the event loop after every read."""

    async def get_item(self, key):
        value = await super().get_item(key)
        await asyncio.sleep(0)
        return value


def run(coro):
    """Drive a coroutine to completion."""
    return asyncio.run(coro)


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def failing_backend():
    return FailingBackend()


@pytest.fixture
def audit_logger(store):
    return AuditLogger(LocalAuditStorage(store))
