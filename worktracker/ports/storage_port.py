"""Storage port — abstract interface for the tracker's persistence layer.

Two surfaces: a small key-value space for settings and bookkeeping, and
named document stores (checklistItems, todos, meetings, journals) holding
JSON records keyed by ``id``. Core modules depend on this protocol, never
on a specific backend.
"""

from __future__ import annotations

from typing import Any, Protocol

CHECKLIST_STORE = "checklistItems"
TODO_STORE = "todos"
MEETING_STORE = "meetings"
JOURNAL_STORE = "journals"


class StorageError(Exception):
    """Raised when any persistence operation fails."""


class StoragePort(Protocol):
    """Abstract persistence interface used by the reset engine."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def remove(self, key: str) -> None: ...

    async def get_all_from_store(
        self,
        store_name: str,
        filter_field: str | None = None,
        filter_value: Any = None,
    ) -> list[dict]: ...

    async def save_to_store(self, store_name: str, record: dict) -> dict: ...

    async def delete_from_store(self, store_name: str, record_id: str) -> None: ...

    async def clear_store(self, store_name: str) -> None: ...
