"""Retention pruner — drops history past the retention horizon.

Only finished or disposable records go: daily checklist rows, completed
todos and old archives. Templates and open todos are kept regardless of
age.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from worktracker.ports.storage_port import CHECKLIST_STORE, JOURNAL_STORE, TODO_STORE

if TYPE_CHECKING:
    from worktracker.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)


@dataclass
class PruneResult:
    deleted_checklist: int = 0
    deleted_todos: int = 0
    deleted_archives: int = 0


def _dated_before(record: dict, cutoff: str) -> bool:
    day = record.get("date")
    return isinstance(day, str) and day < cutoff


async def _delete_all(storage: StoragePort, store_name: str, records: list[dict]) -> int:
    deleted = 0
    for record in records:
        try:
            await storage.delete_from_store(store_name, record["id"])
            deleted += 1
        except Exception as exc:
            logger.error("Failed to delete %s record %s: %s", store_name, record.get("id"), exc)
    return deleted


async def prune(
    storage: StoragePort,
    cutoff: str,
    archive_cutoff: str | None = None,
) -> PruneResult:
    """Delete records dated before ``cutoff`` (archives before ``archive_cutoff``)."""
    result = PruneResult()

    checklist = await storage.get_all_from_store(CHECKLIST_STORE) or []
    stale_items = [
        item for item in checklist
        if not item.get("is_template") and _dated_before(item, cutoff)
    ]
    result.deleted_checklist = await _delete_all(storage, CHECKLIST_STORE, stale_items)

    todos = await storage.get_all_from_store(TODO_STORE) or []
    stale_todos = [
        todo for todo in todos
        if todo.get("completed") is True and _dated_before(todo, cutoff)
    ]
    result.deleted_todos = await _delete_all(storage, TODO_STORE, stale_todos)

    if archive_cutoff is not None:
        journals = await storage.get_all_from_store(JOURNAL_STORE) or []
        stale_archives = [j for j in journals if _dated_before(j, archive_cutoff)]
        result.deleted_archives = await _delete_all(storage, JOURNAL_STORE, stale_archives)

    logger.info(
        "Cleaned up %d old checklist items, %d old todos and %d archives (cutoff %s)",
        result.deleted_checklist, result.deleted_todos, result.deleted_archives, cutoff,
    )
    return result
