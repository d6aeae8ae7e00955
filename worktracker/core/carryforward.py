"""Todo carryforward — rolls unfinished todos into the new day.

A todo left open on an earlier day (within the carry window) moves to
today. Every carry bumps ``carry_count``; the third one escalates the
todo to high priority for good.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError

from worktracker.data.models import Priority, TodoItem
from worktracker.ports.storage_port import TODO_STORE

if TYPE_CHECKING:
    from worktracker.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)

ESCALATION_THRESHOLD = 3


def is_carry_candidate(todo: TodoItem, today: str, cutoff: str) -> bool:
    """Incomplete, from an earlier day inside the window, and not opted out."""
    return (
        not todo.completed
        and todo.date < today
        and todo.date >= cutoff
        and todo.carry_forward is not False
        and todo.date != today
    )


def apply_carry(todo: TodoItem, today: str, now: datetime | None = None) -> TodoItem:
    """Move one todo to today in place and return it."""
    previous_date = todo.date
    todo.date = today
    todo.carried_from = todo.carried_from or previous_date
    todo.carry_count = (todo.carry_count or 0) + 1
    if now is not None:
        todo.updated_at = now.isoformat()

    if todo.carry_count >= ESCALATION_THRESHOLD and todo.priority != Priority.HIGH:
        todo.priority = Priority.HIGH.value
        todo.auto_promoted = True
        logger.info(
            "Todo %s auto-promoted to high priority after %d carries",
            todo.id, todo.carry_count,
        )
    return todo


async def carry_forward(
    storage: StoragePort,
    today: str,
    cutoff: str,
    now: datetime | None = None,
) -> int:
    """Carry every eligible todo into ``today``. Returns how many moved.

    Each todo is saved on its own; one failed save is logged and the rest
    are still attempted.
    """
    records = await storage.get_all_from_store(TODO_STORE) or []

    carried = 0
    for record in records:
        try:
            todo = TodoItem.model_validate(record)
        except ValidationError as exc:
            logger.warning("Skipping malformed todo %s: %s", record.get("id"), exc)
            continue

        if not is_carry_candidate(todo, today, cutoff):
            continue

        apply_carry(todo, today, now)
        try:
            await storage.save_to_store(TODO_STORE, todo.to_record())
            carried += 1
        except Exception as exc:
            logger.error("Failed to carry todo %s forward: %s", todo.id, exc)

    logger.info("Carried forward %d todos to %s", carried, today)
    return carried
