"""Checklist materializer — builds today's checklist from its sources.

Sources are the active checklist templates plus any custom items the user
flagged as recurring. Today's existing non-template rows are removed
first, so running the materializer twice for one date leaves exactly one
row per source.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError

from worktracker.data.db import generate_id
from worktracker.data.models import ChecklistItem, CustomChecklistItem
from worktracker.ports.storage_port import CHECKLIST_STORE

if TYPE_CHECKING:
    from worktracker.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)

CUSTOM_ITEMS_KEY = "checklist-custom-items"


async def _load_sources(storage: StoragePort) -> tuple[list[ChecklistItem], list[CustomChecklistItem]]:
    templates: list[ChecklistItem] = []
    for record in await storage.get_all_from_store(CHECKLIST_STORE, "is_template", True) or []:
        try:
            item = ChecklistItem.model_validate(record)
        except ValidationError as exc:
            logger.warning("Skipping malformed template %s: %s", record.get("id"), exc)
            continue
        if item.is_template and item.active:
            templates.append(item)

    custom: list[CustomChecklistItem] = []
    for record in await storage.get(CUSTOM_ITEMS_KEY) or []:
        try:
            item = CustomChecklistItem.model_validate(record)
        except ValidationError as exc:
            logger.warning("Skipping malformed custom item: %s", exc)
            continue
        if item.recurring:
            custom.append(item)

    templates.sort(key=lambda t: t.order)
    return templates, custom


def build_daily_items(
    templates: list[ChecklistItem],
    custom: list[CustomChecklistItem],
    today: str,
    now: datetime | None = None,
) -> list[ChecklistItem]:
    """One unchecked row per source, dated today, pointing back at it."""
    created_at = now.isoformat() if now else None
    items = [
        ChecklistItem(
            id=generate_id(),
            text=t.text,
            category=t.category or "general",
            date=today,
            completed=False,
            template_id=t.id,
            order=t.order or 0,
            created_at=created_at,
        )
        for t in templates
    ]
    items.extend(
        ChecklistItem(
            id=generate_id(),
            text=c.text,
            category=c.category or "general",
            date=today,
            completed=False,
            template_id=c.id,
            order=c.order or 0,
            is_custom=True,
            recurring=True,
            created_at=created_at,
        )
        for c in custom
    )
    return items


async def clear_day(storage: StoragePort, today: str) -> int:
    """Delete today's non-template rows. Returns how many went."""
    removed = 0
    for record in await storage.get_all_from_store(CHECKLIST_STORE, "date", today) or []:
        if record.get("is_template"):
            continue
        try:
            await storage.delete_from_store(CHECKLIST_STORE, record["id"])
            removed += 1
        except Exception as exc:
            logger.error("Failed to delete checklist item %s: %s", record.get("id"), exc)
    return removed


async def materialize_today(
    storage: StoragePort,
    today: str,
    now: datetime | None = None,
) -> int:
    """Regenerate today's checklist. Returns the number of rows created."""
    removed = await clear_day(storage, today)
    templates, custom = await _load_sources(storage)

    created = 0
    for item in build_daily_items(templates, custom, today, now):
        try:
            await storage.save_to_store(CHECKLIST_STORE, item.to_record())
            created += 1
        except Exception as exc:
            logger.error("Failed to create checklist item from %s: %s", item.template_id, exc)

    logger.info(
        "Reset checklist with %d items for %s (%d stale rows removed)",
        created, today, removed,
    )
    return created
