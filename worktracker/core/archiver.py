"""Previous-day archiver — snapshots what got done before the rollover."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from worktracker.data.models import ArchiveRecord
from worktracker.ports.storage_port import CHECKLIST_STORE, JOURNAL_STORE

if TYPE_CHECKING:
    from worktracker.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)

ARCHIVE_TYPE = "daily_archive"


async def archive_day(storage: StoragePort, day: str, now: datetime) -> ArchiveRecord | None:
    """Write one archive record of ``day``'s completed checklist items.

    Nothing is written when the day had no completed items, or when an
    archive for that day already exists (records are never rewritten).
    """
    existing = await storage.get_all_from_store(JOURNAL_STORE, "date", day) or []
    if any(r.get("type") == ARCHIVE_TYPE for r in existing):
        logger.info("Archive for %s already exists, skipping", day)
        return None

    items = await storage.get_all_from_store(CHECKLIST_STORE, "date", day) or []
    completed = [i for i in items if i.get("completed") and not i.get("is_template")]
    if not completed:
        return None

    record = ArchiveRecord(
        date=day,
        type=ARCHIVE_TYPE,
        checklist=completed,
        created_at=now.isoformat(),
    )
    saved = await storage.save_to_store(JOURNAL_STORE, record.to_record())
    logger.info("Archived %d completed checklist items from %s", len(completed), day)
    return ArchiveRecord.model_validate(saved)
