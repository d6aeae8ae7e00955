"""Meeting status reset — today's meetings start the day unchecked."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError

from worktracker.data.models import Meeting
from worktracker.ports.storage_port import MEETING_STORE

if TYPE_CHECKING:
    from worktracker.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)


async def reset_meeting_status(
    storage: StoragePort,
    today: str,
    now: datetime | None = None,
) -> int:
    """Clear completion on today's meetings. Notes are left as they are."""
    records = await storage.get_all_from_store(MEETING_STORE, "date", today) or []

    reset = 0
    for record in records:
        try:
            meeting = Meeting.model_validate(record)
        except ValidationError as exc:
            logger.warning("Skipping malformed meeting %s: %s", record.get("id"), exc)
            continue
        if meeting.date != today or not meeting.completed:
            continue

        meeting.completed = False
        meeting.completed_at = None
        if now is not None:
            meeting.updated_at = now.isoformat()
        try:
            await storage.save_to_store(MEETING_STORE, meeting.to_record())
            reset += 1
        except Exception as exc:
            logger.error("Failed to reset meeting %s: %s", meeting.id, exc)

    if records:
        logger.info("Reset completion status for %d of %d meetings", reset, len(records))
    return reset
