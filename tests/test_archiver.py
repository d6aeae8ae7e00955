"""Tests for worktracker.core.archiver — previous-day snapshots."""

import pytest

from conftest import utc
from worktracker.core.archiver import ARCHIVE_TYPE, archive_day

DAY = "2024-05-31"
NOW = utc(2024, 6, 1, 0, 0)


class TestArchiveDay:
    @pytest.mark.asyncio
    async def test_archives_completed_items_only(self, storage, tracker_db):
        tracker_db.save("checklistItems", {"id": "a", "text": "Standup", "date": DAY, "completed": True})
        tracker_db.save("checklistItems", {"id": "b", "text": "Review", "date": DAY, "completed": False})

        record = await archive_day(storage, DAY, NOW)

        assert record is not None
        assert record.date == DAY
        assert record.type == ARCHIVE_TYPE
        assert [i["id"] for i in record.checklist] == ["a"]
        assert record.created_at == NOW.isoformat()

        journals = tracker_db.get_all("journals")
        assert len(journals) == 1
        assert journals[0]["checklist"][0]["text"] == "Standup"

    @pytest.mark.asyncio
    async def test_nothing_completed_writes_nothing(self, storage, tracker_db):
        tracker_db.save("checklistItems", {"id": "b", "date": DAY, "completed": False})

        assert await archive_day(storage, DAY, NOW) is None
        assert tracker_db.get_all("journals") == []

    @pytest.mark.asyncio
    async def test_existing_archive_not_rewritten(self, storage, tracker_db):
        tracker_db.save("checklistItems", {"id": "a", "date": DAY, "completed": True})
        first = await archive_day(storage, DAY, NOW)

        tracker_db.save("checklistItems", {"id": "c", "date": DAY, "completed": True})
        second = await archive_day(storage, DAY, utc(2024, 6, 1, 8, 0))

        assert first is not None
        assert second is None
        journals = tracker_db.get_all("journals")
        assert len(journals) == 1
        assert [i["id"] for i in journals[0]["checklist"]] == ["a"]

    @pytest.mark.asyncio
    async def test_ignores_other_days(self, storage, tracker_db):
        tracker_db.save("checklistItems", {"id": "x", "date": "2024-05-30", "completed": True})
        assert await archive_day(storage, DAY, NOW) is None
