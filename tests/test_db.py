"""Tests for worktracker.data.db — TrackerDB (SQLite document store)."""

import pytest

from worktracker.data.db import TrackerDB


class TestTrackerDBKeyValue:
    def test_get_missing_key_returns_none(self, tracker_db):
        assert tracker_db.get("nope") is None

    def test_set_then_get_round_trips_json(self, tracker_db):
        tracker_db.set("app_settings", {"reset_time": "06:30", "data_retention_days": 30})
        assert tracker_db.get("app_settings") == {"reset_time": "06:30", "data_retention_days": 30}

    def test_set_overwrites(self, tracker_db):
        tracker_db.set("last", "2024-01-01")
        tracker_db.set("last", "2024-01-02")
        assert tracker_db.get("last") == "2024-01-02"

    def test_remove(self, tracker_db):
        tracker_db.set("k", 1)
        assert tracker_db.remove("k") is True
        assert tracker_db.get("k") is None
        assert tracker_db.remove("k") is False


class TestTrackerDBStores:
    def test_save_assigns_id_and_updated_at(self, tracker_db):
        saved = tracker_db.save("todos", {"text": "Write report", "date": "2024-06-01"})
        assert saved["id"]
        assert saved["updated_at"]
        assert tracker_db.get_record("todos", saved["id"])["text"] == "Write report"

    def test_save_upserts_by_id(self, tracker_db):
        tracker_db.save("todos", {"id": "t1", "text": "A", "date": "2024-06-01"})
        tracker_db.save("todos", {"id": "t1", "text": "B", "date": "2024-06-02"})
        records = tracker_db.get_all("todos")
        assert len(records) == 1
        assert records[0]["text"] == "B"
        assert records[0]["date"] == "2024-06-02"

    def test_stores_are_isolated(self, tracker_db):
        tracker_db.save("todos", {"id": "x", "date": "2024-06-01"})
        tracker_db.save("meetings", {"id": "x", "date": "2024-06-01"})
        assert len(tracker_db.get_all("todos")) == 1
        assert len(tracker_db.get_all("meetings")) == 1

    def test_get_all_filters_by_date(self, tracker_db):
        tracker_db.save("meetings", {"id": "m1", "date": "2024-06-01"})
        tracker_db.save("meetings", {"id": "m2", "date": "2024-06-02"})
        found = tracker_db.get_all("meetings", "date", "2024-06-02")
        assert [m["id"] for m in found] == ["m2"]

    def test_get_all_filters_by_other_field(self, tracker_db):
        tracker_db.save("checklistItems", {"id": "t", "is_template": True})
        tracker_db.save("checklistItems", {"id": "d", "is_template": False, "date": "2024-06-01"})
        found = tracker_db.get_all("checklistItems", "is_template", True)
        assert [r["id"] for r in found] == ["t"]

    def test_delete(self, tracker_db):
        tracker_db.save("todos", {"id": "t1", "date": "2024-06-01"})
        assert tracker_db.delete("todos", "t1") is True
        assert tracker_db.delete("todos", "t1") is False
        assert tracker_db.get_all("todos") == []

    def test_clear_only_touches_one_store(self, tracker_db):
        tracker_db.save("todos", {"id": "a", "date": "2024-06-01"})
        tracker_db.save("todos", {"id": "b", "date": "2024-06-01"})
        tracker_db.save("meetings", {"id": "m", "date": "2024-06-01"})
        assert tracker_db.clear("todos") == 2
        assert tracker_db.get_all("todos") == []
        assert len(tracker_db.get_all("meetings")) == 1


class TestTrackerDBReopen:
    def test_data_survives_reopen(self, tmp_db_path):
        TrackerDB(db_path=tmp_db_path).save("todos", {"id": "t1", "date": "2024-01-01"})
        TrackerDB(db_path=tmp_db_path).set("last_reset_date", "2024-01-01")

        db = TrackerDB(db_path=tmp_db_path)
        assert db.get_record("todos", "t1")["date"] == "2024-01-01"
        assert db.get("last_reset_date") == "2024-01-01"


class TestSQLiteStorage:
    @pytest.mark.asyncio
    async def test_async_surface_matches_db(self, storage, tracker_db):
        await storage.set("last_reset_date", "2024-06-01")
        assert await storage.get("last_reset_date") == "2024-06-01"

        saved = await storage.save_to_store("todos", {"text": "x", "date": "2024-06-01"})
        assert tracker_db.get_record("todos", saved["id"]) is not None

        await storage.delete_from_store("todos", saved["id"])
        assert await storage.get_all_from_store("todos") == []

        await storage.remove("last_reset_date")
        assert await storage.get("last_reset_date") is None

    @pytest.mark.asyncio
    async def test_clear_store(self, storage, tracker_db):
        tracker_db.save("journals", {"id": "j", "date": "2024-06-01"})
        await storage.clear_store("journals")
        assert tracker_db.get_all("journals") == []

    @pytest.mark.asyncio
    async def test_unserializable_value_raises_storage_error(self, storage):
        from worktracker.ports.storage_port import StorageError

        with pytest.raises(StorageError):
            await storage.set("bad", object())
