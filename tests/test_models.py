"""Tests for worktracker.data.models — stored record models."""

import pytest
from pydantic import ValidationError

from worktracker.data.models import (
    ArchiveRecord,
    ChecklistItem,
    Priority,
    ResetBookkeeping,
    ResetHistoryEntry,
    ResetType,
    TodoItem,
)


def test_todo_defaults():
    todo = TodoItem(date="2024-06-01")
    assert todo.priority == "medium"
    assert todo.carry_forward is True
    assert todo.carry_count == 0
    assert todo.carried_from is None
    assert todo.auto_promoted is False


def test_todo_null_fields_fall_back_to_defaults():
    todo = TodoItem.model_validate({
        "date": "2024-06-01",
        "priority": None,
        "carry_forward": None,
        "carry_count": None,
        "auto_promoted": None,
    })
    assert todo.priority == "medium"
    assert todo.carry_forward is True
    assert todo.carry_count == 0
    assert todo.auto_promoted is False


def test_explicit_opt_out_kept():
    assert TodoItem(date="2024-06-01", carry_forward=False).carry_forward is False


def test_todo_requires_date():
    with pytest.raises(ValidationError):
        TodoItem.model_validate({"id": "t1", "text": "no date"})


def test_todo_rejects_unknown_priority():
    with pytest.raises(ValidationError):
        TodoItem(date="2024-06-01", priority="urgent")


def test_unknown_fields_survive_round_trip():
    record = {"id": "t1", "date": "2024-06-01", "description": "long text", "tags": ["a"]}
    assert TodoItem.model_validate(record).to_record()["tags"] == ["a"]


def test_enum_values_stored_as_strings():
    record = TodoItem(date="2024-06-01", priority=Priority.HIGH).to_record()
    assert record["priority"] == "high"


def test_checklist_item_defaults():
    item = ChecklistItem(text="Standup")
    assert item.category == "general"
    assert item.is_template is False
    assert item.active is True
    assert item.template_id is None


def test_archive_record_type():
    archive = ArchiveRecord(date="2024-05-31", created_at="2024-06-01T00:00:00+00:00")
    assert archive.type == "daily_archive"
    assert archive.checklist == []


def test_bookkeeping_history_parsed():
    bk = ResetBookkeeping.model_validate({
        "last_reset_date": "2024-06-01",
        "history": [{"date": "2024-06-01", "timestamp": "2024-06-01T00:00:00+00:00", "type": "manual"}],
    })
    assert isinstance(bk.history[0], ResetHistoryEntry)
    assert bk.history[0].type == ResetType.MANUAL
    assert bk.reset_time == "00:00"
