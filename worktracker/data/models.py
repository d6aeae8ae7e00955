"""
Work Tracker — Data Models.

Records live in the document store as plain JSON. These pydantic models
give the reset engine typed access to the fields it reasons about while
keeping every other field (``extra="allow"``) so UI-owned data survives a
round trip through a reset.

Dates are ISO strings (YYYY-MM-DD); instants are ISO-8601 with offset.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ResetType(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class _Record(BaseModel):
    """Base for stored documents: unknown keys are preserved."""

    model_config = ConfigDict(extra="allow", use_enum_values=True)

    def to_record(self) -> dict:
        return self.model_dump(mode="json")


class ChecklistItem(_Record):
    """A checklist row. Templates and daily instances share one store.

    Daily instances point back at their source via ``template_id``;
    that is a reference, never ownership.
    """

    id: str | None = None
    text: str = ""
    category: str = "general"
    date: str | None = None
    completed: bool = False
    completed_at: str | None = None
    is_template: bool = False
    active: bool = True
    template_id: str | None = None
    order: int = 0
    is_custom: bool = False
    recurring: bool = False
    created_at: str | None = None
    updated_at: str | None = None


class CustomChecklistItem(_Record):
    """User-defined checklist entry kept in the key-value space."""

    id: str | None = None
    text: str = ""
    category: str = "general"
    order: int = 0
    recurring: bool = False


class TodoItem(_Record):
    id: str | None = None
    text: str = ""
    date: str
    completed: bool = False
    completed_at: str | None = None
    priority: Priority = Priority.MEDIUM
    carry_forward: bool = True
    carried_from: str | None = None   # origin date, set once
    carry_count: int = 0              # only the user resets this
    auto_promoted: bool = False
    updated_at: str | None = None

    @field_validator("priority", "carry_forward", "carry_count", "auto_promoted", mode="before")
    @classmethod
    def null_as_default(cls, v, info: ValidationInfo):
        # Older records store null for fields they never set.
        if v is None:
            return cls.model_fields[info.field_name].default
        return v


class Meeting(_Record):
    id: str | None = None
    title: str = ""
    date: str
    completed: bool = False
    completed_at: str | None = None
    notes: str = ""                   # never touched by a reset
    updated_at: str | None = None


class ArchiveRecord(_Record):
    """Snapshot of one day's completed checklist items. Written once."""

    id: str | None = None
    date: str
    type: str = "daily_archive"
    checklist: list[dict] = Field(default_factory=list)
    created_at: str


class ResetHistoryEntry(BaseModel):
    date: str
    timestamp: str
    type: ResetType = ResetType.AUTOMATIC
    reason: str = ""

    model_config = ConfigDict(use_enum_values=True)


class ResetBookkeeping(BaseModel):
    """The single record describing when the tracker last rolled over."""

    last_reset_date: str | None = None
    last_reset_timestamp: str | None = None
    reset_time: str = "00:00"
    reset_time_changed_at: str | None = None
    history: list[ResetHistoryEntry] = Field(default_factory=list)


class SessionState(BaseModel):
    """Saved on shutdown, read back on the next start."""

    last_active_time: str
    current_date: str
    user_timezone: str = "UTC"
