"""mehtrics.remote.models

Request/response shapes of the tracker's REST API.

The wire uses camelCase; Python code uses snake_case. Both are accepted on input.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MoodTier = Literal["uplifted", "neutral", "heavy"]
EnergyLevel = Literal["low", "medium", "high"]


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self, *, exclude: set[str] | None = None) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude=exclude)


# Tasks


class CreateTaskRequest(WireModel):
    title: str
    description: str | None = None
    priority: int | None = Field(default=None, ge=1, le=5)
    due_date: dt.datetime | None = None
    tags: list[str] = Field(default_factory=list)
    energy_level: EnergyLevel | None = None
    is_hard_deadline: bool | None = None


class Task(WireModel):
    id: int
    title: str
    description: str | None = None
    status: str = "todo"
    priority: int = 3
    due_date: dt.datetime | None = None
    tags: list[str] = Field(default_factory=list)
    energy_level: EnergyLevel | None = None
    is_hard_deadline: bool = False
    sort_order: int = 0
    created_at: dt.datetime
    updated_at: dt.datetime


# Moods


class CreateMoodEntryRequest(WireModel):
    date: dt.date
    tier: MoodTier
    emoji: str
    label: str
    tags: list[str] = Field(default_factory=list)
    notes: str | None = None
    secondary_tier: MoodTier | None = None
    secondary_emoji: str | None = None
    secondary_label: str | None = None


class MoodEntry(WireModel):
    id: int
    date: dt.date
    tier: MoodTier
    emoji: str
    label: str
    tags: list[str] = Field(default_factory=list)
    notes: str | None = None
    secondary_tier: MoodTier | None = None
    secondary_emoji: str | None = None
    secondary_label: str | None = None
    created_at: dt.datetime


# Journal


class CreateJournalEntryRequest(WireModel):
    date: dt.date | None = None
    text: str
    tags: list[str] = Field(default_factory=list)
    mood_id: int | None = None


class UpdateJournalEntryRequest(WireModel):
    id: int
    text: str | None = None
    tags: list[str] | None = None
    mood_id: int | None = None


class JournalEntry(WireModel):
    id: int
    date: dt.date | None = None
    text: str
    tags: list[str] = Field(default_factory=list)
    mood_id: int | None = None
    created_at: dt.datetime
    updated_at: dt.datetime
