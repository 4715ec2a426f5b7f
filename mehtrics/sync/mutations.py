"""mehtrics.sync.mutations

Queued mutation shapes, one tagged union per queue.

The ``type`` tag is what lands in the store's ``kind`` column and what the
replay dispatches on.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from mehtrics.remote.models import (
    CreateJournalEntryRequest,
    CreateMoodEntryRequest,
    CreateTaskRequest,
    UpdateJournalEntryRequest,
)


class CreateTask(BaseModel):
    type: Literal["create"] = "create"
    data: CreateTaskRequest


class CreateMoodEntry(BaseModel):
    type: Literal["create"] = "create"
    data: CreateMoodEntryRequest


class CreateJournalEntry(BaseModel):
    type: Literal["create"] = "create"
    data: CreateJournalEntryRequest


class UpdateJournalEntry(BaseModel):
    type: Literal["update"] = "update"
    data: UpdateJournalEntryRequest


TaskMutation = CreateTask
MoodMutation = CreateMoodEntry
JournalMutation = Annotated[CreateJournalEntry | UpdateJournalEntry, Field(discriminator="type")]
