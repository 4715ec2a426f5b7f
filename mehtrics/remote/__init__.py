"""mehtrics.remote

The tracker's REST API, as seen from the sync core.
"""

from .client import RemoteApi
from .models import (
    CreateJournalEntryRequest,
    CreateMoodEntryRequest,
    CreateTaskRequest,
    JournalEntry,
    MoodEntry,
    Task,
    UpdateJournalEntryRequest,
)

__all__ = [
    "RemoteApi",
    "CreateJournalEntryRequest",
    "CreateMoodEntryRequest",
    "CreateTaskRequest",
    "JournalEntry",
    "MoodEntry",
    "Task",
    "UpdateJournalEntryRequest",
]
