"""mehtrics.sync

Online-first writers for tasks, moods and journal entries, with an offline
queue behind each.
"""

from .base import OfflineWrapper
from .journal import OfflineJournal
from .moods import OfflineMoods
from .mutations import (
    CreateJournalEntry,
    CreateMoodEntry,
    CreateTask,
    JournalMutation,
    MoodMutation,
    TaskMutation,
    UpdateJournalEntry,
)
from .tasks import OfflineTasks

__all__ = [
    "CreateJournalEntry",
    "CreateMoodEntry",
    "CreateTask",
    "JournalMutation",
    "MoodMutation",
    "OfflineJournal",
    "OfflineMoods",
    "OfflineTasks",
    "OfflineWrapper",
    "TaskMutation",
    "UpdateJournalEntry",
]
