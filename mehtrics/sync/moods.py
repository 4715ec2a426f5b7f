"""mehtrics.sync.moods"""

from __future__ import annotations

from mehtrics.remote.models import CreateMoodEntryRequest, MoodEntry
from mehtrics.sync.base import OfflineWrapper
from mehtrics.sync.mutations import CreateMoodEntry, MoodMutation


class OfflineMoods(OfflineWrapper[MoodMutation]):
    mutation_type = MoodMutation

    async def _replay(self, mutation: MoodMutation) -> None:
        await self.remote.create_mood_entry(mutation.data)

    async def create_entry(self, data: CreateMoodEntryRequest) -> MoodEntry | None:
        return await self._submit(
            lambda: self.remote.create_mood_entry(data), CreateMoodEntry(data=data)
        )
