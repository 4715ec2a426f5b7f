"""mehtrics.sync.journal

Journal is the one queue with two mutation kinds. Creates and updates share a
single FIFO, so an update queued after its create is replayed after it too.
"""

from __future__ import annotations

from mehtrics.remote.models import CreateJournalEntryRequest, JournalEntry, UpdateJournalEntryRequest
from mehtrics.sync.base import OfflineWrapper
from mehtrics.sync.mutations import CreateJournalEntry, JournalMutation, UpdateJournalEntry


class OfflineJournal(OfflineWrapper[JournalMutation]):
    mutation_type = JournalMutation

    async def _replay(self, mutation: JournalMutation) -> None:
        if isinstance(mutation, UpdateJournalEntry):
            await self.remote.update_journal_entry(mutation.data)
        else:
            await self.remote.create_journal_entry(mutation.data)

    async def create_entry(self, data: CreateJournalEntryRequest) -> JournalEntry | None:
        return await self._submit(
            lambda: self.remote.create_journal_entry(data), CreateJournalEntry(data=data)
        )

    async def update_entry(self, data: UpdateJournalEntryRequest) -> JournalEntry | None:
        return await self._submit(
            lambda: self.remote.update_journal_entry(data), UpdateJournalEntry(data=data)
        )
