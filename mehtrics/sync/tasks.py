"""mehtrics.sync.tasks"""

from __future__ import annotations

from mehtrics.remote.models import CreateTaskRequest, Task
from mehtrics.sync.base import OfflineWrapper
from mehtrics.sync.mutations import CreateTask, TaskMutation


class OfflineTasks(OfflineWrapper[TaskMutation]):
    mutation_type = TaskMutation

    async def _replay(self, mutation: TaskMutation) -> None:
        await self.remote.create_task(mutation.data)

    async def create_task(self, data: CreateTaskRequest) -> Task | None:
        return await self._submit(lambda: self.remote.create_task(data), CreateTask(data=data))
