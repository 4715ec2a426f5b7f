"""mehtrics.messaging.processors

Concrete processors for the task, analytics and notification queues.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from mehtrics.core.bus import EventBus
from mehtrics.core.events import (
    EventType,
    TaskCompletedPayload,
    TaskCreatedPayload,
    TaskUpdatedPayload,
    create_event,
)
from mehtrics.core.exceptions import MessagingError
from mehtrics.core.time import parse_dt, utc_now
from mehtrics.handlers.sinks import Notification, Notifier
from mehtrics.messaging.queue import (
    AnalyticsMessage,
    NotificationMessage,
    QueueMessage,
    QueueProcessor,
    TaskProcessingMessage,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
CompletedCount = Callable[[str], Awaitable[int]]

TASK_MILESTONES = (10, 25, 50, 100)


def _optional_dt(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return parse_dt(str(value))


class TaskProcessor(QueueProcessor[TaskProcessingMessage]):
    """Apply task operations and announce them on the event bus."""

    def __init__(
        self,
        bus: EventBus,
        *,
        source: str = "task-processor",
        clock: Clock = utc_now,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.bus = bus
        self.source = source
        self.clock = clock

    async def process(self, message: QueueMessage[TaskProcessingMessage]) -> None:
        p = message.payload
        logger.info("task_operation_processing", extra={"operation": p.operation, "task_id": p.task_id})

        if p.operation == "create":
            event = create_event(
                EventType.TASK_CREATED,
                self.source,
                TaskCreatedPayload(
                    task_id=p.task_id,
                    user_id=p.user_id,
                    title=str(p.data.get("title", "")),
                    due_date=_optional_dt(p.data.get("due_date")),
                    priority=p.data.get("priority"),
                    tags=list(p.data.get("tags") or []),
                ),
            )
        elif p.operation == "update":
            event = create_event(
                EventType.TASK_UPDATED,
                self.source,
                TaskUpdatedPayload(task_id=p.task_id, user_id=p.user_id, changes=dict(p.data)),
            )
        elif p.operation == "complete":
            event = create_event(
                EventType.TASK_COMPLETED,
                self.source,
                TaskCompletedPayload(
                    task_id=p.task_id,
                    user_id=p.user_id,
                    completed_at=self.clock(),
                    duration=p.data.get("duration"),
                ),
            )
        elif p.operation == "delete":
            # No event type for deletions yet.
            logger.info("task_deletion_processed", extra={"task_id": p.task_id})
            return
        else:
            raise MessagingError(f"unknown task operation: {p.operation}")

        await self.bus.publish(event)


@dataclass(frozen=True)
class Milestone:
    name: str
    description: str
    value: int


class AnalyticsProcessor(QueueProcessor[AnalyticsMessage]):
    """Derive behavior patterns and milestones from analytics messages.

    Results are kept per user in memory; ``patterns`` and ``milestones`` are the
    read side.
    """

    def __init__(
        self,
        *,
        completed_count: CompletedCount | None = None,
        clock: Clock = utc_now,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.completed_count = completed_count
        self.clock = clock
        self.patterns: dict[str, set[str]] = {}
        self.milestones: dict[str, list[Milestone]] = {}

    async def process(self, message: QueueMessage[AnalyticsMessage]) -> None:
        p = message.payload
        logger.info(
            "analytics_message_processing",
            extra={"user_id": p.user_id, "event_type": p.event_type, "session_id": p.session_id},
        )

        patterns = self.behavior_patterns(p.event_type, at=self.clock())
        if patterns:
            self.patterns.setdefault(p.user_id, set()).update(patterns)
            logger.info("behavior_patterns_identified", extra={"user_id": p.user_id, "patterns": patterns})

        for milestone in await self.evaluate_milestones(p.user_id, p.event_type):
            self.milestones.setdefault(p.user_id, []).append(milestone)
            logger.info("milestone_achieved", extra={"user_id": p.user_id, "milestone": milestone.name})

    @staticmethod
    def behavior_patterns(event_type: str, *, at: datetime) -> list[str]:
        patterns: list[str] = []
        if 6 <= at.hour <= 9:
            patterns.append("morning-active")
        elif 20 <= at.hour <= 23:
            patterns.append("evening-active")

        if event_type == "task_completed":
            patterns.append("task-completer")
        elif event_type == "habit_completed":
            patterns.append("habit-tracker")
        return patterns

    async def evaluate_milestones(self, user_id: str, event_type: str) -> list[Milestone]:
        if event_type != "task_completed" or self.completed_count is None:
            return []
        total = await self.completed_count(user_id)
        if total not in TASK_MILESTONES:
            return []
        return [Milestone(f"{total}-tasks-completed", f"Completed {total} tasks!", total)]


class NotificationProcessor(QueueProcessor[NotificationMessage]):
    """Hand queued notifications to the notifier."""

    def __init__(self, notifier: Notifier, *, clock: Clock = utc_now, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.notifier = notifier
        self.clock = clock

    async def process(self, message: QueueMessage[NotificationMessage]) -> None:
        p = message.payload
        await self.notifier.schedule(
            Notification(
                user_id=p.user_id,
                kind=p.type,
                title=p.title,
                message=p.message,
                scheduled_for=p.scheduled_for or self.clock(),
                ref_id=p.metadata.get("ref_id"),
            )
        )
