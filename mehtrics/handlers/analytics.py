"""mehtrics.handlers.analytics

Turn domain events into analytics records.

Each handler picks the fields that matter for insights, logs them, and hands
them to the analytics sink. Nothing is aggregated here.
"""

from __future__ import annotations

import abc
import logging

from mehtrics.core.events import (
    AnalyticsTrackedPayload,
    Event,
    EventType,
    HabitCompletedPayload,
    MoodCreatedPayload,
    TaskCompletedPayload,
)
from mehtrics.handlers.sinks import AnalyticsRecord, AnalyticsSink

logger = logging.getLogger(__name__)


class _AnalyticsHandler(abc.ABC):
    event_type: EventType

    def __init__(self, sink: AnalyticsSink) -> None:
        self.sink = sink

    @abc.abstractmethod
    def build(self, event: Event) -> AnalyticsRecord: ...

    async def handle(self, event: Event) -> None:
        if event.type != self.event_type:
            return
        record = self.build(event)
        logger.info(
            "analytics_recorded",
            extra={"user_id": record.user_id, "action": record.action, "event_id": event.id},
        )
        await self.sink.record(record)


class AnalyticsEventHandler(_AnalyticsHandler):
    event_type = EventType.ANALYTICS_TRACKED

    def build(self, event: Event) -> AnalyticsRecord:
        data: AnalyticsTrackedPayload = event.data  # type: ignore[assignment]
        return AnalyticsRecord(
            user_id=data.user_id,
            action=data.event_type,
            timestamp=event.timestamp,
            properties=dict(data.properties),
        )


class TaskCompletionAnalyticsHandler(_AnalyticsHandler):
    event_type = EventType.TASK_COMPLETED

    def build(self, event: Event) -> AnalyticsRecord:
        data: TaskCompletedPayload = event.data  # type: ignore[assignment]
        return AnalyticsRecord(
            user_id=data.user_id,
            action="task_completed",
            timestamp=data.completed_at,
            properties={"task_id": data.task_id, "duration": data.duration},
        )


class MoodAnalyticsHandler(_AnalyticsHandler):
    event_type = EventType.MOOD_CREATED

    def build(self, event: Event) -> AnalyticsRecord:
        data: MoodCreatedPayload = event.data  # type: ignore[assignment]
        return AnalyticsRecord(
            user_id=data.user_id,
            action="mood_entry_created",
            timestamp=event.timestamp,
            properties={"mood": data.mood, "energy": data.energy},
        )


class HabitAnalyticsHandler(_AnalyticsHandler):
    event_type = EventType.HABIT_COMPLETED

    def build(self, event: Event) -> AnalyticsRecord:
        data: HabitCompletedPayload = event.data  # type: ignore[assignment]
        return AnalyticsRecord(
            user_id=data.user_id,
            action="habit_completed",
            timestamp=event.timestamp,
            properties={"habit_id": data.habit_id, "success": data.success},
        )
