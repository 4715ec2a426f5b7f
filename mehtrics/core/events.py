"""mehtrics.core.events

The event contract is the primitive.

An event is a fact that already happened. The type tag decides the payload shape;
handlers never reach for fields outside the shape bound to their tag.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, model_validator

from mehtrics import SCHEMA_VERSION
from mehtrics.core.exceptions import EventSchemaError
from mehtrics.core.time import utc_now


class EventType(StrEnum):
    """Canonical event type registry.

    Naming: ``{domain}.{verb}``.
    """

    TASK_CREATED = "task.created"
    TASK_COMPLETED = "task.completed"
    TASK_UPDATED = "task.updated"

    HABIT_CREATED = "habit.created"
    HABIT_COMPLETED = "habit.completed"

    MOOD_CREATED = "mood.created"

    JOURNAL_CREATED = "journal.created"

    CALENDAR_CREATED = "calendar.created"

    ANALYTICS_TRACKED = "analytics.tracked"


# -----------------
# Typed payloads
# -----------------


class TaskCreatedPayload(BaseModel):
    """Payload for :pydata:`~mehtrics.core.events.EventType.TASK_CREATED`."""

    task_id: str
    user_id: str
    title: str
    due_date: datetime | None = None
    priority: Literal["low", "medium", "high"] | None = None
    tags: list[str] = Field(default_factory=list)


class TaskCompletedPayload(BaseModel):
    task_id: str
    user_id: str
    completed_at: datetime
    duration: float | None = None


class TaskUpdatedPayload(BaseModel):
    task_id: str
    user_id: str
    changes: dict[str, Any]


class HabitCreatedPayload(BaseModel):
    habit_id: str
    user_id: str
    name: str
    frequency: str


class HabitCompletedPayload(BaseModel):
    habit_id: str
    user_id: str
    entry_id: str
    completed_at: datetime
    success: bool


class MoodCreatedPayload(BaseModel):
    mood_id: str
    user_id: str
    mood: int
    energy: int | None = None
    notes: str | None = None


class JournalCreatedPayload(BaseModel):
    entry_id: str
    user_id: str
    kind: Literal["quick", "freeform"]
    content: str
    linked_entries: list[str] = Field(default_factory=list)


class CalendarCreatedPayload(BaseModel):
    event_id: str
    user_id: str
    title: str
    start_time: datetime
    end_time: datetime


class AnalyticsTrackedPayload(BaseModel):
    user_id: str
    event_type: str
    properties: dict[str, Any] = Field(default_factory=dict)


PayloadModel = (
    TaskCreatedPayload
    | TaskCompletedPayload
    | TaskUpdatedPayload
    | HabitCreatedPayload
    | HabitCompletedPayload
    | MoodCreatedPayload
    | JournalCreatedPayload
    | CalendarCreatedPayload
    | AnalyticsTrackedPayload
)


_EVENT_PAYLOAD_MODELS: dict[EventType, type[BaseModel]] = {
    EventType.TASK_CREATED: TaskCreatedPayload,
    EventType.TASK_COMPLETED: TaskCompletedPayload,
    EventType.TASK_UPDATED: TaskUpdatedPayload,
    EventType.HABIT_CREATED: HabitCreatedPayload,
    EventType.HABIT_COMPLETED: HabitCompletedPayload,
    EventType.MOOD_CREATED: MoodCreatedPayload,
    EventType.JOURNAL_CREATED: JournalCreatedPayload,
    EventType.CALENDAR_CREATED: CalendarCreatedPayload,
    EventType.ANALYTICS_TRACKED: AnalyticsTrackedPayload,
}


def payload_model_for(event_type: EventType | str) -> type[BaseModel]:
    return _EVENT_PAYLOAD_MODELS[EventType(event_type)]


class Event(BaseModel):
    """Immutable event envelope.

    ``data`` is always an instance of the payload model bound to ``type``.
    """

    id: str
    timestamp: datetime
    source: str
    version: str = SCHEMA_VERSION
    type: EventType
    data: PayloadModel

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _bind_payload_to_type(cls, values: Any) -> Any:
        if not isinstance(values, dict) or "type" not in values:
            return values

        model = payload_model_for(values["type"])
        data = values.get("data")
        if isinstance(data, BaseModel):
            if not isinstance(data, model):
                raise ValueError(
                    f"payload {type(data).__name__} does not match event type {values['type']}"
                )
            return values
        if isinstance(data, dict):
            return {**values, "data": model.model_validate(data)}
        return values


def create_event(
    event_type: EventType | str,
    source: str,
    data: BaseModel | dict[str, Any],
) -> Event:
    """Build a fully stamped event. Does not publish it.

    Raises:
        EventSchemaError: if ``data`` does not fit the shape bound to ``event_type``.
    """

    try:
        return Event(
            id=str(uuid.uuid4()),
            timestamp=utc_now(),
            source=source,
            version=SCHEMA_VERSION,
            type=EventType(event_type),
            data=data,
        )
    except (ValidationError, ValueError) as e:
        raise EventSchemaError(f"invalid payload for {event_type}: {e}") from e


def ordering_key(event: Event) -> str:
    """Partition key for downstream consumers: the user when known, else the source."""

    user_id = getattr(event.data, "user_id", None)
    return str(user_id) if user_id else event.source
