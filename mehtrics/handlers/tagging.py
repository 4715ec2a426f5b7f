"""mehtrics.handlers.tagging

Suggest tags for new tasks and journal entries.

Rules are plain substring checks on lowercased text. They are suggestions; the
tag sink decides whether to apply them.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import datetime

from mehtrics.core.events import Event, EventType, JournalCreatedPayload, TaskCreatedPayload
from mehtrics.core.time import ensure_utc, utc_now
from mehtrics.handlers.sinks import TagSink, TagSuggestion

logger = logging.getLogger(__name__)

# (tag, any of these substrings)
TASK_CONTENT_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("meeting", ("meeting", "call")),
    ("communication", ("email", "reply")),
    ("review", ("review", "check")),
    ("planning", ("plan", "prepare")),
]

POSITIVE_WORDS = ("happy", "good", "great", "amazing", "wonderful", "excited", "accomplished")
NEGATIVE_WORDS = ("sad", "bad", "terrible", "awful", "frustrated", "stressed", "worried")

JOURNAL_ACTIVITY_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("work", ("work", "office")),
    ("family", ("family", "home")),
    ("fitness", ("exercise", "gym", "run")),
]


def task_tags(
    title: str,
    due_date: datetime | None,
    priority: str | None,
    *,
    now: datetime | None = None,
) -> list[str]:
    tags: list[str] = []

    if due_date is not None:
        ref = now or utc_now()
        days = math.ceil((ensure_utc(due_date) - ensure_utc(ref)).total_seconds() / 86400)
        if days <= 1:
            tags.append("urgent")
        elif days <= 7:
            tags.append("this-week")
        elif days <= 30:
            tags.append("this-month")

    if priority:
        tags.append(f"priority-{priority}")

    lowered = title.lower()
    for tag, needles in TASK_CONTENT_RULES:
        if any(n in lowered for n in needles):
            tags.append(tag)
    return tags


def journal_tags(content: str, kind: str) -> list[str]:
    tags = [f"journal-{kind}"]
    lowered = content.lower()

    positive = sum(1 for w in POSITIVE_WORDS if w in lowered)
    negative = sum(1 for w in NEGATIVE_WORDS if w in lowered)
    if positive > negative:
        tags.append("positive-mood")
    elif negative > positive:
        tags.append("challenging-day")

    for tag, needles in JOURNAL_ACTIVITY_RULES:
        if any(n in lowered for n in needles):
            tags.append(tag)
    return tags


class TaskTaggingHandler:
    event_type = EventType.TASK_CREATED

    def __init__(self, sink: TagSink, *, clock: Callable[[], datetime] = utc_now) -> None:
        self.sink = sink
        self.clock = clock

    async def handle(self, event: Event) -> None:
        if event.type != self.event_type:
            return
        data: TaskCreatedPayload = event.data  # type: ignore[assignment]
        tags = task_tags(data.title, data.due_date, data.priority, now=self.clock())
        if not tags:
            return
        logger.info("task_tags_suggested", extra={"task_id": data.task_id, "tags": tags})
        await self.sink.apply(TagSuggestion("task", data.task_id, tuple(tags)))


class JournalTaggingHandler:
    event_type = EventType.JOURNAL_CREATED

    def __init__(self, sink: TagSink) -> None:
        self.sink = sink

    async def handle(self, event: Event) -> None:
        if event.type != self.event_type:
            return
        data: JournalCreatedPayload = event.data  # type: ignore[assignment]
        tags = journal_tags(data.content, data.kind)
        logger.info("journal_tags_suggested", extra={"entry_id": data.entry_id, "tags": tags})
        await self.sink.apply(TagSuggestion("journal", data.entry_id, tuple(tags)))
