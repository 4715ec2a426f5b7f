"""mehtrics.handlers.sinks

Where handler output goes.

Handlers do not talk to services directly. They write to a sink, and the runtime
decides what a sink is. The in-memory versions are what the runtime uses unless
told otherwise, and what tests assert against. They keep only the newest
``keep`` entries, since the runtime lives as long as the API process.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

DEFAULT_KEEP = 1000


@dataclass(frozen=True)
class AnalyticsRecord:
    user_id: str
    action: str
    timestamp: datetime
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TagSuggestion:
    entity_type: str  # "task" | "journal"
    entity_id: str
    tags: tuple[str, ...]


@dataclass(frozen=True)
class Notification:
    user_id: str
    kind: str
    title: str
    message: str
    scheduled_for: datetime
    ref_id: str | None = None


class AnalyticsSink(Protocol):
    async def record(self, record: AnalyticsRecord) -> None: ...


class TagSink(Protocol):
    async def apply(self, suggestion: TagSuggestion) -> None: ...


class Notifier(Protocol):
    async def schedule(self, notification: Notification) -> None: ...


class InMemoryAnalyticsSink:
    def __init__(self, keep: int = DEFAULT_KEEP) -> None:
        self.records: deque[AnalyticsRecord] = deque(maxlen=keep)

    async def record(self, record: AnalyticsRecord) -> None:
        self.records.append(record)


class InMemoryTagSink:
    def __init__(self, keep: int = DEFAULT_KEEP) -> None:
        self.suggestions: deque[TagSuggestion] = deque(maxlen=keep)

    async def apply(self, suggestion: TagSuggestion) -> None:
        self.suggestions.append(suggestion)


class InMemoryNotifier:
    def __init__(self, keep: int = DEFAULT_KEEP) -> None:
        self.scheduled: deque[Notification] = deque(maxlen=keep)

    async def schedule(self, notification: Notification) -> None:
        self.scheduled.append(notification)
