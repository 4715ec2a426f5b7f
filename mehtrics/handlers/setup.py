"""mehtrics.handlers.setup"""

from __future__ import annotations

import logging

from mehtrics.core.bus import EventBus, EventHandler
from mehtrics.handlers.analytics import (
    AnalyticsEventHandler,
    HabitAnalyticsHandler,
    MoodAnalyticsHandler,
    TaskCompletionAnalyticsHandler,
)
from mehtrics.handlers.notification import (
    HabitStreakNotificationHandler,
    MoodReminderHandler,
    StreakLookup,
    TaskDeadlineNotificationHandler,
    no_streak,
)
from mehtrics.handlers.sinks import (
    AnalyticsSink,
    InMemoryAnalyticsSink,
    InMemoryTagSink,
    Notifier,
    TagSink,
)
from mehtrics.handlers.tagging import JournalTaggingHandler, TaskTaggingHandler

logger = logging.getLogger(__name__)


def register_default_handlers(
    bus: EventBus,
    notifier: Notifier,
    *,
    analytics: AnalyticsSink | None = None,
    tags: TagSink | None = None,
    streaks: StreakLookup = no_streak,
) -> list[EventHandler]:
    """Subscribe the stock analytics, tagging and notification handlers.

    Call once per bus. Calling twice doubles every handler.
    """

    analytics = analytics if analytics is not None else InMemoryAnalyticsSink()
    tags = tags if tags is not None else InMemoryTagSink()

    handlers: list[EventHandler] = [
        AnalyticsEventHandler(analytics),
        TaskCompletionAnalyticsHandler(analytics),
        MoodAnalyticsHandler(analytics),
        HabitAnalyticsHandler(analytics),
        TaskTaggingHandler(tags),
        JournalTaggingHandler(tags),
        TaskDeadlineNotificationHandler(notifier),
        HabitStreakNotificationHandler(notifier, streaks),
        MoodReminderHandler(notifier),
    ]
    for handler in handlers:
        bus.subscribe(handler.event_type, handler)

    logger.info("event_handlers_registered", extra={"count": len(handlers)})
    return handlers
