"""mehtrics.handlers

Stock event handlers: analytics, tagging, notifications.
"""

from .setup import register_default_handlers
from .sinks import (
    AnalyticsRecord,
    InMemoryAnalyticsSink,
    InMemoryNotifier,
    InMemoryTagSink,
    Notification,
    TagSuggestion,
)

__all__ = [
    "AnalyticsRecord",
    "InMemoryAnalyticsSink",
    "InMemoryNotifier",
    "InMemoryTagSink",
    "Notification",
    "TagSuggestion",
    "register_default_handlers",
]
