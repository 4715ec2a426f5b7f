"""mehtrics.messaging.setup"""

from __future__ import annotations

from dataclasses import dataclass

from mehtrics.core.bus import EventBus
from mehtrics.core.config import MessagingConfig
from mehtrics.handlers.sinks import Notifier
from mehtrics.messaging.processors import (
    AnalyticsProcessor,
    CompletedCount,
    NotificationProcessor,
    TaskProcessor,
)
from mehtrics.messaging.queue import (
    AnalyticsMessage,
    MessageQueue,
    NotificationMessage,
    TaskProcessingMessage,
)


@dataclass
class MessageQueues:
    tasks: MessageQueue[TaskProcessingMessage]
    analytics: MessageQueue[AnalyticsMessage]
    notifications: MessageQueue[NotificationMessage]
    task_processor: TaskProcessor
    analytics_processor: AnalyticsProcessor
    notification_processor: NotificationProcessor


def setup_queue_processors(
    bus: EventBus,
    notifier: Notifier,
    config: MessagingConfig | None = None,
    *,
    completed_count: CompletedCount | None = None,
) -> MessageQueues:
    """Build the three work queues and subscribe their processors."""

    cfg = config or MessagingConfig()

    task_processor = TaskProcessor(bus, backoff_base_s=cfg.backoff_base_s)
    analytics_processor = AnalyticsProcessor(
        completed_count=completed_count, backoff_base_s=cfg.backoff_base_s
    )
    notification_processor = NotificationProcessor(notifier, backoff_base_s=cfg.backoff_base_s)

    tasks: MessageQueue[TaskProcessingMessage] = MessageQueue(
        "task-processing", max_retries=cfg.max_retries
    )
    analytics: MessageQueue[AnalyticsMessage] = MessageQueue(
        "analytics", max_retries=cfg.max_retries
    )
    notifications: MessageQueue[NotificationMessage] = MessageQueue(
        "notifications", max_retries=cfg.max_retries
    )

    tasks.subscription("task-processor", task_processor.handle_with_retry)
    analytics.subscription("analytics-processor", analytics_processor.handle_with_retry)
    notifications.subscription("notification-processor", notification_processor.handle_with_retry)

    return MessageQueues(
        tasks=tasks,
        analytics=analytics,
        notifications=notifications,
        task_processor=task_processor,
        analytics_processor=analytics_processor,
        notification_processor=notification_processor,
    )
