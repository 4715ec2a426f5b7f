"""mehtrics.messaging

Background work queues with retrying processors.
"""

from .processors import AnalyticsProcessor, NotificationProcessor, TaskProcessor
from .queue import (
    AnalyticsMessage,
    MessageQueue,
    NotificationMessage,
    QueueMessage,
    QueueProcessor,
    TaskProcessingMessage,
    create_queue_message,
)
from .setup import MessageQueues, setup_queue_processors

__all__ = [
    "AnalyticsMessage",
    "AnalyticsProcessor",
    "MessageQueue",
    "MessageQueues",
    "NotificationMessage",
    "NotificationProcessor",
    "QueueMessage",
    "QueueProcessor",
    "TaskProcessingMessage",
    "TaskProcessor",
    "create_queue_message",
    "setup_queue_processors",
]
