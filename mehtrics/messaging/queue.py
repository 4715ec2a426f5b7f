"""mehtrics.messaging.queue

Process-local message queues for background work.

Unlike the event bus, messages here are commands ("do this") and a processor
may retry them. A queue fans each message out to its named subscriptions;
each subscription is expected to be a processor's ``handle_with_retry``.

Retry policy:
- attempt, and on failure wait ``2**retry_count * backoff_base_s`` seconds
- give up after ``max_retries`` retries and hand the message to ``handle_dead_letter``
"""

from __future__ import annotations

import abc
import asyncio
import logging
import uuid
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, Field

from mehtrics.core.time import utc_now

logger = logging.getLogger(__name__)

Priority = Literal["low", "medium", "high"]

P = TypeVar("P")


class QueueMessage(BaseModel, Generic[P]):
    id: str
    type: str
    payload: P
    priority: Priority = "medium"
    timestamp: datetime
    retry_count: int = 0
    max_retries: int = 3
    delay_until: datetime | None = None

    model_config = {"frozen": True}


# -----------------
# Payloads
# -----------------


class TaskProcessingMessage(BaseModel):
    user_id: str
    task_id: str
    # create | update | complete | delete. Kept open so bad input reaches the processor.
    operation: str
    data: dict[str, Any] = Field(default_factory=dict)


class AnalyticsMessage(BaseModel):
    user_id: str
    event_type: str
    properties: dict[str, Any] = Field(default_factory=dict)
    session_id: str | None = None


class NotificationMessage(BaseModel):
    user_id: str
    type: Literal["push", "email", "in-app"]
    title: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    scheduled_for: datetime | None = None


def create_queue_message(
    type: str,
    payload: P,
    priority: Priority = "medium",
    max_retries: int = 3,
    delay_until: datetime | None = None,
) -> QueueMessage[P]:
    return QueueMessage[Any](
        id=str(uuid.uuid4()),
        type=type,
        payload=payload,
        priority=priority,
        timestamp=utc_now(),
        retry_count=0,
        max_retries=max_retries,
        delay_until=delay_until,
    )


MessageHandler = Callable[[QueueMessage[Any]], Awaitable[None]]


class MessageQueue(Generic[P]):
    """Named fan-out queue. Publishing waits for every subscription to finish.

    ``max_retries`` is the retry budget stamped on messages built with ``message()``.
    """

    def __init__(self, name: str, *, max_retries: int = 3) -> None:
        self.name = name
        self.max_retries = int(max_retries)
        self._subscriptions: dict[str, MessageHandler] = {}

    def message(
        self,
        type: str,
        payload: P,
        priority: Priority = "medium",
        delay_until: datetime | None = None,
    ) -> QueueMessage[P]:
        return create_queue_message(
            type, payload, priority=priority, max_retries=self.max_retries, delay_until=delay_until
        )

    def subscription(self, name: str, handler: MessageHandler) -> None:
        self._subscriptions[name] = handler
        logger.info("queue_subscription_created", extra={"queue": self.name, "subscription": name})

    def subscriptions(self) -> list[str]:
        return list(self._subscriptions)

    async def publish(self, message: QueueMessage[P]) -> None:
        logger.debug(
            "queue_message_published",
            extra={"queue": self.name, "message_id": message.id, "type": message.type},
        )
        names = list(self._subscriptions)
        handlers = [self._subscriptions[n] for n in names]
        results = await asyncio.gather(*(h(message) for h in handlers), return_exceptions=True)
        for name, result in zip(names, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(
                    "queue_subscription_failed",
                    exc_info=result,
                    extra={"queue": self.name, "subscription": name, "message_id": message.id},
                )


class QueueProcessor(abc.ABC, Generic[P]):
    def __init__(
        self,
        *,
        backoff_base_s: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        keep_dead_letters: int = 1000,
    ) -> None:
        self.backoff_base_s = float(backoff_base_s)
        self._sleep = sleep
        # Newest dead letters only; processors live as long as the runtime.
        self.dead_letters: deque[tuple[QueueMessage[P], str]] = deque(maxlen=keep_dead_letters)

    @abc.abstractmethod
    async def process(self, message: QueueMessage[P]) -> None: ...

    def backoff_s(self, retry_count: int) -> float:
        return (2**retry_count) * self.backoff_base_s

    async def handle_with_retry(self, message: QueueMessage[P]) -> None:
        while True:
            try:
                await self.process(message)
                return
            except Exception as e:  # noqa: BLE001 - retry boundary
                logger.error(
                    "queue_processing_failed",
                    exc_info=e,
                    extra={
                        "processor": type(self).__name__,
                        "message_id": message.id,
                        "retry_count": message.retry_count,
                    },
                )
                if message.retry_count >= message.max_retries:
                    await self.handle_dead_letter(message, e)
                    return

                delay = self.backoff_s(message.retry_count)
                message = message.model_copy(
                    update={
                        "retry_count": message.retry_count + 1,
                        "delay_until": utc_now() + timedelta(seconds=delay),
                    }
                )
                logger.info(
                    "queue_message_retry_scheduled",
                    extra={
                        "message_id": message.id,
                        "delay_s": delay,
                        "attempt": message.retry_count,
                        "max_retries": message.max_retries,
                    },
                )
                await self._sleep(delay)

    async def handle_dead_letter(self, message: QueueMessage[P], error: BaseException) -> None:
        self.dead_letters.append((message, f"{type(error).__name__}: {error}"))
        logger.error(
            "queue_message_dead_lettered",
            extra={
                "processor": type(self).__name__,
                "message_id": message.id,
                "type": message.type,
                "retries": message.retry_count,
            },
        )
