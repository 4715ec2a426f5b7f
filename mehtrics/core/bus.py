"""mehtrics.core.bus

In-process event bus.

The bus is intentionally small:
- route events to handlers registered for their type
- run those handlers concurrently, in registration order of dispatch
- isolate failures: a broken handler is logged, never seen by siblings or the publisher
- hand a copy to the secondary topic, keyed for ordered downstream delivery

Retries are the handler's business, not the bus's.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from mehtrics.core.events import Event, EventType, ordering_key
from mehtrics.core.topic import EventTopic

logger = logging.getLogger(__name__)


@runtime_checkable
class EventHandler(Protocol):
    event_type: EventType

    async def handle(self, event: Event) -> None: ...


@dataclass(eq=False)
class FunctionHandler:
    """Adapts a bare coroutine function to the handler protocol."""

    event_type: EventType
    fn: Callable[[Event], Awaitable[None]]

    async def handle(self, event: Event) -> None:
        await self.fn(event)


@dataclass
class EventBus:
    """Routes events to registered handlers by type.

    Subscribing the same handler object twice makes it run twice per publish.
    There is no dedup; callers that register in a loop must guard themselves.
    """

    topic: EventTopic | None = None
    max_concurrency: int | None = None
    _handlers: dict[str, list[EventHandler]] = field(default_factory=dict)
    _semaphore: asyncio.Semaphore | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_concurrency is not None:
            self._semaphore = asyncio.Semaphore(self.max_concurrency)

    def subscribe(self, event_type: EventType | str, handler: EventHandler) -> None:
        self._handlers.setdefault(str(event_type), []).append(handler)

    def unsubscribe(self, event_type: EventType | str, handler: EventHandler) -> None:
        handlers = self._handlers.get(str(event_type))
        if not handlers:
            return
        for i, h in enumerate(handlers):
            if h is handler:
                del handlers[i]
                return

    def handlers_for(self, event_type: EventType | str) -> list[EventHandler]:
        return list(self._handlers.get(str(event_type), []))

    def clear(self) -> None:
        self._handlers.clear()

    async def _invoke(self, handler: EventHandler, event: Event) -> None:
        if self._semaphore is None:
            await handler.handle(event)
            return
        async with self._semaphore:
            await handler.handle(event)

    async def publish(self, event: Event) -> None:
        if self.topic is not None:
            try:
                await self.topic.publish(event, ordering_key=ordering_key(event))
            except Exception:  # noqa: BLE001 - topic delivery is best-effort
                logger.exception(
                    "event_topic_publish_failed",
                    extra={"event_type": str(event.type), "event_id": event.id},
                )

        handlers = self.handlers_for(event.type)
        if not handlers:
            return

        results = await asyncio.gather(
            *(self._invoke(h, event) for h in handlers), return_exceptions=True
        )

        failed = 0
        for handler, result in zip(handlers, results, strict=True):
            if isinstance(result, BaseException):
                failed += 1
                logger.error(
                    "event_handler_failed",
                    exc_info=result,
                    extra={
                        "event_type": str(event.type),
                        "event_id": event.id,
                        "handler": type(handler).__name__,
                    },
                )
        if failed:
            logger.warning(
                "event_publish_partial_failure",
                extra={"event_type": str(event.type), "failed": failed, "total": len(handlers)},
            )
