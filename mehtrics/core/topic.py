"""mehtrics.core.topic

Secondary distribution channel for events.

The bus hands every published event to a topic so that consumers outside the
process can see it. This in-memory topic is the local stand-in: named
subscriptions, best-effort fan-out, failures logged and dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from mehtrics.core.events import Event

logger = logging.getLogger(__name__)

TopicHandler = Callable[[Event], Awaitable[None]]


@runtime_checkable
class EventTopic(Protocol):
    async def publish(self, event: Event, *, ordering_key: str | None = None) -> None: ...


class InMemoryTopic:
    """Named-subscription fan-out. Re-using a name replaces the old handler."""

    def __init__(self, name: str = "events") -> None:
        self.name = name
        self._subscriptions: dict[str, TopicHandler] = {}
        self.last_ordering_key: str | None = None

    def subscription(self, name: str, handler: TopicHandler) -> None:
        replaced = name in self._subscriptions
        self._subscriptions[name] = handler
        logger.debug(
            "topic_subscription_created",
            extra={"topic": self.name, "subscription": name, "replaced": replaced},
        )

    def unsubscribe(self, name: str) -> None:
        if self._subscriptions.pop(name, None) is not None:
            logger.debug("topic_subscription_removed", extra={"topic": self.name, "subscription": name})

    def subscriptions(self) -> list[str]:
        return list(self._subscriptions)

    async def publish(self, event: Event, *, ordering_key: str | None = None) -> None:
        self.last_ordering_key = ordering_key
        handlers = list(self._subscriptions.values())
        if not handlers:
            return

        results = await asyncio.gather(*(h(event) for h in handlers), return_exceptions=True)
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            logger.error(
                "topic_subscribers_failed",
                extra={
                    "topic": self.name,
                    "event_type": str(event.type),
                    "failed": len(errors),
                    "reasons": [repr(e) for e in errors],
                },
            )
