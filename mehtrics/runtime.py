"""mehtrics.runtime

Explicit wiring of the sync core.

Nothing in the package holds module-level state. ``Runtime.build`` creates every
collaborator once, and callers (CLI, API, tests) pass the runtime around.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

import httpx

from mehtrics.core.bus import EventBus, EventHandler
from mehtrics.core.config import Config
from mehtrics.core.exceptions import ConfigError
from mehtrics.core.network import NetworkMonitor
from mehtrics.core.topic import InMemoryTopic
from mehtrics.handlers.notification import StreakLookup, no_streak
from mehtrics.handlers.setup import register_default_handlers
from mehtrics.handlers.sinks import (
    InMemoryAnalyticsSink,
    InMemoryNotifier,
    InMemoryTagSink,
    Notifier,
)
from mehtrics.messaging.setup import MessageQueues, setup_queue_processors
from mehtrics.offline.queue import QueueStatus
from mehtrics.offline.store import QueueDatabase
from mehtrics.remote.client import RemoteApi
from mehtrics.sync.base import OfflineWrapper
from mehtrics.sync.journal import OfflineJournal
from mehtrics.sync.moods import OfflineMoods
from mehtrics.sync.tasks import OfflineTasks

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    config: Config
    network: NetworkMonitor
    topic: InMemoryTopic
    bus: EventBus
    remote: RemoteApi
    db: QueueDatabase
    tasks: OfflineTasks
    moods: OfflineMoods
    journal: OfflineJournal
    notifier: Notifier
    analytics: InMemoryAnalyticsSink
    tags: InMemoryTagSink
    messaging: MessageQueues
    handlers: list[EventHandler] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        config: Config,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        online: bool = True,
        notifier: Notifier | None = None,
        streaks: StreakLookup = no_streak,
    ) -> Runtime:
        network = NetworkMonitor(online=online)
        topic = InMemoryTopic(config.events.source)
        bus = EventBus(topic=topic, max_concurrency=config.events.max_concurrency)
        remote = RemoteApi(config.remote, transport=transport)
        db = QueueDatabase(config.offline_db_path)

        notifier = notifier if notifier is not None else InMemoryNotifier()
        analytics = InMemoryAnalyticsSink()
        tags = InMemoryTagSink()
        handlers = register_default_handlers(
            bus, notifier, analytics=analytics, tags=tags, streaks=streaks
        )

        ns = config.offline.namespaces
        opts = {
            "max_attempts": config.offline.max_attempts,
            "process_timeout_s": config.offline.process_timeout_s,
        }
        runtime = cls(
            config=config,
            network=network,
            topic=topic,
            bus=bus,
            remote=remote,
            db=db,
            tasks=OfflineTasks(remote, network, db.namespace(ns.tasks), **opts),
            moods=OfflineMoods(remote, network, db.namespace(ns.moods), **opts),
            journal=OfflineJournal(remote, network, db.namespace(ns.journal), **opts),
            notifier=notifier,
            analytics=analytics,
            tags=tags,
            messaging=setup_queue_processors(bus, notifier, config.messaging),
            handlers=handlers,
        )
        logger.info(
            "runtime_built",
            extra={"db_path": str(config.offline_db_path), "remote": config.remote.base_url},
        )
        return runtime

    @property
    def queues(self) -> dict[str, OfflineWrapper]:
        return {w.name: w for w in (self.tasks, self.moods, self.journal)}

    def queue(self, name: str) -> OfflineWrapper:
        try:
            return self.queues[name]
        except KeyError:
            raise ConfigError(f"unknown offline queue: {name}") from None

    async def start(self) -> None:
        """Mount every offline queue (drains what it can if online).

        Queues start side by side, so a replay stuck in one does not hold back the others.
        """

        await asyncio.gather(*(wrapper.start() for wrapper in self.queues.values()))

    async def refresh(self) -> None:
        for wrapper in self.queues.values():
            await wrapper.queue.refresh_pending()

    def status(self) -> list[QueueStatus]:
        return [w.status() for w in self.queues.values()]

    async def aclose(self) -> None:
        for wrapper in self.queues.values():
            wrapper.stop()
        await self.remote.aclose()
        self.db.close()
