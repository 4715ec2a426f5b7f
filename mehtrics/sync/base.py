"""mehtrics.sync.base

Shared shape of the per-domain offline wrappers.

Every write goes through ``_submit``:
- reachable: call the remote directly; on any failure fall back to the queue
- unreachable: do not touch the network, queue it

Callers get the server entity back when the direct call worked and ``None``
otherwise. ``None`` means either "queued for later" or "stored, but the server
sent no usable entity back"; the pending count tells the two apart. A 2xx is
never queued again.
"""

from __future__ import annotations

import abc
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter

from mehtrics.core.exceptions import QueueStoreError
from mehtrics.core.network import NetworkMonitor
from mehtrics.offline.queue import OfflineQueue, QueueStatus, SyncResult
from mehtrics.offline.store import QueueStore, StoredItem
from mehtrics.remote.client import RemoteApi

logger = logging.getLogger(__name__)

M = TypeVar("M")
R = TypeVar("R")


class OfflineWrapper(abc.ABC, Generic[M]):
    mutation_type: Any = None

    def __init__(
        self,
        remote: RemoteApi,
        network: NetworkMonitor,
        store: QueueStore,
        *,
        max_attempts: int = 0,
        process_timeout_s: float | None = None,
    ) -> None:
        self.remote = remote
        self.network = network
        self.queue: OfflineQueue[M] = OfflineQueue(
            store.namespace,
            store=store,
            process=self._replay,
            network=network,
            adapter=TypeAdapter(self.mutation_type),
            max_attempts=max_attempts,
            process_timeout_s=process_timeout_s,
        )

    @property
    def name(self) -> str:
        return self.queue.name

    @abc.abstractmethod
    async def _replay(self, mutation: M) -> None: ...

    async def _submit(self, call: Callable[[], Awaitable[R]], mutation: M) -> R | None:
        if self.network.online:
            try:
                return await call()
            except Exception as e:  # noqa: BLE001 - any failure falls back to the queue
                logger.warning(
                    "offline_direct_call_failed",
                    extra={"queue": self.name, "error": f"{type(e).__name__}: {e}"},
                )

        try:
            await self.queue.enqueue(mutation)
        except QueueStoreError:
            # The write is lost; callers of create/update are promised no exceptions.
            logger.exception("offline_enqueue_failed", extra={"queue": self.name})
        return None

    # Queue passthrough

    @property
    def pending(self) -> int:
        return self.queue.pending

    @property
    def syncing(self) -> bool:
        return self.queue.syncing

    async def sync(self) -> SyncResult:
        return await self.queue.sync()

    sync_queue = sync

    async def start(self) -> None:
        await self.queue.start()

    def stop(self) -> None:
        self.queue.stop()

    def status(self) -> QueueStatus:
        return self.queue.status()

    async def dead_letters(self) -> list[StoredItem]:
        return await self.queue.dead_letters()

    async def requeue_dead_letters(self) -> int:
        return await self.queue.requeue_dead_letters()
