"""mehtrics.offline.queue

Generic offline mutation queue.

A queue is built from:
- a store namespace (durable FIFO)
- a ``process`` coroutine that replays one mutation against the remote API
- the network signal
- a pydantic adapter for the queue's mutation union

Drain protocol:
1. read every queued row into memory (no lock held across network awaits)
2. replay rows oldest first; delete each one as soon as its replay succeeds
3. on a transient failure, stop: that row and everything after it stay queued

Only one drain runs at a time per queue. A second ``sync()`` while one is in
flight returns immediately.

Giving up on a row:
- permanent rejections (4xx) and undecodable rows move to the dead-letter table at once,
  and the drain carries on with the next row
- transient failures bump the row's attempt counter; at ``max_attempts`` the row is
  moved aside, but the drain still stops (0 disables moving aside)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from mehtrics.core.network import NetworkMonitor
from mehtrics.offline.store import QueueStore, StoredItem

logger = logging.getLogger(__name__)

T = TypeVar("T")

ProcessFn = Callable[[T], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class QueueStatus:
    name: str
    available: bool
    pending: int
    syncing: bool
    dead_letters: int
    last_error: str | None = None


@dataclass(frozen=True, slots=True)
class SyncResult:
    replayed: int = 0
    dead_lettered: int = 0
    stopped_at: int | None = None  # key of the row that blocked the drain
    skipped: str | None = None  # "offline" | "in_flight" | "unavailable"


def _is_permanent(exc: BaseException) -> bool:
    return bool(getattr(exc, "permanent", False))


class OfflineQueue(Generic[T]):
    def __init__(
        self,
        name: str,
        *,
        store: QueueStore,
        process: ProcessFn[T],
        network: NetworkMonitor,
        adapter: TypeAdapter[T],
        max_attempts: int = 0,
        process_timeout_s: float | None = None,
    ) -> None:
        self.name = name
        self.store = store
        self.process = process
        self.network = network
        self.adapter = adapter
        self.max_attempts = int(max_attempts)
        self.process_timeout_s = process_timeout_s

        self._pending = 0
        self._dead = 0
        self._syncing = False
        self._started = False
        self._available = True
        self.last_error: str | None = None

    # -----------------
    # State
    # -----------------

    @property
    def pending(self) -> int:
        return self._pending

    @property
    def syncing(self) -> bool:
        return self._syncing

    def status(self) -> QueueStatus:
        return QueueStatus(
            name=self.name,
            available=self._available,
            pending=self._pending,
            syncing=self._syncing,
            dead_letters=self._dead,
            last_error=self.last_error,
        )

    def _counts(self) -> tuple[bool, int, int]:
        if not self.store.available:
            return False, 0, 0
        return True, self.store.count(), self.store.dead_letter_count()

    async def refresh_pending(self) -> int:
        self._available, self._pending, self._dead = await asyncio.to_thread(self._counts)
        return self._pending

    # -----------------
    # Lifecycle
    # -----------------

    async def start(self) -> None:
        """Mount: pick up what is already queued and drain it if we can."""

        if self._started:
            return
        self._started = True
        self.network.add_listener(self._on_online)
        await self.refresh_pending()
        if self.network.online:
            await self.sync()

    def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        self.network.remove_listener(self._on_online)

    async def _on_online(self) -> None:
        await self.sync()

    # -----------------
    # Operations
    # -----------------

    async def enqueue(self, item: T) -> int | None:
        """Persist ``item`` at the tail. Returns its key, or None when storage is unavailable."""

        payload: dict[str, Any] = self.adapter.dump_python(item, mode="json")
        kind = str(payload.get("type", "unknown"))
        key = await asyncio.to_thread(self.store.append, kind, payload)
        if key is None:
            logger.warning("offline_enqueue_dropped", extra={"queue": self.name, "kind": kind})
        else:
            logger.info("offline_enqueued", extra={"queue": self.name, "kind": kind, "key": key})
        await self.refresh_pending()
        return key

    async def sync(self) -> SyncResult:
        if self._syncing:
            logger.debug("offline_sync_already_running", extra={"queue": self.name})
            return SyncResult(skipped="in_flight")
        if not self.network.online:
            return SyncResult(skipped="offline")

        # Latch before the first await so an overlapping call sees it.
        self._syncing = True
        try:
            if not await asyncio.to_thread(lambda: self.store.available):
                self._available = False
                return SyncResult(skipped="unavailable")
            result = await self._drain()
        finally:
            try:
                await self.refresh_pending()
            finally:
                self._syncing = False

        if result.replayed or result.dead_lettered or result.stopped_at is not None:
            logger.info(
                "offline_sync_finished",
                extra={
                    "queue": self.name,
                    "replayed": result.replayed,
                    "dead_lettered": result.dead_lettered,
                    "stopped_at": result.stopped_at,
                    "pending": self._pending,
                },
            )
        return result

    sync_queue = sync

    async def _replay(self, item: T) -> None:
        if self.process_timeout_s is None:
            await self.process(item)
        else:
            await asyncio.wait_for(self.process(item), timeout=self.process_timeout_s)

    async def _drain(self) -> SyncResult:
        snapshot: list[StoredItem] = await asyncio.to_thread(self.store.items)

        replayed = 0
        dead = 0
        for stored in snapshot:
            try:
                item = self.adapter.validate_python(stored.payload)
            except ValidationError as e:
                await self._give_up(stored, f"undecodable: {e}")
                dead += 1
                continue

            try:
                await self._replay(item)
            except Exception as e:  # noqa: BLE001 - replay isolation boundary
                error = f"{type(e).__name__}: {e}"
                self.last_error = error
                logger.error(
                    "offline_replay_failed",
                    exc_info=e,
                    extra={"queue": self.name, "key": stored.key, "kind": stored.kind},
                )
                if _is_permanent(e):
                    await self._give_up(stored, error)
                    dead += 1
                    continue

                attempts = await asyncio.to_thread(self.store.record_failure, stored.key, error)
                if self.max_attempts and attempts >= self.max_attempts:
                    await self._give_up(stored, error)
                    dead += 1
                return SyncResult(replayed=replayed, dead_lettered=dead, stopped_at=stored.key)

            await asyncio.to_thread(self.store.delete, stored.key)
            replayed += 1

        if not dead:
            self.last_error = None
        return SyncResult(replayed=replayed, dead_lettered=dead)

    async def _give_up(self, stored: StoredItem, error: str) -> None:
        await asyncio.to_thread(self.store.move_to_dead_letter, stored.key, error)
        logger.warning(
            "offline_dead_lettered",
            extra={"queue": self.name, "key": stored.key, "kind": stored.kind, "error": error},
        )

    async def dead_letters(self) -> list[StoredItem]:
        return await asyncio.to_thread(self.store.dead_letters)

    async def requeue_dead_letters(self) -> int:
        moved = await asyncio.to_thread(self.store.requeue_dead_letters)
        await self.refresh_pending()
        return moved


def create_offline_queue(
    name: str,
    *,
    store: QueueStore,
    process: ProcessFn[T],
    network: NetworkMonitor,
    item_type: Any,
    max_attempts: int = 0,
    process_timeout_s: float | None = None,
) -> OfflineQueue[T]:
    """Factory mirroring the queue constructor, taking the mutation type instead of an adapter."""

    return OfflineQueue(
        name,
        store=store,
        process=process,
        network=network,
        adapter=TypeAdapter(item_type),
        max_attempts=max_attempts,
        process_timeout_s=process_timeout_s,
    )
