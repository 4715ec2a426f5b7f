from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Literal

import pytest
from pydantic import BaseModel, TypeAdapter

from mehtrics.core.exceptions import RemoteRejectedError, RemoteUnavailableError
from mehtrics.core.network import NetworkMonitor
from mehtrics.offline.queue import OfflineQueue, create_offline_queue
from mehtrics.offline.store import QueueDatabase


class Note(BaseModel):
    type: Literal["create"] = "create"
    text: str


class Replayer:
    """Records replayed notes; raises the scripted error on the matching call number (1-indexed)."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.fail_on: dict[int, Exception] = {}

    async def __call__(self, note: Note) -> None:
        self.calls.append(note.text)
        err = self.fail_on.pop(len(self.calls), None)
        if err is not None:
            raise err


def _queue(
    db: QueueDatabase,
    network: NetworkMonitor,
    replayer: Replayer,
    **kwargs,
) -> OfflineQueue[Note]:
    return OfflineQueue(
        "notes",
        store=db.namespace("notes"),
        process=replayer,
        network=network,
        adapter=TypeAdapter(Note),
        **kwargs,
    )


async def _enqueue_offline(q: OfflineQueue[Note], network: NetworkMonitor, texts: list[str]) -> None:
    await network.set_online(False)
    for t in texts:
        await q.enqueue(Note(text=t))


@pytest.mark.anyio
async def test_enqueue_on_fresh_store_updates_pending(queue_db: QueueDatabase, network: NetworkMonitor) -> None:
    q = _queue(queue_db, network, Replayer())

    key = await q.enqueue(Note(text="a"))

    assert key is not None
    assert q.pending == 1


@pytest.mark.anyio
async def test_online_signal_replays_all_in_order(queue_db: QueueDatabase, network: NetworkMonitor) -> None:
    replayer = Replayer()
    q = _queue(queue_db, network, replayer)
    await q.start()
    await _enqueue_offline(q, network, ["a", "b", "c"])
    assert replayer.calls == []

    await network.set_online(True)

    assert replayer.calls == ["a", "b", "c"]
    assert q.pending == 0
    assert q.syncing is False


@pytest.mark.anyio
async def test_failure_at_k_keeps_k_and_later(queue_db: QueueDatabase, network: NetworkMonitor) -> None:
    replayer = Replayer()
    replayer.fail_on[3] = RemoteUnavailableError("down")
    q = _queue(queue_db, network, replayer, max_attempts=5)
    await _enqueue_offline(q, network, ["a", "b", "c", "d", "e"])
    await network.set_online(True)

    result = await q.sync()

    assert replayer.calls == ["a", "b", "c"]
    assert q.pending == 5 - 2
    assert result.replayed == 2
    assert result.stopped_at is not None
    assert q.status().last_error is not None

    # Next pass resumes at the failed item, not the beginning.
    replayer.calls.clear()
    await q.sync()
    assert replayer.calls == ["c", "d", "e"]
    assert q.pending == 0
    assert q.status().last_error is None


@pytest.mark.anyio
async def test_pending_reaches_zero_only_if_all_succeed(queue_db: QueueDatabase, network: NetworkMonitor) -> None:
    replayer = Replayer()
    replayer.fail_on[1] = RuntimeError("nope")
    q = _queue(queue_db, network, replayer)
    await _enqueue_offline(q, network, ["a", "b"])
    await network.set_online(True)

    await q.sync()

    assert q.pending == 2
    assert replayer.calls == ["a"]


@pytest.mark.anyio
async def test_sync_while_offline_does_nothing(queue_db: QueueDatabase, network: NetworkMonitor) -> None:
    replayer = Replayer()
    q = _queue(queue_db, network, replayer)
    await _enqueue_offline(q, network, ["a"])

    result = await q.sync()

    assert result.skipped == "offline"
    assert replayer.calls == []
    assert q.pending == 1


@pytest.mark.anyio
async def test_overlapping_sync_is_latched(queue_db: QueueDatabase, network: NetworkMonitor) -> None:
    gate = asyncio.Event()
    calls: list[str] = []

    async def slow(note: Note) -> None:
        calls.append(note.text)
        await gate.wait()

    q = OfflineQueue(
        "notes",
        store=queue_db.namespace("notes"),
        process=slow,
        network=network,
        adapter=TypeAdapter(Note),
    )
    await _enqueue_offline(q, network, ["a", "b"])
    await network.set_online(True)

    first = asyncio.create_task(q.sync())
    await asyncio.sleep(0.05)
    assert q.syncing is True

    second = await q.sync()
    assert second.skipped == "in_flight"

    gate.set()
    await first

    assert calls == ["a", "b"]
    assert q.pending == 0
    assert q.syncing is False


@pytest.mark.anyio
async def test_permanent_rejection_is_dead_lettered_and_drain_continues(
    queue_db: QueueDatabase, network: NetworkMonitor
) -> None:
    replayer = Replayer()
    replayer.fail_on[1] = RemoteRejectedError(422)
    q = _queue(queue_db, network, replayer, max_attempts=5)
    await _enqueue_offline(q, network, ["poison", "b"])
    await network.set_online(True)

    result = await q.sync()

    assert replayer.calls == ["poison", "b"]
    assert result.dead_lettered == 1
    assert q.pending == 0
    assert q.status().dead_letters == 1
    dead = await q.dead_letters()
    assert [d.payload["text"] for d in dead] == ["poison"]


@pytest.mark.anyio
async def test_transient_failures_dead_letter_after_max_attempts(
    queue_db: QueueDatabase, network: NetworkMonitor
) -> None:
    replayer = Replayer()
    q = _queue(queue_db, network, replayer, max_attempts=2)
    await _enqueue_offline(q, network, ["flaky", "b"])
    await network.set_online(True)

    replayer.fail_on[1] = RemoteRejectedError(503)
    await q.sync()
    assert q.pending == 2

    replayer.fail_on[2] = RemoteRejectedError(503)
    result = await q.sync()
    # Moved aside, but the pass still stops.
    assert result.dead_lettered == 1
    assert replayer.calls == ["flaky", "flaky"]
    assert q.pending == 1

    await q.sync()
    assert replayer.calls[-1] == "b"
    assert q.pending == 0


@pytest.mark.anyio
async def test_zero_max_attempts_never_gives_up(queue_db: QueueDatabase, network: NetworkMonitor) -> None:
    replayer = Replayer()
    q = _queue(queue_db, network, replayer, max_attempts=0)
    await _enqueue_offline(q, network, ["stuck"])
    await network.set_online(True)

    for n in range(1, 4):
        replayer.fail_on[n] = RemoteUnavailableError("down")
        await q.sync()

    assert q.pending == 1
    assert q.status().dead_letters == 0
    assert queue_db.namespace("notes").items()[0].attempts == 3


@pytest.mark.anyio
async def test_hung_replay_times_out_as_transient(queue_db: QueueDatabase, network: NetworkMonitor) -> None:
    async def hang(_note: Note) -> None:
        await asyncio.sleep(10)

    q = OfflineQueue(
        "notes",
        store=queue_db.namespace("notes"),
        process=hang,
        network=network,
        adapter=TypeAdapter(Note),
        max_attempts=5,
        process_timeout_s=0.01,
    )
    await _enqueue_offline(q, network, ["a"])
    await network.set_online(True)

    result = await q.sync()

    assert result.stopped_at is not None
    assert q.pending == 1
    assert q.syncing is False


@pytest.mark.anyio
async def test_undecodable_row_is_moved_aside(queue_db: QueueDatabase, network: NetworkMonitor) -> None:
    replayer = Replayer()
    q = _queue(queue_db, network, replayer)
    queue_db.namespace("notes").append("create", {"type": "create"})  # missing text
    await q.enqueue(Note(text="ok"))

    result = await q.sync()

    assert replayer.calls == ["ok"]
    assert result.dead_lettered == 1
    assert q.pending == 0


@pytest.mark.anyio
async def test_start_drains_existing_items_and_stop_unhooks(
    queue_db: QueueDatabase, network: NetworkMonitor
) -> None:
    replayer = Replayer()
    queue_db.namespace("notes").append("create", {"type": "create", "text": "left over"})
    q = _queue(queue_db, network, replayer)

    await q.start()
    assert replayer.calls == ["left over"]
    assert network.listener_count == 1

    q.stop()
    assert network.listener_count == 0

    await _enqueue_offline(q, network, ["later"])
    await network.set_online(True)
    assert replayer.calls == ["left over"]
    assert q.pending == 1


@pytest.mark.anyio
async def test_start_while_offline_only_counts(queue_db: QueueDatabase) -> None:
    net = NetworkMonitor(online=False)
    replayer = Replayer()
    queue_db.namespace("notes").append("create", {"type": "create", "text": "x"})
    q = _queue(queue_db, net, replayer)

    await q.start()

    assert q.pending == 1
    assert replayer.calls == []


@pytest.mark.anyio
async def test_queue_on_unavailable_store_is_inert(tmp_path: Path, network: NetworkMonitor) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x")
    db = QueueDatabase(blocker / "offline.db")
    replayer = Replayer()
    q = _queue(db, network, replayer)

    assert await q.enqueue(Note(text="lost")) is None
    result = await q.sync()

    assert result.skipped == "unavailable"
    assert q.pending == 0
    assert q.status().available is False


@pytest.mark.anyio
async def test_factory_builds_adapter_from_type(queue_db: QueueDatabase, network: NetworkMonitor) -> None:
    replayer = Replayer()
    q = create_offline_queue(
        "notes", store=queue_db.namespace("notes"), process=replayer, network=network, item_type=Note
    )
    await q.enqueue(Note(text="a"))
    await q.sync()

    assert replayer.calls == ["a"]


@pytest.mark.anyio
async def test_requeue_dead_letters_puts_them_back(queue_db: QueueDatabase, network: NetworkMonitor) -> None:
    replayer = Replayer()
    replayer.fail_on[1] = RemoteRejectedError(400)
    q = _queue(queue_db, network, replayer)
    await q.enqueue(Note(text="fixed-later"))
    await q.sync()
    assert q.pending == 0

    assert await q.requeue_dead_letters() == 1
    assert q.pending == 1
    await q.sync()
    assert replayer.calls == ["fixed-later", "fixed-later"]
    assert q.pending == 0
