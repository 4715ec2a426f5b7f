from __future__ import annotations

import asyncio
import datetime as dt

import httpx
import pytest

from mehtrics.core.config import Config
from mehtrics.remote.models import CreateMoodEntryRequest, CreateTaskRequest
from mehtrics.runtime import Runtime
from tests.unit._fake_tracker import FakeTracker


@pytest.mark.anyio
async def test_task_created_offline_is_replayed_on_reconnect(test_config: Config) -> None:
    tracker = FakeTracker()
    rt = Runtime.build(test_config, transport=tracker.transport(), online=False)
    await rt.start()

    result = await rt.tasks.create_task(CreateTaskRequest(title="T"))
    assert result is None
    assert rt.tasks.pending == 1
    assert tracker.calls("POST", "/tasks") == []

    await rt.network.set_online(True)

    assert tracker.calls("POST", "/tasks") == [{"title": "T", "tags": []}]
    assert rt.tasks.pending == 0

    await rt.aclose()


@pytest.mark.anyio
async def test_queue_survives_restart(test_config: Config) -> None:
    tracker = FakeTracker()

    first = Runtime.build(test_config, transport=tracker.transport(), online=False)
    await first.start()
    await first.tasks.create_task(CreateTaskRequest(title="before restart"))
    await first.aclose()

    second = Runtime.build(test_config, transport=tracker.transport(), online=True)
    await second.start()

    assert [b["title"] for b in tracker.calls("POST", "/tasks")] == ["before restart"]
    assert second.tasks.pending == 0
    await second.aclose()


@pytest.mark.anyio
async def test_poison_item_does_not_block_later_writes(test_config: Config) -> None:
    tracker = FakeTracker()
    rt = Runtime.build(test_config, transport=tracker.transport(), online=False)
    await rt.start()

    await rt.tasks.create_task(CreateTaskRequest(title="rejected"))
    await rt.tasks.create_task(CreateTaskRequest(title="fine"))
    tracker.script = [422]

    await rt.network.set_online(True)

    assert [b["title"] for b in tracker.calls("POST", "/tasks")] == ["rejected", "fine"]
    assert rt.tasks.pending == 0
    status = rt.tasks.status()
    assert status.dead_letters == 1
    assert "422" in (status.last_error or "")

    await rt.aclose()


@pytest.mark.anyio
async def test_runtime_bus_runs_default_handlers(test_config: Config) -> None:
    from datetime import timedelta

    from mehtrics.core.events import EventType, create_event
    from mehtrics.core.time import utc_now

    rt = Runtime.build(test_config, transport=FakeTracker().transport())

    ev = create_event(
        EventType.TASK_CREATED,
        "tests",
        {
            "task_id": "t1",
            "user_id": "u1",
            "title": "Prepare meeting notes",
            "priority": "high",
            "due_date": utc_now() + timedelta(hours=3),
        },
    )
    await rt.bus.publish(ev)

    assert rt.tags.suggestions[0].tags == ("urgent", "priority-high", "meeting", "planning")
    assert rt.notifier.scheduled[0].title == "High Priority Task Due Soon"
    assert rt.topic.last_ordering_key == "u1"

    await rt.aclose()


@pytest.mark.anyio
async def test_stuck_task_replay_does_not_hold_back_moods_at_startup(test_config: Config) -> None:
    cfg = test_config.model_copy(
        update={"offline": test_config.offline.model_copy(update={"process_timeout_s": None})}
    )
    tracker = FakeTracker()
    release_tasks = asyncio.Event()
    mood_posted = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/tasks":
            await release_tasks.wait()
        response = tracker.handler(request)
        if request.url.path == "/mood-entries":
            mood_posted.set()
        return response

    first = Runtime.build(cfg, transport=tracker.transport(), online=False)
    await first.tasks.create_task(CreateTaskRequest(title="slow"))
    await first.moods.create_entry(
        CreateMoodEntryRequest(date=dt.date(2026, 3, 1), tier="neutral", emoji=":|", label="ok")
    )
    await first.aclose()

    rt = Runtime.build(cfg, transport=httpx.MockTransport(handler), online=True)
    starting = asyncio.create_task(rt.start())

    await asyncio.wait_for(mood_posted.wait(), timeout=1.0)
    assert tracker.calls("POST", "/tasks") == []

    release_tasks.set()
    await starting

    assert rt.moods.pending == 0
    assert rt.tasks.pending == 0
    await rt.aclose()
