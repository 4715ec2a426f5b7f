from __future__ import annotations

import pytest

from api.main import create_app
from mehtrics import __version__
from mehtrics.core.config import Config
from mehtrics.remote.models import CreateTaskRequest
from mehtrics.runtime import Runtime
from tests.unit._api_test_client import make_client
from tests.unit._fake_tracker import FakeTracker

TOKEN = "test-token"


@pytest.fixture()
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture()
async def runtime(test_config: Config, tracker: FakeTracker):
    cfg = test_config.model_copy(update={"api": test_config.api.model_copy(update={"auth_token": TOKEN})})
    rt = Runtime.build(cfg, transport=tracker.transport(), online=False)
    await rt.start()
    yield rt
    await rt.aclose()


def _app(runtime: Runtime):
    app = create_app(runtime.config)
    app.state.runtime = runtime
    return app


@pytest.mark.anyio
async def test_health_reports_version_and_reachability(runtime: Runtime) -> None:
    async with make_client(_app(runtime)) as ac:
        r = await ac.get("/api/v1/health")

    assert r.status_code == 200
    data = r.json()
    assert data["version"] == __version__
    assert data["online"] is False
    assert data["store_available"] is True


@pytest.mark.anyio
async def test_sync_routes_require_bearer_token(runtime: Runtime) -> None:
    async with make_client(_app(runtime)) as ac:
        missing = await ac.get("/api/v1/sync/status")
        wrong = await ac.get("/api/v1/sync/status", headers={"Authorization": "Bearer nope"})

    assert missing.status_code == 401
    assert missing.json()["error"]["code"] == "auth.missing_token"
    assert wrong.json()["error"]["code"] == "auth.invalid_token"


@pytest.mark.anyio
async def test_status_then_network_report_drains_queues(runtime: Runtime, tracker: FakeTracker) -> None:
    await runtime.tasks.create_task(CreateTaskRequest(title="T"))

    async with make_client(_app(runtime), token=TOKEN) as ac:
        r = await ac.get("/api/v1/sync/status")
        queues = {q["name"]: q for q in r.json()["queues"]}
        assert queues["offlineTasks"]["pending"] == 1
        assert r.json()["online"] is False

        r = await ac.post("/api/v1/network", json={"online": True})

    assert r.status_code == 200
    queues = {q["name"]: q for q in r.json()["queues"]}
    assert queues["offlineTasks"]["pending"] == 0
    assert tracker.calls("POST", "/tasks") == [{"title": "T", "tags": []}]


@pytest.mark.anyio
async def test_manual_sync_of_one_queue(runtime: Runtime, tracker: FakeTracker) -> None:
    await runtime.network.set_online(True)
    tracker.script = [503]
    await runtime.tasks.create_task(CreateTaskRequest(title="retry me"))
    assert runtime.tasks.pending == 1

    async with make_client(_app(runtime), token=TOKEN) as ac:
        r = await ac.post("/api/v1/sync/offlineTasks")

    body = r.json()
    assert r.status_code == 200
    assert body["replayed"] == 1
    assert body["pending"] == 0


@pytest.mark.anyio
async def test_unknown_queue_is_404(runtime: Runtime) -> None:
    async with make_client(_app(runtime), token=TOKEN) as ac:
        r = await ac.post("/api/v1/sync/offlineNope")

    assert r.status_code == 404
    assert r.json()["error"]["code"] == "sync.unknown_queue"


def test_create_app_refuses_empty_token(test_config: Config, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MEHTRICS_INSECURE_OK", raising=False)
    with pytest.raises(RuntimeError):
        create_app(test_config)
