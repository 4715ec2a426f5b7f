from __future__ import annotations

import pytest

from mehtrics.core.network import NetworkMonitor
from mehtrics.remote.client import RemoteApi
from tests.unit._fake_tracker import FakeTracker


@pytest.mark.anyio
async def test_listeners_fire_only_on_offline_to_online() -> None:
    net = NetworkMonitor(online=False)
    fired: list[str] = []

    async def on_online() -> None:
        fired.append("online")

    net.add_listener(on_online)

    await net.set_online(False)
    assert fired == []

    await net.set_online(True)
    assert fired == ["online"]

    await net.set_online(True)
    assert fired == ["online"]


@pytest.mark.anyio
async def test_removed_listener_is_not_called() -> None:
    net = NetworkMonitor(online=False)
    fired: list[str] = []

    async def on_online() -> None:
        fired.append("x")

    net.add_listener(on_online)
    net.remove_listener(on_online)
    await net.set_online(True)

    assert fired == []
    assert net.listener_count == 0


@pytest.mark.anyio
async def test_failing_listener_does_not_stop_others() -> None:
    net = NetworkMonitor(online=False)
    fired: list[str] = []

    async def bad() -> None:
        raise RuntimeError("listener broke")

    async def good() -> None:
        fired.append("good")

    net.add_listener(bad)
    net.add_listener(good)
    await net.set_online(True)

    assert fired == ["good"]
    assert net.online is True


@pytest.mark.anyio
async def test_probe_records_remote_health() -> None:
    tracker = FakeTracker(healthy=False)
    remote = RemoteApi(transport=tracker.transport())
    net = NetworkMonitor(online=True)

    assert await net.probe(remote) is False
    assert net.online is False

    tracker.healthy = True
    assert await net.probe(remote) is True
    assert net.online is True

    await remote.aclose()
