"""mehtrics.core.network

Network reachability signal.

Two surfaces, same as a browser gives you:
- ``online``: is the remote currently believed reachable
- listeners: called once per offline -> online transition
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mehtrics.remote.client import RemoteApi

logger = logging.getLogger(__name__)

OnlineListener = Callable[[], Awaitable[None]]


class NetworkMonitor:
    def __init__(self, *, online: bool = True) -> None:
        self._online = bool(online)
        self._listeners: list[OnlineListener] = []

    @property
    def online(self) -> bool:
        return self._online

    def add_listener(self, listener: OnlineListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: OnlineListener) -> None:
        for i, existing in enumerate(self._listeners):
            if existing == listener:
                del self._listeners[i]
                return

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def set_online(self, online: bool) -> None:
        """Record reachability. Fires listeners only when we just came back."""

        was_online = self._online
        self._online = bool(online)
        if was_online or not self._online:
            return

        logger.info("network_reachable", extra={"listeners": len(self._listeners)})
        listeners = list(self._listeners)
        results = await asyncio.gather(*(cb() for cb in listeners), return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                logger.error("network_listener_failed", exc_info=result)

    async def probe(self, remote: RemoteApi) -> bool:
        """Ask the remote health endpoint and record the verdict."""

        reachable = await remote.health()
        if reachable != self._online:
            logger.info("network_probe_changed", extra={"reachable": reachable})
        await self.set_online(reachable)
        return reachable
