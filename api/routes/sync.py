from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.auth import AuthDep
from api.deps import get_runtime
from api.errors import ApiError
from mehtrics.core.exceptions import ConfigError
from mehtrics.offline.queue import QueueStatus
from mehtrics.runtime import Runtime

router = APIRouter(prefix="/sync", tags=["sync"], dependencies=[AuthDep])
network_router = APIRouter(tags=["sync"], dependencies=[AuthDep])


class QueueStatusResponse(BaseModel):
    name: str
    available: bool
    pending: int
    syncing: bool
    dead_letters: int
    last_error: str | None = None

    @classmethod
    def from_status(cls, s: QueueStatus) -> QueueStatusResponse:
        return cls(
            name=s.name,
            available=s.available,
            pending=s.pending,
            syncing=s.syncing,
            dead_letters=s.dead_letters,
            last_error=s.last_error,
        )


class SyncStatusResponse(BaseModel):
    online: bool
    queues: list[QueueStatusResponse]


class SyncRunResponse(BaseModel):
    queue: str
    replayed: int
    dead_lettered: int
    stopped_at: int | None = None
    skipped: str | None = None
    pending: int


class NetworkRequest(BaseModel):
    online: bool


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(runtime: Runtime = Depends(get_runtime)) -> SyncStatusResponse:
    await runtime.refresh()
    return SyncStatusResponse(
        online=runtime.network.online,
        queues=[QueueStatusResponse.from_status(s) for s in runtime.status()],
    )


@router.post("/{queue}", response_model=SyncRunResponse)
async def sync_queue(queue: str, runtime: Runtime = Depends(get_runtime)) -> SyncRunResponse:
    try:
        wrapper = runtime.queue(queue)
    except ConfigError as e:
        raise ApiError(code="sync.unknown_queue", message=str(e), status=404, queue=queue) from e

    result = await wrapper.sync()
    return SyncRunResponse(
        queue=wrapper.name,
        replayed=result.replayed,
        dead_lettered=result.dead_lettered,
        stopped_at=result.stopped_at,
        skipped=result.skipped,
        pending=wrapper.pending,
    )


@network_router.post("/network", response_model=SyncStatusResponse)
async def report_network(body: NetworkRequest, runtime: Runtime = Depends(get_runtime)) -> SyncStatusResponse:
    """Report reachability. Going from offline to online drains every queue."""

    await runtime.network.set_online(body.online)
    return await sync_status(runtime)
