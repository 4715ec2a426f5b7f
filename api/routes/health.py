from __future__ import annotations

import time

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from api.deps import get_runtime
from mehtrics import __version__
from mehtrics.runtime import Runtime

router = APIRouter()


class HealthResponse(BaseModel):
    version: str
    uptime_seconds: float
    online: bool
    store_available: bool


@router.get("/health", response_model=HealthResponse)
def health(request: Request, runtime: Runtime = Depends(get_runtime)) -> HealthResponse:
    started_at = float(getattr(request.app.state, "started_at", time.monotonic()))

    return HealthResponse(
        version=__version__,
        uptime_seconds=time.monotonic() - started_at,
        online=runtime.network.online,
        store_available=runtime.db.available,
    )
