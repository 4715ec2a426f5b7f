from __future__ import annotations

from fastapi import APIRouter

from api.routes import health, sync


def get_api_router() -> APIRouter:
    router = APIRouter()

    router.include_router(health.router, tags=["health"])
    router.include_router(sync.router)
    router.include_router(sync.network_router)

    return router
