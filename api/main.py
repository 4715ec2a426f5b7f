from __future__ import annotations

import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.deps import load_config
from api.errors import ApiError, api_error_handler
from api.routes import get_api_router
from mehtrics import __version__
from mehtrics.core.config import Config
from mehtrics.core.exceptions import ConfigError


def create_app(config: Config | None = None) -> FastAPI:
    start = time.monotonic()

    config = config or load_config()

    # Security check: refuse to start with empty auth_token unless explicitly overridden
    auth_token = str(config.api.auth_token or "")
    insecure_ok = os.environ.get("MEHTRICS_INSECURE_OK", "").lower() in ("1", "true", "yes")

    if not auth_token and not insecure_ok:
        msg = (
            "API auth_token is empty\n"
            "\n"
            "Set MEHTRICS_API__AUTH_TOKEN or add to config:\n"
            "  api:\n"
            "    auth_token: your-secret-token\n"
            "\n"
            "To run without auth (dev/test only), set MEHTRICS_INSECURE_OK=1"
        )
        raise RuntimeError(msg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.started_at = start
        app.state.config = getattr(app.state, "config", None) or config

        created_runtime = False
        if getattr(app.state, "runtime", None) is None:
            from mehtrics.core.log import configure_logging
            from mehtrics.runtime import Runtime

            configure_logging(app.state.config.logging)
            app.state.runtime = Runtime.build(app.state.config)
            created_runtime = True
            await app.state.runtime.start()

        yield

        if created_runtime:
            await app.state.runtime.aclose()
            app.state.runtime = None

    openapi_tags = [
        {"name": "health", "description": "Liveness, version and reachability."},
        {"name": "sync", "description": "Offline queue status, manual drains, network reports."},
    ]

    app = FastAPI(
        title="mehtrics API",
        description="meh-trics sync core: offline mutation queues and domain events",
        version=__version__,
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_exception_handler(ApiError, api_error_handler)

    app.include_router(get_api_router(), prefix="/api/v1")
    return app


# Module-level app for uvicorn (e.g. `uvicorn api.main:app`).
# Guarded so test imports don't crash when auth_token isn't configured.
try:
    app = create_app()
except (RuntimeError, ConfigError):
    app = None
