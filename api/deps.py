from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from fastapi import Request

from api.errors import ApiError
from mehtrics.core.config import Config
from mehtrics.runtime import Runtime


@lru_cache
def _repo_root() -> Path:
    # Assume running from repo root (uvicorn started there). Fallback to parent of this file.
    here = Path(__file__).resolve()
    for p in [Path.cwd(), here.parent.parent]:
        if (p / "config" / "default.yaml").exists():
            return p
    return Path.cwd()


def load_config() -> Config:
    root = _repo_root()
    user_path = root / "config" / "user.yaml"
    if user_path.exists():
        return Config.from_yaml(user_path)
    return Config.from_repo_defaults(root)


def get_config(request: Request) -> Config:
    cfg = getattr(request.app.state, "config", None)
    return cfg or load_config()


def get_runtime(request: Request) -> Runtime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise ApiError(code="runtime.not_ready", message="Sync runtime is not running", status=503)
    return runtime
