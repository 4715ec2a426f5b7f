"""mehtrics.core.config

Three config surfaces only:
1) `config/default.yaml` + `config/presets/*.yaml`
2) Environment variables (`MEHTRICS_` prefix, `__` for nesting)
3) Explicit overrides passed by the caller (tests, CLI flags)

Everything else is derived.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from mehtrics.core.exceptions import ConfigError


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False


class RemoteConfig(BaseModel):
    base_url: str = "http://127.0.0.1:4000"
    timeout_s: float = 10.0
    auth_token: str = ""
    health_path: str = "/health"

    @field_validator("timeout_s")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_s must be > 0")
        return v


class QueueNamespaces(BaseModel):
    """Storage namespace per domain queue. Each queue drains independently."""

    tasks: str = "offlineTasks"
    moods: str = "offlineMoods"
    journal: str = "offlineJournal"


class OfflineConfig(BaseModel):
    db_name: str = "offline.db"
    # Failed replays before an item is moved aside. 0 keeps it at the head forever.
    max_attempts: int = 5
    # None lets a hung replay stall the queue.
    process_timeout_s: float | None = 30.0
    namespaces: QueueNamespaces = Field(default_factory=QueueNamespaces)

    @field_validator("max_attempts")
    @classmethod
    def max_attempts_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_attempts must be >= 0")
        return v


class EventsConfig(BaseModel):
    source: str = "mehtrics"
    # None means every handler runs at once.
    max_concurrency: int | None = None

    @field_validator("max_concurrency")
    @classmethod
    def concurrency_positive(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("max_concurrency must be >= 1")
        return v


class MessagingConfig(BaseModel):
    max_retries: int = 3
    backoff_base_s: float = 1.0


class ApiConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 5060
    auth_token: str = ""


class Config(BaseSettings):
    """Root configuration. Single source of truth."""

    # Paths
    data_dir: Path = Path("data")
    config_dir: Path = Path("config")

    # Preset selection
    preset: Literal["strict", "balanced", "lenient", "custom"] = "balanced"

    # Component configs
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    offline: OfflineConfig = Field(default_factory=OfflineConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    messaging: MessagingConfig = Field(default_factory=MessagingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    model_config = {"env_prefix": "MEHTRICS_", "env_nested_delimiter": "__"}

    @property
    def offline_db_path(self) -> Path:
        return Path(self.data_dir) / self.offline.db_name

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            raw = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Config file is not valid YAML: {path}") from e

        preset_name = raw.get("preset", "balanced")
        preset_path = path.parent / "presets" / f"{preset_name}.yaml"
        if preset_path.exists():
            preset_data = yaml.safe_load(preset_path.read_text()) or {}
            raw = _deep_merge(preset_data, raw)

        return cls(**raw)

    @classmethod
    def from_repo_defaults(cls, repo_root: Path | None = None) -> Config:
        root = repo_root or Path.cwd()
        return cls.from_yaml(root / "config" / "default.yaml")
