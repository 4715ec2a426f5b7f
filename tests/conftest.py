from __future__ import annotations

import shutil
import sys
from pathlib import Path

import pytest

# uv/pytest may run without installing the project; ensure repo root is importable.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from mehtrics.core.config import Config  # noqa: E402
from mehtrics.core.network import NetworkMonitor  # noqa: E402
from mehtrics.offline.store import QueueDatabase  # noqa: E402


@pytest.fixture()
def anyio_backend() -> str:
    # The sync core is written against asyncio primitives.
    return "asyncio"


@pytest.fixture()
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture()
def test_config(temp_dir: Path) -> Config:
    """Config fixture that points data_dir to a temp directory."""

    cfg_src = REPO_ROOT / "config" / "default.yaml"
    cfg_dst_dir = temp_dir / "config"
    cfg_dst_dir.mkdir(parents=True, exist_ok=True)

    # copy default + presets
    shutil.copy2(cfg_src, cfg_dst_dir / "default.yaml")
    shutil.copytree(REPO_ROOT / "config" / "presets", cfg_dst_dir / "presets")

    c = Config.from_yaml(cfg_dst_dir / "default.yaml")
    return c.model_copy(update={"data_dir": temp_dir / "data", "config_dir": cfg_dst_dir})


@pytest.fixture()
def queue_db(temp_dir: Path):
    db = QueueDatabase(temp_dir / "data" / "offline.db")
    yield db
    db.close()


@pytest.fixture()
def network() -> NetworkMonitor:
    return NetworkMonitor(online=True)
