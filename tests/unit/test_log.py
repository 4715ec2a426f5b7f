from __future__ import annotations

import json
import logging

import pytest

from mehtrics.core.config import LoggingConfig
from mehtrics.core.log import JsonFormatter, KeyValueFormatter, configure_logging


def _record() -> logging.LogRecord:
    logger = logging.getLogger("mehtrics.tests")
    return logger.makeRecord(
        "mehtrics.tests", logging.INFO, __file__, 1, "offline_enqueued", (), None, extra={"queue": "offlineTasks", "key": 3}
    )


def test_json_formatter_includes_extras() -> None:
    data = json.loads(JsonFormatter().format(_record()))

    assert data["event"] == "offline_enqueued"
    assert data["level"] == "INFO"
    assert data["queue"] == "offlineTasks"
    assert data["key"] == 3


def test_key_value_formatter_appends_context() -> None:
    line = KeyValueFormatter().format(_record())

    assert "offline_enqueued" in line
    assert line.endswith("key=3 queue=offlineTasks")


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_logging_installs_single_handler(restore_root_logger) -> None:
    configure_logging(LoggingConfig(level="debug", json_output=True))

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JsonFormatter)
    assert root.level == logging.DEBUG
