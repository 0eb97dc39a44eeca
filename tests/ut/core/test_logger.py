"""日志配置测试"""

from __future__ import annotations

import io
import json
import logging

import pytest

from pcomposer.utils.logger import reset_logging, setup_logging, setup_logging_from_env


@pytest.fixture(autouse=True)
def _restore_logging():
    yield
    reset_logging()
    logging.getLogger().setLevel(logging.WARNING)


def test_text_output() -> None:
    stream = io.StringIO()
    setup_logging("DEBUG", stream=stream)
    logging.getLogger("pcomposer.test").info("已链接 %s", "vendor/pkg")
    assert "[INFO   ] pcomposer.test: 已链接 vendor/pkg" in stream.getvalue()


def test_json_output() -> None:
    stream = io.StringIO()
    setup_logging("INFO", json_output=True, stream=stream)
    logging.getLogger("pcomposer.test").warning("就近匹配")
    entry = json.loads(stream.getvalue().strip())
    assert entry["level"] == "WARNING"
    assert entry["message"] == "就近匹配"
    assert entry["logger"] == "pcomposer.test"


def test_repeated_setup_single_handler() -> None:
    setup_logging("INFO")
    setup_logging("INFO")
    assert len(logging.getLogger().handlers) == 1


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PCOMPOSER_LOG_LEVEL", "error")
    monkeypatch.setenv("PCOMPOSER_LOG_JSON", "1")
    setup_logging_from_env()
    root = logging.getLogger()
    assert root.level == logging.ERROR
    assert root.handlers[0].formatter.__class__.__name__ == "JSONFormatter"
