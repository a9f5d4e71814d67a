"""日志配置测试"""

from __future__ import annotations

import json
import logging

import pytest

from wares.utils.logger import JSONFormatter, reset_logging, setup_logging, setup_logging_from_env


@pytest.fixture(autouse=True)
def _restore_root():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    reset_logging()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("wares.core.sync", logging.ERROR, __file__, 10, "%s 失败", ("foo",), None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


class TestJSONFormatter:
    def test_fields(self) -> None:
        data = json.loads(JSONFormatter().format(_record()))
        assert data["level"] == "ERROR"
        assert data["logger"] == "wares.core.sync"
        assert data["message"] == "foo 失败"
        assert "dependency" not in data

    def test_structured_extra(self) -> None:
        data = json.loads(JSONFormatter().format(_record(dependency="foo", error_code="NO_TAG")))
        assert data["dependency"] == "foo"
        assert data["error_code"] == "NO_TAG"


class TestSetup:
    def test_single_handler(self) -> None:
        setup_logging("DEBUG")
        setup_logging("WARNING", json_output=True)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert root.level == logging.WARNING

    def test_from_env(self) -> None:
        setup_logging_from_env({"WARES_LOG_LEVEL": "error", "WARES_LOG_JSON": "0"})
        root = logging.getLogger()
        assert root.level == logging.ERROR
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_unknown_level_falls_back_to_info(self) -> None:
        setup_logging_from_env({"WARES_LOG_LEVEL": "chatty"})
        assert logging.getLogger().level == logging.INFO
