"""wares 日志配置

日志统一写 stderr，stdout 留给 `wares sync --json` 的机器可读结果。
CI 中设置 WARES_LOG_JSON=1 输出每行一个 JSON 对象。

调用方可以通过 extra 附加结构化字段，JSON 模式下原样输出:

    logger.error("%s 失败: %s", name, e.message,
                 extra={"dependency": name, "error_code": e.code})
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping
from datetime import datetime, timezone

LEVEL_ENV_VAR = "WARES_LOG_LEVEL"
JSON_ENV_VAR = "WARES_LOG_JSON"

# 通过 extra= 传入、需要在 JSON 中保留的字段
STRUCTURED_FIELDS = ("dependency", "url", "error_code")

TEXT_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        for key in STRUCTURED_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器，重复调用会替换之前的 handler"""
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_output else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)


def setup_logging_from_env(environ: Mapping[str, str] | None = None) -> None:
    """按 WARES_LOG_LEVEL / WARES_LOG_JSON 配置日志"""
    env = os.environ if environ is None else environ
    setup_logging(
        level=env.get(LEVEL_ENV_VAR) or "INFO",
        json_output=env.get(JSON_ENV_VAR, "") == "1",
    )


def reset_logging() -> None:
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
