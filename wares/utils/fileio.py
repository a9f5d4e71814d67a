"""YAML / JSON 文件统一读写工具

统一 encoding="utf-8"、空值保护、目录自动创建、原子写入。
锁文件与缓存登记表都经由 atomic_write 落盘，多个调用方不会读到写了一半的文件。
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# 配置 / 锁文件最大大小限制 (10MB)，防止异常大文件导致内存耗尽
MAX_FILE_SIZE = 10 * 1024 * 1024


def atomic_write(path: Path, content: str) -> None:
    """原子写入文件：先写同目录临时文件再 rename

    异常:
        OSError: 文件写入或移动失败
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, str(path))
    except Exception:
        # 只捕获普通异常，不拦截 KeyboardInterrupt/SystemExit
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def read_text(path: str | Path) -> str:
    """读取文本文件，超过 MAX_FILE_SIZE 抛 ValueError"""
    p = Path(path)
    file_size = p.stat().st_size
    if file_size > MAX_FILE_SIZE:
        raise ValueError(
            f"文件过大: {p} ({file_size} 字节), 超过限制 {MAX_FILE_SIZE} 字节"
        )
    return p.read_text(encoding="utf-8")


def load_yaml(path: str | Path) -> dict[str, Any]:
    """安全读取 YAML 文件

    文件不存在、为空、或内容不是字典类型时返回空字典。

    异常:
        yaml.YAMLError: YAML 格式错误
        OSError: IO 错误
    """
    p = Path(path)
    if not p.exists():
        return {}

    try:
        result = yaml.safe_load(read_text(p))
    except yaml.YAMLError as e:
        logger.error("解析 YAML 文件失败: %s, 错误: %s", path, e)
        raise

    if result is None:
        return {}
    if not isinstance(result, dict):
        logger.warning(
            "%s 内容不是字典类型 (实际类型: %s)，返回空字典",
            path, type(result).__name__,
        )
        return {}
    return result


def load_json(path: str | Path) -> Any:
    """读取 JSON 文件

    异常:
        json.JSONDecodeError: JSON 格式错误
        OSError: 文件不存在或无法读取
    """
    return json.loads(read_text(path))


def save_json(path: str | Path, data: Any) -> None:
    """原子写入 JSON 文件（缩进 2，保持键顺序）"""
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    atomic_write(Path(path), content)
