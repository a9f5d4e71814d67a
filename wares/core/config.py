"""集中配置管理

支持从 YAML 文件加载 + 编程式覆盖。
缓存根目录的选择顺序: 显式参数 > 配置文件 cache_dir > 环境变量 WARES_CACHE > ./.wares_cache
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from wares.core.exceptions import WaresIOError
from wares.utils.fileio import load_yaml

logger = logging.getLogger(__name__)

CACHE_ENV_VAR = "WARES_CACHE"
FALLBACK_CACHE_DIR = "./.wares_cache"


@dataclass
class Config:
    """wares 全局配置"""

    # 文件名
    manifest_name: str = "wares.toml"
    lock_name: str = "wares.lock"
    registry_name: str = "registry.json"

    # 目录（空字符串表示走环境变量 / 默认值）
    cache_dir: str = ""

    # 执行
    jobs: int = 1
    git_executable: str = "git"

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = "wares.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except yaml.YAMLError as e:
            raise WaresIOError(
                f"配置文件 YAML 格式错误: {path}: {e}", operation="parse config", path=str(path),
            ) from e
        except (OSError, ValueError) as e:
            raise WaresIOError(
                f"读取配置文件失败: {path}: {e}", operation="read config", path=str(path),
            ) from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def resolve_cache_dir(self, explicit: str | Path | None = None) -> Path:
        """按优先级选出缓存根目录（未做绝对化）"""
        if explicit:
            return Path(explicit)
        if self.cache_dir:
            return Path(self.cache_dir)
        return cache_dir_fallback()


def cache_dir_fallback() -> Path:
    """环境变量 WARES_CACHE，未设置则回退到 ./.wares_cache"""
    return Path(os.environ.get(CACHE_ENV_VAR) or FALLBACK_CACHE_DIR)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "wares.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
