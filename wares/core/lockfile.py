"""锁文件（wares.lock）数据模型

文件格式 (JSON):

    {
      "lockfile_version": 1,
      "dependencies": {
        "fmt":  {"url": "https://github.com/fmtlib/fmt.git", "oid": "<40 位十六进制>"},
        "glfw": {"url": "https://github.com/glfw/glfw.git", "branch": "master"},
        "zlib": {"url": "https://github.com/madler/zlib.git"}
      }
    }

branch 与 oid 都不存在表示跟踪默认分支。只有 CommitId 是可复现的固定版本，
DefaultBranch / Branch 在安装时由 git clone 决定具体提交。
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from wares.core.exceptions import SerializationError, WaresIOError
from wares.core.git import OID_RE
from wares.utils.fileio import load_json, save_json

logger = logging.getLogger(__name__)


# =========================================================================
# 已解析标识
# =========================================================================

@dataclass(frozen=True)
class DefaultBranch:
    is_pinned = False


@dataclass(frozen=True)
class Branch:
    name: str

    is_pinned = False


@dataclass(frozen=True)
class CommitId:
    oid: str

    is_pinned = True


LockedDependencyId = DefaultBranch | Branch | CommitId


@dataclass(frozen=True)
class LockedDependency:
    """解析后的依赖: 仓库地址 + 已解析标识"""

    url: str
    id: LockedDependencyId

    def to_dict(self) -> dict[str, str]:
        data = {"url": self.url}
        if isinstance(self.id, Branch):
            data["branch"] = self.id.name
        elif isinstance(self.id, CommitId):
            data["oid"] = self.id.oid
        return data

    @classmethod
    def from_dict(cls, data: Any) -> LockedDependency:
        if not isinstance(data, dict):
            raise SerializationError("锁文件依赖条目必须是对象")
        url = data.get("url")
        if url is None:
            raise SerializationError("锁文件依赖条目缺少 url 字段")
        if not isinstance(url, str):
            raise SerializationError("锁文件依赖条目的 url 必须是字符串")

        if isinstance(data.get("branch"), str):
            return cls(url=url, id=Branch(data["branch"]))
        if "oid" in data:
            oid = data["oid"]
            if not isinstance(oid, str) or not OID_RE.match(oid.lower()):
                raise SerializationError(f"锁文件中的 oid 无效: {oid!r}")
            return cls(url=url, id=CommitId(oid.lower()))
        # 无法识别或缺失标识键一律视为默认分支
        return cls(url=url, id=DefaultBranch())


# =========================================================================
# 锁文件
# =========================================================================

@dataclass
class LockFile:
    """依赖名 → 已解析依赖 的持久化映射"""

    lockfile_version: int = 0
    dependencies: dict[str, LockedDependency] = field(default_factory=dict)

    @classmethod
    def new(cls) -> LockFile:
        return cls()

    def merge(self, other: LockFile) -> None:
        """把 other 中本文件尚未包含的条目并入，已存在的条目从不覆盖"""
        for name, dependency in other.dependencies.items():
            if name not in self.dependencies:
                self.dependencies[name] = dependency

    # ---- 序列化 ----

    def to_dict(self) -> dict[str, Any]:
        return {
            "lockfile_version": self.lockfile_version,
            "dependencies": {
                name: dep.to_dict() for name, dep in sorted(self.dependencies.items())
            },
        }

    @classmethod
    def from_dict(cls, data: Any) -> LockFile:
        if not isinstance(data, dict):
            raise SerializationError("锁文件顶层必须是对象")
        version = data.get("lockfile_version", 0)
        if not isinstance(version, int) or isinstance(version, bool):
            raise SerializationError("lockfile_version 必须是整数")
        deps = data.get("dependencies", {})
        if not isinstance(deps, dict):
            raise SerializationError("dependencies 必须是对象")

        lock = cls(lockfile_version=version)
        for name, entry in deps.items():
            try:
                lock.dependencies[name] = LockedDependency.from_dict(entry)
            except SerializationError as e:
                raise SerializationError(f"{name}: {e.message}") from e
        return lock

    def dumps(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def loads(cls, text: str) -> LockFile:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SerializationError(f"锁文件 JSON 格式错误: {e}") from e
        return cls.from_dict(data)

    # ---- 读写 ----

    @classmethod
    def load(cls, path: str | Path) -> LockFile:
        try:
            data = load_json(path)
        except json.JSONDecodeError as e:
            raise SerializationError(f"锁文件 JSON 格式错误: {e}", path=str(path)) from e
        except (OSError, ValueError) as e:
            raise WaresIOError(
                f"读取锁文件失败: {path}: {e}", operation="read lock file", path=str(path),
            ) from e
        try:
            return cls.from_dict(data)
        except SerializationError as e:
            e.path = str(path)
            raise

    def save(self, path: str | Path) -> None:
        try:
            save_json(path, self.to_dict())
        except OSError as e:
            raise WaresIOError(
                f"写入锁文件失败: {path}: {e}", operation="write lock file", path=str(path),
            ) from e
        logger.info("已写入锁文件: %s (%d 个依赖)", path, len(self.dependencies))
