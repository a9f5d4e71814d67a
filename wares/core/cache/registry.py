"""缓存登记表

记录每个依赖在缓存中已物化过的全部标识（而不仅是最近一次），同一上游仓库
可以同时存在 latest、某个分支、若干提交/版本的缓存目录。登记表与锁文件相互独立，
以 (依赖名, 标识) 为键。

条目格式 (registry.json):

    {
      "foo": {
        "url": "https://github.com/acme/foo.git",
        "installed": [
          "latest",
          {"branch": "develop"},
          "0123...cdef",
          {"version": "^1.0", "hash": "89ab...4567"},
          {"tag": "v1.5.2", "hash": "89ab...4567"},
          {"rev": "refs/heads/x", "hash": "fedc...3210"}
        ]
      }
    }
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from wares.core.exceptions import SerializationError, WaresIOError
from wares.core.git import OID_RE
from wares.core.lockfile import Branch, CommitId, DefaultBranch, LockedDependencyId
from wares.core.specifier import Rev, Specifier, Tag, VersionRange
from wares.utils.fileio import load_json, save_json

logger = logging.getLogger(__name__)

LATEST = "latest"


@dataclass(frozen=True)
class CachedObject:
    """一次物化: kind ∈ latest / branch / commit / version / tag / rev"""

    kind: str
    value: str = ""
    hash: str = ""

    @classmethod
    def from_resolution(
        cls, specifier: Specifier | None, ident: LockedDependencyId,
    ) -> CachedObject:
        """由清单选择符与解析结果生成登记条目"""
        if isinstance(ident, DefaultBranch):
            return cls("latest")
        if isinstance(ident, Branch):
            return cls("branch", ident.name)
        if not isinstance(ident, CommitId):
            raise TypeError(f"未知的依赖标识类型: {ident!r}")
        if isinstance(specifier, VersionRange):
            return cls("version", specifier.requirement, ident.oid)
        if isinstance(specifier, Tag):
            return cls("tag", specifier.name, ident.oid)
        if isinstance(specifier, Rev):
            return cls("rev", specifier.ref, ident.oid)
        return cls("commit", ident.oid, ident.oid)

    def to_json(self) -> Any:
        if self.kind == "latest":
            return LATEST
        if self.kind == "commit":
            return self.value
        if self.kind == "branch":
            return {"branch": self.value}
        return {self.kind: self.value, "hash": self.hash}

    @classmethod
    def from_json(cls, data: Any) -> CachedObject:
        if isinstance(data, str):
            if data == LATEST:
                return cls("latest")
            if OID_RE.match(data):
                return cls("commit", data, data)
            # 旧格式: 分支名直接存为字符串
            return cls("branch", data)
        if isinstance(data, dict) and set(data) == {"branch"} and isinstance(data["branch"], str):
            return cls("branch", data["branch"])
        if isinstance(data, dict) and isinstance(data.get("hash"), str):
            for kind in ("version", "tag", "rev"):
                if isinstance(data.get(kind), str):
                    return cls(kind, data[kind], data["hash"])
        raise SerializationError(f"无法识别的缓存条目: {data!r}")

    def describe(self) -> str:
        if self.kind == "latest":
            return LATEST
        if self.kind == "commit":
            return self.value
        if self.kind == "branch":
            return f"branch {self.value}"
        return f"{self.kind} {self.value} ({self.hash})"


class CacheRegistry:
    """缓存根目录下的 registry.json"""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._entries: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = load_json(self.path)
        except json.JSONDecodeError as e:
            raise SerializationError(f"缓存登记表 JSON 格式错误: {e}", path=str(self.path)) from e
        except (OSError, ValueError) as e:
            raise WaresIOError(
                f"读取缓存登记表失败: {e}", operation="read registry", path=str(self.path),
            ) from e
        if not isinstance(data, dict):
            raise SerializationError("缓存登记表顶层必须是对象", path=str(self.path))
        for name, entry in data.items():
            if not isinstance(entry, dict):
                raise SerializationError(f"缓存登记表条目 {name} 必须是对象", path=str(self.path))
            installed = [CachedObject.from_json(o) for o in entry.get("installed", [])]
            self._entries[name] = {"url": entry.get("url", ""), "installed": installed}

    def record(self, name: str, url: str, obj: CachedObject) -> bool:
        """登记一次物化，已存在则忽略；返回是否新增"""
        with self._lock:
            entry = self._entries.setdefault(name, {"url": url, "installed": []})
            entry["url"] = url
            if obj in entry["installed"]:
                return False
            entry["installed"].append(obj)
        logger.debug("缓存登记: %s -> %s", name, obj.describe())
        return True

    def entries(self, name: str) -> list[CachedObject]:
        entry = self._entries.get(name)
        return list(entry["installed"]) if entry else []

    def url(self, name: str) -> str:
        entry = self._entries.get(name)
        return entry["url"] if entry else ""

    def names(self) -> list[str]:
        return sorted(self._entries)

    def to_dict(self) -> dict[str, Any]:
        return {
            name: {
                "url": entry["url"],
                "installed": [o.to_json() for o in entry["installed"]],
            }
            for name, entry in sorted(self._entries.items())
        }

    def save(self) -> None:
        try:
            save_json(self.path, self.to_dict())
        except OSError as e:
            raise WaresIOError(
                f"写入缓存登记表失败: {e}", operation="write registry", path=str(self.path),
            ) from e
