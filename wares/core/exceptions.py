"""统一异常体系

所有业务异常继承 WaresError，每个异常携带 code 判别字段和上下文属性，
由边界层（CLI / 构建系统插件）负责格式化显示，不在内部拼接回溯信息。
"""

from __future__ import annotations

from typing import Any


class WaresError(Exception):
    """wares 基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def context(self) -> dict[str, Any]:
        """子类附加的上下文字段"""
        return {}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        data.update({k: v for k, v in self.context().items() if v not in (None, "")})
        return data


class WaresIOError(WaresError):
    """文件读写 / 创建失败"""

    code = "IO_ERROR"

    def __init__(self, message: str, *, operation: str = "", path: str = "") -> None:
        super().__init__(message)
        self.operation = operation
        self.path = path

    def context(self) -> dict[str, Any]:
        return {"operation": self.operation, "path": self.path}


class ManifestParseError(WaresError):
    """清单内容无效：缺少键、类型错误、未知来源、选择符语法错误等"""

    code = "MANIFEST_PARSE_ERROR"

    def __init__(
        self, message: str, *,
        key: str = "", group: str = "", dependency: str = "",
    ) -> None:
        super().__init__(message)
        self.key = key
        self.group = group
        self.dependency = dependency

    def context(self) -> dict[str, Any]:
        return {"key": self.key, "group": self.group, "dependency": self.dependency}


class LockingError(WaresError):
    """依赖解析（锁定）失败"""

    code = "LOCKING_ERROR"

    def __init__(self, message: str, *, url: str = "") -> None:
        super().__init__(message)
        self.url = url

    def context(self) -> dict[str, Any]:
        return {"url": self.url}


class RemoteError(LockingError):
    """远程仓库访问失败或引用列表格式异常"""

    code = "REMOTE_ERROR"


class VersionParseError(LockingError):
    """标签形似版本号但无法解析为 semver"""

    code = "VERSION_PARSE_ERROR"


class NoMatchError(LockingError):
    """没有满足版本范围的标签"""

    code = "NO_MATCH"

    def __init__(self, requirement: str, *, url: str = "") -> None:
        super().__init__(f"没有找到满足版本要求的标签: {requirement}", url=url)
        self.requirement = requirement

    def context(self) -> dict[str, Any]:
        return {"url": self.url, "requirement": self.requirement}


class NoTagError(LockingError):
    """远程不存在指定标签"""

    code = "NO_TAG"

    def __init__(self, tag: str, *, url: str = "") -> None:
        super().__init__(f"没有找到指定的标签: {tag}", url=url)
        self.tag = tag

    def context(self) -> dict[str, Any]:
        return {"url": self.url, "tag": self.tag}


class NoRevError(LockingError):
    """远程不存在指定引用"""

    code = "NO_REV"

    def __init__(self, rev: str, *, url: str = "") -> None:
        super().__init__(f"没有找到指定的引用: {rev}", url=url)
        self.rev = rev

    def context(self) -> dict[str, Any]:
        return {"url": self.url, "rev": self.rev}


class SerializationError(WaresError):
    """锁文件 / 缓存登记表内容无效"""

    code = "SERIALIZATION_ERROR"

    def __init__(self, message: str, *, path: str = "") -> None:
        super().__init__(message)
        self.path = path

    def context(self) -> dict[str, Any]:
        return {"path": self.path}


class GitCommandError(WaresError):
    """git 子进程执行失败"""

    code = "GIT_ERROR"

    def __init__(self, message: str, *, returncode: int = -1, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class InstallError(WaresError):
    """clone / fetch / reset 过程中的 git 错误"""

    code = "INSTALL_ERROR"

    def __init__(self, message: str, *, url: str = "", operation: str = "") -> None:
        super().__init__(message)
        self.url = url
        self.operation = operation

    def context(self) -> dict[str, Any]:
        return {"url": self.url, "operation": self.operation}


class ValidationError(WaresError):
    """调用方输入校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []

    def context(self) -> dict[str, Any]:
        return {"details": self.details or None}


class SyncError(WaresError):
    """一次同步中若干依赖失败的汇总"""

    code = "SYNC_ERROR"

    def __init__(self, stage: str, failures: dict[str, WaresError]) -> None:
        names = ", ".join(sorted(failures))
        super().__init__(f"{stage}失败 ({len(failures)} 个依赖): {names}")
        self.stage = stage
        self.failures = failures

    def context(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "failures": {name: err.to_dict() for name, err in sorted(self.failures.items())},
        }
