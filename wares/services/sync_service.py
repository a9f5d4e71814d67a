"""同步服务: CLI 与构建系统插件共享的同步入口

把构建脚本传来的几种基本参数（路径字符串、可空路径、字符串数组、字符串映射）
转换为一次 SyncRunner 调用，再把结果转换为「依赖名 → 路径」映射或结构化错误。
这里不包含任何 git / semver / 缓存逻辑。

用法:
    svc = SyncService()
    paths = svc.run(SyncRequest(root="..", current=".", groups=["dev"]))

    # 脚本引擎绑定: 不抛异常，返回可直接转换为脚本表格的字典
    payload = svc.run_payload(SyncRequest(root=".", current="."))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from wares.core.cache import Installer, prepare_cache_root
from wares.core.config import Config, get_config
from wares.core.exceptions import ValidationError, WaresError
from wares.core.git import GitClient
from wares.core.resolver import Resolver
from wares.core.sync import SyncRunner, SyncSession

logger = logging.getLogger(__name__)


@dataclass
class SyncRequest:
    """同步请求 DTO

    root:    存放 wares.lock 的目录
    current: 存放 wares.toml 的目录
    cache:   缓存根目录，空则按配置 / 环境变量 / 默认值选择
    first:   None 表示由会话决定是否为本轮第一次调用
    """

    root: str = "."
    current: str = "."
    cache: str | None = None
    groups: list[str] = field(default_factory=list)
    force: bool = False
    first: bool | None = None
    overrides: dict[str, str] = field(default_factory=dict)
    jobs: int | None = None


class SyncService:
    """同步服务，同一个实例内共享会话状态"""

    def __init__(
        self,
        config: Config | None = None,
        session: SyncSession | None = None,
        git: GitClient | None = None,
    ) -> None:
        self.config = config or get_config()
        self.session = session or SyncSession()
        self.git = git or GitClient(git_executable=self.config.git_executable)

    def _validate(self, req: SyncRequest) -> None:
        problems = []
        if not isinstance(req.groups, (list, tuple)) or not all(
            isinstance(g, str) for g in req.groups
        ):
            problems.append("groups 必须是字符串数组")
        if not isinstance(req.overrides, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in req.overrides.items()
        ):
            problems.append("overrides 必须是字符串到字符串的映射")
        if problems:
            raise ValidationError("同步参数无效", details=problems)

    def build_runner(self, req: SyncRequest, *, first: bool, force: bool) -> SyncRunner:
        cache_root = prepare_cache_root(self.config.resolve_cache_dir(req.cache))
        return SyncRunner(
            manifest_path=Path(req.current) / self.config.manifest_name,
            lock_path=Path(req.root) / self.config.lock_name,
            cache_root=cache_root,
            extra_groups=req.groups,
            force=force,
            overrides=req.overrides,
            first=first,
            jobs=req.jobs or self.config.jobs,
            resolver=Resolver(self.git),
            installer=Installer(self.git),
            registry_name=self.config.registry_name,
        )

    def run(self, req: SyncRequest) -> dict[str, str]:
        """执行一次同步，失败抛 WaresError"""
        self._validate(req)
        first, force = self.session.begin(req.force)
        if req.first is not None:
            first = req.first
        updated = False
        try:
            runner = self.build_runner(req, first=first, force=force)
            paths = runner.sync()
            updated = runner.updated
        finally:
            self.session.finish(first, updated)
        return paths

    def run_payload(self, req: SyncRequest) -> dict[str, Any]:
        """执行同步并返回 {"ok": True, "paths": {...}} 或 {"ok": False, "error": {...}}"""
        try:
            return {"ok": True, "paths": self.run(req)}
        except WaresError as e:
            logger.error("同步失败: %s", e.message, extra={"error_code": e.code})
            return {"ok": False, "error": e.to_dict()}
