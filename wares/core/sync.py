"""同步编排器

一次同步:
  1. STALE（强制更新 / 锁文件不存在 / 清单比锁文件新）:
     读取清单 → 解析默认分组 + 额外分组的全部依赖 → 生成新锁文件
       - 本轮第一次调用: 直接写入
       - 后续调用: 读取现有锁文件并 merge 新结果后写回（先写者优先），
         多个子项目可以把各自的依赖叠加到同一个锁文件中
  2. FRESH: 直接读取锁文件，跳过解析与网络访问
  3. 安装: 当前分组中的每个依赖，有覆盖路径则直接使用，否则按锁文件安装到缓存

失败策略: 收集全部。每个依赖都会被尝试，失败汇总为一个 SyncError；
任何依赖解析失败时不写锁文件。
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from wares.core.cache import CachedObject, CacheRegistry, Installer, prepare_cache_root
from wares.core.exceptions import LockingError, SyncError, WaresError, WaresIOError
from wares.core.lockfile import LockFile
from wares.core.manifest import ManifestDependency, ManifestFile
from wares.core.resolver import Resolver

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SyncState(enum.Enum):
    STALE = "stale"
    FRESH = "fresh"


def needs_update(force: bool, manifest_path: str | Path, lock_path: str | Path) -> bool:
    """强制更新、锁文件不存在、或清单修改时间晚于锁文件时需要重新解析"""
    if force:
        return True
    lock = Path(lock_path)
    if not lock.exists():
        return True
    try:
        return Path(manifest_path).stat().st_mtime > lock.stat().st_mtime
    except OSError:
        return False


def sync_state(force: bool, manifest_path: str | Path, lock_path: str | Path) -> SyncState:
    if needs_update(force, manifest_path, lock_path):
        return SyncState.STALE
    return SyncState.FRESH


@dataclass
class SyncSession:
    """一次构建系统调用内的同步会话

    替代进程级全局计数器: 由调用方创建一次并传给每次 sync。
      - 第一次调用 first=True，直接写锁文件
      - 第一次调用重新解析过，则后续调用都强制重新解析并 merge，
        保证本轮所有子项目的依赖都进入锁文件
    """

    calls: int = 0
    updated_last: bool = False

    def begin(self, force: bool = False) -> tuple[bool, bool]:
        """返回本次调用的 (first, force)"""
        first = self.calls == 0
        return first, force or (not first and self.updated_last)

    def finish(self, first: bool, updated: bool) -> None:
        if first and updated:
            self.updated_last = True
        self.calls += 1


class SyncRunner:
    """单次同步的执行器"""

    def __init__(
        self,
        manifest_path: str | Path,
        lock_path: str | Path,
        cache_root: str | Path,
        *,
        extra_groups: Iterable[str] = (),
        force: bool = False,
        overrides: Mapping[str, str] | None = None,
        first: bool = True,
        jobs: int = 1,
        resolver: Resolver | None = None,
        installer: Installer | None = None,
        registry: CacheRegistry | None = None,
        registry_name: str = "registry.json",
    ) -> None:
        self.manifest_path = Path(manifest_path)
        self.lock_path = Path(lock_path)
        self.cache_root = Path(cache_root)
        self.extra_groups = list(extra_groups)
        self.force = force
        self.overrides = dict(overrides or {})
        self.first = first
        self.jobs = max(1, jobs)
        self.resolver = resolver or Resolver()
        self.installer = installer or Installer()
        self.registry = registry
        self.registry_name = registry_name

        self.manifest: ManifestFile | None = None
        self.updated = False

    # ------------------------------------------------------------------
    # 状态
    # ------------------------------------------------------------------

    def needs_update(self) -> bool:
        return needs_update(self.force, self.manifest_path, self.lock_path)

    def read_manifest(self) -> ManifestFile:
        self.manifest = ManifestFile.load(self.manifest_path)
        return self.manifest

    def read_lock(self) -> LockFile:
        return LockFile.load(self.lock_path)

    def requested(self) -> list[ManifestDependency]:
        manifest = self.manifest or self.read_manifest()
        return manifest.dependencies_for(self.extra_groups)

    # ------------------------------------------------------------------
    # 解析 + 写锁文件
    # ------------------------------------------------------------------

    def update(self) -> LockFile:
        """重新解析当前分组的全部依赖并写入（或合并进）锁文件"""
        manifest = self.read_manifest()
        deps = self.requested()

        results, failures = self._each(
            deps, lambda d: self.resolver.resolve(d.repo_url, d.specifier),
        )
        if failures:
            raise SyncError("解析", failures)

        fresh = LockFile(lockfile_version=manifest.manifest_version)
        for dep in deps:
            fresh.dependencies[dep.name] = results[dep.name]

        if self.first or not self.lock_path.exists():
            logger.info("写入锁文件: %s", self.lock_path)
            lockfile = fresh
        else:
            logger.info("合并锁文件: %s", self.lock_path)
            lockfile = self.read_lock()
            lockfile.merge(fresh)
        lockfile.save(self.lock_path)

        self.updated = True
        return lockfile

    # ------------------------------------------------------------------
    # 安装
    # ------------------------------------------------------------------

    def install(self, lockfile: LockFile) -> dict[str, str]:
        """确保当前分组的依赖都已安装，返回 依赖名 → 绝对路径"""
        deps = self.requested()
        names = {d.name for d in deps}

        paths: dict[str, str] = {}
        for name, folder in self.overrides.items():
            if name not in names:
                logger.debug("忽略不属于当前分组的覆盖路径: %s", name)
                continue
            try:
                paths[name] = str(Path(folder).expanduser().resolve(strict=True))
            except OSError as e:
                raise WaresIOError(
                    f"覆盖路径不存在: {name} -> {folder}", operation="resolve override", path=folder,
                ) from e
            logger.info("使用覆盖路径: %s -> %s", name, paths[name])

        pending = [d for d in deps if d.name not in paths]
        missing = [d.name for d in pending if d.name not in lockfile.dependencies]
        if missing:
            raise LockingError(
                f"锁文件中缺少依赖: {', '.join(missing)}，请使用 --force 重新同步",
            )

        installed, failures = self._each(
            pending,
            lambda d: self.installer.install(lockfile.dependencies[d.name], self.cache_root),
        )
        if failures:
            raise SyncError("安装", failures)

        self._register(pending, lockfile)
        for dep in pending:
            paths[dep.name] = str(installed[dep.name])
        return dict(sorted(paths.items()))

    def _register(self, deps: list[ManifestDependency], lockfile: LockFile) -> None:
        """登记本次物化；登记表只是索引，读写失败记警告后继续"""
        if not deps:
            return
        path = prepare_cache_root(self.cache_root) / self.registry_name
        try:
            if self.registry is None:
                self.registry = CacheRegistry(path)
            changed = False
            for dep in deps:
                locked = lockfile.dependencies[dep.name]
                obj = CachedObject.from_resolution(dep.specifier, locked.id)
                changed = self.registry.record(dep.name, locked.url, obj) or changed
            if changed:
                self.registry.save()
        except WaresError as e:
            logger.warning(
                "缓存登记表不可用，跳过登记: %s", e.message,
                extra={"error_code": e.code},
            )

    # ------------------------------------------------------------------
    # 入口
    # ------------------------------------------------------------------

    def sync(self) -> dict[str, str]:
        if self.needs_update():
            lockfile = self.update()
        else:
            lockfile = self.read_lock()
            names = {d.name for d in self.requested()} - set(self.overrides)
            missing = sorted(names - set(lockfile.dependencies))
            if missing:
                logger.info("锁文件缺少依赖 %s，重新解析", ", ".join(missing))
                lockfile = self.update()
            else:
                logger.info("锁文件是最新的，跳过解析: %s", self.lock_path)
        return self.install(lockfile)

    # ------------------------------------------------------------------
    # 工具
    # ------------------------------------------------------------------

    def _each(
        self,
        deps: list[ManifestDependency],
        fn: Callable[[ManifestDependency], T],
    ) -> tuple[dict[str, T], dict[str, WaresError]]:
        """对每个依赖执行 fn，收集结果与失败；jobs > 1 时并行"""
        results: dict[str, T] = {}
        failures: dict[str, WaresError] = {}

        def _one(dep: ManifestDependency) -> None:
            try:
                results[dep.name] = fn(dep)
            except WaresError as e:
                logger.error(
                    "%s 失败: %s", dep.name, e.message,
                    extra={"dependency": dep.name, "url": dep.repo_url, "error_code": e.code},
                )
                failures[dep.name] = e

        if self.jobs == 1 or len(deps) <= 1:
            for dep in deps:
                _one(dep)
        else:
            with ThreadPoolExecutor(max_workers=self.jobs) as executor:
                for future in [executor.submit(_one, d) for d in deps]:
                    future.result()

        if failures:
            logger.warning(
                "汇总: %d 成功, %d 失败 (%s)",
                len(results), len(failures), ", ".join(sorted(failures)),
            )
        return results, failures
