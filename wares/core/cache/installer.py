"""缓存安装器

把已解析依赖物化到 <cache_root>/<cache_key>，目录一旦存在即视为缓存命中，
之后不再修改或重新拉取。

安装流程:
  1. 目标目录已存在 → 直接返回（不做完整性校验）
  2. 在缓存根目录下创建临时目录 .<key>.tmp-XXXX
  3. 在临时目录中物化:
       CommitId:  git init → remote add origin → fetch --depth 1 <oid> → reset --hard <oid>
                  （git 只能浅克隆具名引用，不能直接克隆任意提交）
       Branch / DefaultBranch: git clone --depth 1 [--branch <name>]
  4. 成功后原子 rename 到目标目录；失败则删除临时目录
并发的两个进程各自使用独立临时目录，rename 失败且目标已存在时说明对方先完成，
丢弃自己的结果即可，目标目录不会出现写了一半的状态。
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from wares.core.cache.keys import cache_key
from wares.core.exceptions import GitCommandError, InstallError, ValidationError, WaresIOError
from wares.core.git import GitClient
from wares.core.lockfile import Branch, CommitId, LockedDependency
from wares.utils.net import validate_git_url

logger = logging.getLogger(__name__)


def prepare_cache_root(cache_root: str | Path) -> Path:
    """创建（如需要）并返回绝对路径形式的缓存根目录"""
    root = Path(cache_root)
    try:
        root.mkdir(parents=True, exist_ok=True)
        return root.resolve()
    except OSError as e:
        raise WaresIOError(
            f"无法创建缓存目录 {root}: {e}", operation="create cache root", path=str(root),
        ) from e


class Installer:
    """幂等的缓存安装器"""

    def __init__(self, git: GitClient | None = None) -> None:
        self.git = git or GitClient()

    def target_path(self, locked: LockedDependency, cache_root: str | Path) -> Path:
        return prepare_cache_root(cache_root) / cache_key(locked)

    def install(self, locked: LockedDependency, cache_root: str | Path) -> Path:
        """安装依赖并返回绝对路径"""
        target = self.target_path(locked, cache_root)
        if target.exists():
            logger.info("缓存命中: %s -> %s", locked.url, target)
            return target

        try:
            validate_git_url(locked.url, context="install")
        except ValidationError as e:
            raise InstallError(e.message, url=locked.url, operation="validate url") from e

        try:
            tmp = Path(tempfile.mkdtemp(prefix=f".{target.name}.tmp-", dir=str(target.parent)))
        except OSError as e:
            raise WaresIOError(
                f"无法创建临时目录: {e}", operation="create temp dir", path=str(target.parent),
            ) from e

        logger.info("安装 %s -> %s", locked.url, target)
        try:
            self._materialize(locked, tmp)
        except Exception:
            shutil.rmtree(tmp, ignore_errors=True)
            raise

        try:
            os.rename(tmp, target)
        except OSError as e:
            shutil.rmtree(tmp, ignore_errors=True)
            if target.exists():
                logger.info("并发安装已先完成，使用现有目录: %s", target)
                return target
            raise WaresIOError(
                f"无法移动安装目录到 {target}: {e}", operation="rename", path=str(target),
            ) from e

        logger.info("  已安装: %s", target)
        return target

    def _materialize(self, locked: LockedDependency, dest: Path) -> None:
        ident = locked.id
        operation = "clone"
        try:
            if isinstance(ident, CommitId):
                operation = "init"
                self.git.init(dest)
                operation = "remote add"
                self.git.remote_add(dest, "origin", locked.url)
                operation = "fetch"
                self.git.fetch(dest, "origin", ident.oid, depth=1)
                operation = "reset"
                self.git.reset_hard(dest, ident.oid)
            else:
                branch = ident.name if isinstance(ident, Branch) else None
                self.git.clone(locked.url, dest, branch=branch, depth=1)
        except GitCommandError as e:
            raise InstallError(
                f"安装 {locked.url} 失败 ({operation}): {e.message}",
                url=locked.url, operation=operation,
            ) from e
