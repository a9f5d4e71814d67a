"""git 命令行封装

只暴露解析与安装需要的几个操作:
  - ls_remote:  列出远程引用（不需要工作区）
  - clone:      浅克隆（可指定分支）
  - init / remote_add / fetch / reset_hard: 按提交号物化仓库的四步流程
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

from wares.core.exceptions import GitCommandError, RemoteError
from wares.utils.shell import CommandExecutor, format_command, get_executor, redact

logger = logging.getLogger(__name__)

OID_RE = re.compile(r"^[0-9a-f]{40}$")


@dataclass(frozen=True)
class RemoteRef:
    """ls-remote 输出中的一行"""

    oid: str
    name: str

    @property
    def peeled(self) -> bool:
        """附注标签解引用后的条目（refs/tags/x^{}），oid 指向提交本身"""
        return self.name.endswith("^{}")

    @property
    def base_name(self) -> str:
        return self.name[:-3] if self.peeled else self.name


def parse_ls_remote(output: str, *, url: str = "") -> list[RemoteRef]:
    """解析 `git ls-remote` 输出，保持服务端通告顺序"""
    refs: list[RemoteRef] = []
    for lineno, line in enumerate(output.splitlines(), 1):
        if not line.strip():
            continue
        oid, sep, name = line.partition("\t")
        oid = oid.strip().lower()
        name = name.strip()
        if not sep or not name or not OID_RE.match(oid):
            raise RemoteError(f"无法解析远程引用列表第 {lineno} 行: {line!r}", url=url)
        refs.append(RemoteRef(oid=oid, name=name))
    return refs


class GitClient:
    """基于 CommandExecutor 的 git 客户端"""

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        git_executable: str = "git",
    ) -> None:
        self.executor = executor
        self.git_executable = git_executable

    def _env(self) -> dict[str, str]:
        # 禁止 git 在无终端环境下弹出凭据输入
        return {**os.environ, "GIT_TERMINAL_PROMPT": "0"}

    def run(self, args: list[str], *, cwd: str | Path = ".", label: str = "git") -> str:
        """执行 git 子命令，失败抛 GitCommandError"""
        executor = self.executor or get_executor()
        cmd = [self.git_executable, *args]
        logger.debug("  %s: %s (cwd=%s)", label, format_command(cmd), cwd)
        try:
            r = executor.execute(cmd, cwd=str(cwd), env=self._env())
        except OSError as e:
            raise GitCommandError(f"{label}失败: 无法启动 git: {e}") from e
        if not r.success:
            raise GitCommandError(
                f"{label}失败 (rc={r.returncode}): {redact(r.stderr.strip())[:500]}",
                returncode=r.returncode, stderr=r.stderr,
            )
        return r.stdout

    # ---- 远程查询 ----

    def ls_remote(self, url: str) -> list[RemoteRef]:
        out = self.run(["ls-remote", "--", url], label="git ls-remote")
        return parse_ls_remote(out, url=url)

    # ---- 物化 ----

    def clone(self, url: str, dest: Path, *, branch: str | None = None, depth: int = 1) -> None:
        args = ["clone", "--depth", str(depth)]
        if branch:
            args += ["--branch", branch]
        args += ["--", url, str(dest)]
        self.run(args, cwd=dest.parent, label="git clone")

    def init(self, dest: Path) -> None:
        self.run(["init", "--quiet", str(dest)], cwd=dest.parent, label="git init")

    def remote_add(self, repo: Path, name: str, url: str) -> None:
        self.run(["remote", "add", name, url], cwd=repo, label="git remote add")

    def fetch(self, repo: Path, remote: str, refspec: str, *, depth: int = 1) -> None:
        self.run(
            ["fetch", "--depth", str(depth), remote, refspec],
            cwd=repo, label="git fetch",
        )

    def reset_hard(self, repo: Path, oid: str) -> None:
        self.run(["reset", "--hard", "--quiet", oid], cwd=repo, label="git reset")
