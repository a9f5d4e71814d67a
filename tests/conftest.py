"""公共测试夹具: 用记录调用的假 git 执行器替代真实网络访问"""

from __future__ import annotations

from pathlib import Path

import pytest

from wares.core.git import GitClient
from wares.utils.shell import CommandResult


class FakeGitExecutor:
    """模拟 git 命令行

    remotes: url -> [(oid, refname), ...]，作为 ls-remote 的输出
    commits: url -> 可以按 oid 拉取的提交集合（未登记的 url 允许任意 oid）
    broken:  clone / ls-remote 一律失败的 url
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.remotes: dict[str, list[tuple[str, str]]] = {}
        self.commits: dict[str, set[str]] = {}
        self.broken: set[str] = set()
        self._origins: dict[str, str] = {}

    # ---- 场景构造 ----

    def add_remote(self, url: str, refs: list[tuple[str, str]]) -> None:
        self.remotes[url] = refs
        self.commits.setdefault(url, set()).update(oid for oid, _ in refs)

    def subcommands(self) -> list[str]:
        return [c[1] for c in self.calls]

    # ---- CommandExecutor 协议 ----

    def execute(self, cmd, *, cwd=".", env=None, timeout=None) -> CommandResult:
        args = list(cmd)
        self.calls.append(args)
        assert args[0] == "git"
        assert env is not None and env.get("GIT_TERMINAL_PROMPT") == "0"
        sub = args[1]
        handler = getattr(self, "_" + sub.replace("-", "_"))
        return handler(args[2:], Path(cwd))

    def _fail(self, msg: str) -> CommandResult:
        return CommandResult(returncode=128, stdout="", stderr=f"fatal: {msg}\n")

    def _ok(self, out: str = "") -> CommandResult:
        return CommandResult(returncode=0, stdout=out, stderr="")

    def _ls_remote(self, args: list[str], cwd: Path) -> CommandResult:
        url = args[-1]
        if url in self.broken or url not in self.remotes:
            return self._fail(f"repository '{url}' not found")
        lines = [f"{oid}\t{ref}" for oid, ref in self.remotes[url]]
        return self._ok("\n".join(lines) + "\n")

    def _clone(self, args: list[str], cwd: Path) -> CommandResult:
        url, dest = args[-2], Path(args[-1])
        if url in self.broken:
            return self._fail(f"repository '{url}' not found")
        branch = args[args.index("--branch") + 1] if "--branch" in args else "HEAD"
        dest.mkdir(parents=True, exist_ok=True)
        (dest / ".git").mkdir(exist_ok=True)
        (dest / "CHECKOUT").write_text(f"{url} {branch}\n")
        return self._ok()

    def _init(self, args: list[str], cwd: Path) -> CommandResult:
        dest = Path(args[-1])
        (dest / ".git").mkdir(parents=True, exist_ok=True)
        return self._ok()

    def _remote(self, args: list[str], cwd: Path) -> CommandResult:
        assert args[0] == "add"
        self._origins[str(cwd)] = args[2]
        return self._ok()

    def _fetch(self, args: list[str], cwd: Path) -> CommandResult:
        oid = args[-1]
        url = self._origins.get(str(cwd), "")
        if url in self.broken:
            return self._fail(f"repository '{url}' not found")
        known = self.commits.get(url)
        if known is not None and oid not in known:
            return self._fail(f"remote error: upload-pack: not our ref {oid}")
        return self._ok()

    def _reset(self, args: list[str], cwd: Path) -> CommandResult:
        (cwd / "CHECKOUT").write_text(f"{self._origins.get(str(cwd), '')} {args[-1]}\n")
        return self._ok()


@pytest.fixture()
def fake_git() -> FakeGitExecutor:
    return FakeGitExecutor()


@pytest.fixture()
def git(fake_git: FakeGitExecutor) -> GitClient:
    return GitClient(executor=fake_git)
