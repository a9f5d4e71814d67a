"""CLI — 锁文件查看"""

from __future__ import annotations

from pathlib import Path

import click

from wares.core.config import get_config
from wares.core.exceptions import WaresError
from wares.core.lockfile import Branch, CommitId, LockFile


def register(group: click.Group) -> None:
    group.add_command(lock)


@click.group()
def lock() -> None:
    """锁文件相关命令"""


@lock.command(name="show")
@click.option("--root", "-r", default=".", help="存放 wares.lock 的目录")
def show(root: str) -> None:
    """列出锁文件中的依赖"""
    path = Path(root) / get_config().lock_name
    if not path.exists():
        click.echo(f"锁文件不存在: {path}")
        return
    try:
        lockfile = LockFile.load(path)
    except WaresError as e:
        raise click.ClickException(e.message) from e

    if not lockfile.dependencies:
        click.echo("锁文件中没有依赖。")
        return
    for name, dep in sorted(lockfile.dependencies.items()):
        if isinstance(dep.id, CommitId):
            ident = dep.id.oid
        elif isinstance(dep.id, Branch):
            ident = f"branch {dep.id.name}"
        else:
            ident = "default branch"
        state = "固定" if dep.id.is_pinned else "浮动"
        click.echo(f"  {name:20s} {state}  {ident:42s} {dep.url}")
