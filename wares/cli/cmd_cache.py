"""CLI — 缓存查看"""

from __future__ import annotations

import click

from wares.core.cache import CacheRegistry, cache_key
from wares.core.config import get_config
from wares.core.exceptions import WaresError
from wares.core.git import OID_RE
from wares.core.lockfile import Branch, CommitId, DefaultBranch, LockedDependency


def register(group: click.Group) -> None:
    group.add_command(cache)


@click.group()
def cache() -> None:
    """缓存相关命令"""


@cache.command(name="key")
@click.argument("url")
@click.option("--branch", default=None, help="分支名")
@click.option("--oid", default=None, help="40 位提交号")
def key(url: str, branch: str | None, oid: str | None) -> None:
    """打印依赖对应的缓存目录名"""
    if branch and oid:
        raise click.UsageError("--branch 与 --oid 只能指定一个")
    if oid:
        if not OID_RE.match(oid.lower()):
            raise click.BadParameter(f"需要 40 位十六进制提交号: {oid}", param_hint="--oid")
        ident = CommitId(oid.lower())
    elif branch:
        ident = Branch(branch)
    else:
        ident = DefaultBranch()
    click.echo(cache_key(LockedDependency(url, ident)))


@cache.command(name="list")
@click.option("--cache", "-a", "cache_dir", default=None, help="缓存目录")
def list_cached(cache_dir: str | None) -> None:
    """列出缓存登记表中的全部物化记录"""
    cfg = get_config()
    root = cfg.resolve_cache_dir(cache_dir)
    try:
        registry = CacheRegistry(root / cfg.registry_name)
    except WaresError as e:
        raise click.ClickException(e.message) from e

    names = registry.names()
    if not names:
        click.echo(f"缓存为空: {root}")
        return
    for name in names:
        click.echo(f"{name} ({registry.url(name)})")
        for obj in registry.entries(name):
            click.echo(f"  - {obj.describe()}")
