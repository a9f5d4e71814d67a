"""CLI — 依赖同步命令"""

from __future__ import annotations

import json
import sys

import click

from wares.cli import _parse_kv_pairs
from wares.core.config import get_config, init_config
from wares.core.exceptions import WaresError
from wares.services.sync_service import SyncRequest, SyncService


def register(group: click.Group) -> None:
    group.add_command(sync)


@click.command()
@click.argument("groups", nargs=-1)
@click.option("--root", "-r", default=".", help="存放 wares.lock 的目录")
@click.option("--current", "-c", default=".", help="存放 wares.toml 的目录")
@click.option("--cache", "-a", default=None, help="缓存目录（默认 $WARES_CACHE 或 ./.wares_cache）")
@click.option("--force", is_flag=True, help="忽略锁文件，强制重新解析")
@click.option("--first/--no-first", default=True, help="是否为本轮第一次同步（否则合并锁文件）")
@click.option("--jobs", "-j", type=int, default=None, help="并行解析 / 安装的依赖数")
@click.option("--override", "-o", multiple=True, help="覆盖依赖安装目录，格式: NAME=PATH（可多次指定）")
@click.option("--json", "as_json", is_flag=True, help="以 JSON 输出结果")
@click.option("--config", "config_path", default=None, help="YAML 配置文件路径")
def sync(
    groups: tuple[str, ...], root: str, current: str, cache: str | None,
    force: bool, first: bool, jobs: int | None, override: tuple[str, ...],
    as_json: bool, config_path: str | None,
) -> None:
    """同步依赖: 解析清单、更新锁文件并安装到缓存"""
    try:
        cfg = init_config(config_path) if config_path else get_config()
    except WaresError as e:
        raise click.ClickException(e.message) from e
    svc = SyncService(config=cfg)
    req = SyncRequest(
        root=root, current=current, cache=cache, groups=list(groups),
        force=force, first=first, overrides=_parse_kv_pairs(override), jobs=jobs,
    )
    payload = svc.run_payload(req)

    if as_json:
        click.echo(json.dumps(payload, ensure_ascii=False))
    elif payload["ok"]:
        for name, folder in payload["paths"].items():
            click.echo(f"{name} installed to: {folder}")
    else:
        err = payload["error"]
        click.echo(f"[{err['code']}] {err['message']}", err=True)
        for name, detail in err.get("failures", {}).items():
            click.echo(f"  {name}: [{detail['code']}] {detail['message']}", err=True)

    if not payload["ok"]:
        sys.exit(1)
