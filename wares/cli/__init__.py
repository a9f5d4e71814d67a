"""wares 命令行接口

每个子模块通过 register() 把自己的命令挂到 main 上。
"""

import click

from wares import __version__
from wares.utils.logger import setup_logging_from_env


def _parse_kv_pairs(pairs: tuple[str, ...]) -> dict[str, str]:
    """解析可重复的 NAME=PATH 参数"""
    result: dict[str, str] = {}
    for p in pairs:
        name, sep, path = p.partition("=")
        if not sep or not name.strip():
            raise click.BadParameter(f"格式应为 NAME=PATH: {p}")
        result[name.strip()] = path.strip()
    return result


@click.group()
@click.version_option(version=__version__, prog_name="wares")
def main() -> None:
    """wares - 面向原生构建系统的 git 依赖管理"""
    setup_logging_from_env()


from wares.cli.cmd_cache import register as _reg_cache  # noqa: E402
from wares.cli.cmd_lock import register as _reg_lock  # noqa: E402
from wares.cli.cmd_sync import register as _reg_sync  # noqa: E402

_reg_sync(main)
_reg_lock(main)
_reg_cache(main)
