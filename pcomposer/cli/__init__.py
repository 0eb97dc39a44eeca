"""pcomposer 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click

from pcomposer import __version__
from pcomposer.core.config import CONFIG_ENV, init_config
from pcomposer.core.exceptions import PComposerError
from pcomposer.services.container import get_container, reset_container
from pcomposer.utils.logger import setup_logging_from_env


def _svc() -> Any:
    """获取全局服务容器的快捷方式"""
    return get_container()


class PComposerGroup(click.Group):
    """把领域异常转换为 ClickException（stderr 输出 + 退出码 1）"""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except PComposerError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e


@click.group(cls=PComposerGroup)
@click.version_option(version=__version__, prog_name="pcomposer")
@click.option(
    "--working-dir", "-d", default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="项目根目录（默认从当前目录向上查找 composer.json）",
)
@click.option(
    "--config", "-c", "config_path", default=None, envvar=CONFIG_ENV,
    type=click.Path(dir_okay=False, path_type=Path),
    help="配置文件路径（默认 ~/.pcomposer/config.yml）",
)
def main(working_dir: Path | None, config_path: Path | None) -> None:
    """pcomposer - 带全局共享存储的 PHP 依赖管理器"""
    setup_logging_from_env()
    try:
        cfg = init_config(config_path)
    except PComposerError as e:
        raise click.ClickException(f"[{e.code}] {e}") from e
    if working_dir is not None:
        cfg.project_dir = str(working_dir.resolve())
    reset_container()


# 注册各领域子命令
from pcomposer.cli.cmd_deps import register as _reg_deps  # noqa: E402
from pcomposer.cli.cmd_misc import register as _reg_misc  # noqa: E402

_reg_deps(main)
_reg_misc(main)
