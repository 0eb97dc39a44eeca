"""CLI — 依赖管理命令（install / update / require / remove / list / show）"""

from __future__ import annotations

import click

from pcomposer.cli import _svc
from pcomposer.core.dep_manager import MODE_EMPTY, MODE_LOCK, InstallReport


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(update)
    group.add_command(require)
    group.add_command(remove)
    group.add_command(list_packages)
    group.add_command(show)


def _echo_report(report: InstallReport, done: str) -> None:
    if report.mode == MODE_EMPTY:
        click.echo("没有需要安装的依赖。")
        return
    if report.mode == MODE_LOCK:
        click.echo("使用 pcomposer.lock 中的锁定版本。")
    for name, version in sorted(report.packages.items()):
        click.echo(f"  {name}: {version}")
    if report.downloaded:
        click.echo(f"新下载 {len(report.downloaded)} 个包: {', '.join(report.downloaded)}")
    click.echo(done)


@click.command()
def install() -> None:
    """按清单安装依赖（锁文件有效时使用锁定版本）"""
    report = _svc().deps.install()
    _echo_report(report, "依赖安装完成。")


@click.command()
def update() -> None:
    """删除锁文件并重新解析全部依赖"""
    report = _svc().deps.update()
    _echo_report(report, "依赖更新完成。")


@click.command()
@click.argument("name")
@click.argument("constraint", required=False)
@click.option("--dev", is_flag=True, help="加入 require-dev")
def require(name: str, constraint: str | None, dev: bool) -> None:
    """添加依赖到清单并安装"""
    click.echo(f"添加依赖: {name}" + (f" ({constraint})" if constraint else ""))
    report = _svc().deps.require(name, constraint, dev=dev)
    _echo_report(report, "依赖已添加。")


@click.command()
@click.argument("name")
def remove(name: str) -> None:
    """从清单中移除依赖并删除 vendor 链接"""
    if _svc().deps.remove(name):
        click.echo(f"已移除: {name}")
    else:
        click.echo(f"清单中没有该依赖: {name}")


@click.command(name="list")
def list_packages() -> None:
    """列出清单中的依赖及已安装版本"""
    packages = _svc().deps.list_packages()
    if not packages:
        click.echo("没有依赖。")
        return
    click.echo("依赖列表:")
    for p in packages:
        installed = p["installed_version"]
        suffix = f" (已安装: {installed})" if installed else ""
        dev = " [dev]" if p["dev"] else ""
        click.echo(f"  {p['name']}: {p['constraint']}{suffix}{dev}")


@click.command()
@click.argument("name")
def show(name: str) -> None:
    """显示全局存储中的包信息"""
    info = _svc().deps.show_package(name)
    if info is None:
        click.echo(f"全局存储中没有包: {name}")
        return
    deps = info.get("dependencies") or {}
    click.echo(f"包:     {info['name']}")
    click.echo(f"版本:   {info['version']}")
    if info.get("constraint"):
        click.echo(f"约束:   {info['constraint']}")
    click.echo(f"路径:   {info['path']}")
    click.echo(f"已链接: {'是' if info['linked'] else '否'}")
    click.echo(f"依赖:   {', '.join(f'{k} {v}' for k, v in deps.items()) or '无'}")
