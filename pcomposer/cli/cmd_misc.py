"""CLI — 维护命令（autoload、缓存、锁文件、存储统计、链接修复）"""

from __future__ import annotations

import click

from pcomposer.cli import _svc
from pcomposer.utils.fs import format_bytes


def register(group: click.Group) -> None:
    group.add_command(dump_autoload)
    group.add_command(clear_cache)
    group.add_command(lock)
    group.add_command(unlock)
    group.add_command(stats)
    group.add_command(repair_links)


@click.command(name="dump-autoload")
def dump_autoload() -> None:
    """重新生成 vendor/autoload.php"""
    path = _svc().deps.dump_autoload()
    click.echo(f"autoload 已生成: {path}")


@click.command(name="clear-cache")
def clear_cache() -> None:
    """清空全局包存储"""
    _svc().deps.clear_cache()
    click.echo("全局存储已清空。")


@click.command()
def lock() -> None:
    """显示锁文件信息"""
    info = _svc().deps.lock_info()
    if info is None:
        click.echo("没有锁文件。")
        return
    click.echo(f"锁文件: {info['path']}")
    click.echo(f"生成于: {info['generated'] or '未知'}")
    if not info["packages"]:
        click.echo("没有锁定的包。")
        return
    click.echo("锁定的包:")
    for p in info["packages"]:
        version = p.get("version") or f"未解析 ({p.get('constraint', '*')})"
        dev = " [dev]" if p["dev"] else ""
        click.echo(f"  {p['name']}: {version} (锁定于: {p.get('locked_at') or '未知'}){dev}")


@click.command()
def unlock() -> None:
    """删除锁文件，下次 install 重新解析版本"""
    if _svc().deps.unlock():
        click.echo("锁文件已删除，下次 install 将重新解析版本。")
    else:
        click.echo("没有锁文件。")


@click.command()
def stats() -> None:
    """全局存储统计"""
    s = _svc().deps.store_stats()
    click.echo(f"存储目录: {s.store_path}")
    click.echo(f"包数量:   {s.package_count}")
    click.echo(f"总大小:   {format_bytes(s.total_bytes)}")
    for vendor, count in sorted(s.counts_by_vendor.items()):
        click.echo(f"  {vendor:20s} {count}")


@click.command(name="repair-links")
def repair_links() -> None:
    """重建 vendor 中目标已失效的链接"""
    repaired = _svc().deps.repair_links()
    if not repaired:
        click.echo("没有需要修复的链接。")
        return
    for name in repaired:
        click.echo(f"  已修复: {name}")
