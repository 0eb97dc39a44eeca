"""文件系统辅助函数 — 递归复制/删除、目录大小统计"""

from __future__ import annotations

import os
import shutil
from pathlib import Path


def remove_path(path: Path) -> bool:
    """删除路径：符号链接只解除链接（不触碰目标），目录递归删除，文件直接删除

    返回是否确实删除了东西。
    """
    if path.is_symlink():
        path.unlink()
        return True
    if path.is_dir():
        shutil.rmtree(path)
        return True
    if path.exists():
        path.unlink()
        return True
    return False


def copy_tree(source: Path, destination: Path) -> None:
    """递归复制目录内容到目标目录（逐字节复制，保留包内的相对符号链接）"""
    destination.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)


def directory_size(path: Path) -> int:
    """统计目录下所有普通文件的字节数（不跟随符号链接）"""
    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for name in filenames:
            fp = Path(dirpath) / name
            if not fp.is_symlink():
                total += fp.stat().st_size
    return total


def format_bytes(size: int, precision: int = 2) -> str:
    """字节数转人类可读格式，如 1536 -> '1.5 KB'"""
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size)
    i = 0
    while value > 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, precision):g} {units[i]}"
