"""JSON 文件统一读写工具

存储索引、锁文件、清单均为 JSON 文档。统一 UTF-8、4 空格缩进、
不转义斜杠与 Unicode，写入走 atomic_write。
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pcomposer.utils.yaml_io import atomic_write


def dumps_json(data: Any) -> str:
    """序列化为与 composer 工具链一致的美化 JSON"""
    return json.dumps(data, indent=4, ensure_ascii=False) + "\n"


def load_json(path: str | Path) -> Any:
    """读取 JSON 文件

    返回:
        解析结果；文件不存在时返回 None，由调用方决定缺省骨架

    异常:
        json.JSONDecodeError: 内容不是合法 JSON（是否自愈由调用方决定）
        OSError: 读取失败
    """
    p = Path(path)
    if not p.exists():
        return None
    with open(p, encoding="utf-8") as f:
        return json.load(f)


def save_json(path: str | Path, data: Any) -> None:
    """原子写入 JSON 文件，自动创建父目录"""
    atomic_write(Path(path), dumps_json(data))
