"""依赖包数据模型

数据类:
- PackageRecord: 全局存储中的一个 (name, version) 条目
- LockEntry: 锁文件中的单个包
- LinkInfo: vendor 目录下的单个链接/目录
- StoreStats: 全局存储统计
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def package_key(name: str, version: str) -> str:
    """存储索引键: name@version"""
    return f"{name}@{version}"


@dataclass
class PackageRecord:
    """全局存储中的单个包版本"""

    name: str
    version: str
    path: str
    dependencies: dict[str, str] = field(default_factory=dict)  # 安装时声明的直接依赖
    installed_at: str = ""

    @property
    def key(self) -> str:
        return package_key(self.name, self.version)

    @property
    def vendor(self) -> str:
        return self.name.split("/", 1)[0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "path": self.path,
            "dependencies": dict(self.dependencies),
            "installed_at": self.installed_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackageRecord:
        deps = data.get("dependencies") or {}
        return cls(
            name=str(data["name"]),
            version=str(data["version"]),
            path=str(data["path"]),
            # 旧版本索引可能把依赖存成列表
            dependencies=dict(deps) if isinstance(deps, dict) else {},
            installed_at=str(data.get("installed_at", "")),
        )


@dataclass
class LockEntry:
    """锁文件中的单个包

    version 为 None 表示占位条目（只记录了约束，尚未解析）。
    """

    name: str
    version: str | None = None
    dependencies: dict[str, str] = field(default_factory=dict)
    locked_at: str = ""
    constraint: str | None = None
    dev: bool = False

    @property
    def resolved(self) -> bool:
        return self.version is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.version is not None:
            data["version"] = self.version
            data["dependencies"] = dict(self.dependencies)
        if self.constraint is not None:
            data["constraint"] = self.constraint
        data["locked_at"] = self.locked_at
        return data

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any], dev: bool = False) -> LockEntry:
        deps = data.get("dependencies") or {}
        version = data.get("version")
        constraint = data.get("constraint")
        return cls(
            name=str(data.get("name", name)),
            version=str(version) if version is not None else None,
            dependencies=dict(deps) if isinstance(deps, dict) else {},
            locked_at=str(data.get("locked_at", "")),
            constraint=str(constraint) if constraint is not None else None,
            dev=dev,
        )


@dataclass
class LinkInfo:
    """vendor 目录下的单个条目"""

    kind: str  # "link" | "directory"
    target: str
    target_exists: bool

    @property
    def broken(self) -> bool:
        return self.kind == "link" and not self.target_exists


@dataclass
class StoreStats:
    """全局存储统计"""

    package_count: int
    total_bytes: int
    counts_by_vendor: dict[str, int]
    store_path: str
