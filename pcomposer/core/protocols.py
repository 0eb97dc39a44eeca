"""领域协议定义

集中定义安装流程各组件之间的接口契约（Protocol），
上层依赖抽象而非具体实现；例如约束解析器可以整体替换为
完整的依赖图求解器，而不触碰存储 / 安装器 / 链接器。

使用 typing.Protocol 而非 ABC，现有类无需修改继承关系即可满足协议。
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol


# =========================================================================
# 版本约束解析协议
# =========================================================================

class ConstraintResolver(Protocol):
    """约束解析器协议: (约束, 可用版本) -> 选中版本"""

    def resolve(self, constraint: str, available: Iterable[str]) -> str:
        """无满足版本时抛 NoCompatibleVersionError"""
        ...


# =========================================================================
# 包元数据来源协议
# =========================================================================

class PackageSource(Protocol):
    """包元数据来源协议（远程注册表）"""

    def get_versions(self, name: str) -> list[str]:
        ...

    def get_dist(self, name: str, version: str) -> dict[str, Any]:
        """返回 dist 段，至少包含 url"""
        ...

    def get_requirements(self, name: str, version: str) -> dict[str, str]:
        ...


# =========================================================================
# 制品获取协议
# =========================================================================

class ArtifactFetcher(Protocol):
    """下载 + 解压协议"""

    def fetch(
        self, url: str, destination: Path, *, shasum: str = "",
    ) -> Path:
        """把 url 指向的归档解压到 destination 并返回目录"""
        ...
