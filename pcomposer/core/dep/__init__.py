"""依赖解析与全局存储

模块划分:
- models.py: 数据模型
- version.py: 版本比较 + 约束解析（纯函数）
- store.py: 全局包存储
- registry.py: 远程注册表客户端
- fetcher.py: 下载 / 校验 / 解压
- installer.py: 安装编排（解析 → 缓存检查 → 下载 → 登记 → 递归）
"""

from pcomposer.core.dep.fetcher import ArchiveFetcher
from pcomposer.core.dep.installer import PackageInstaller
from pcomposer.core.dep.models import LinkInfo, LockEntry, PackageRecord, StoreStats
from pcomposer.core.dep.registry import RegistryClient
from pcomposer.core.dep.store import GlobalStore
from pcomposer.core.dep.version import VersionConstraintResolver, compare_versions

__all__ = [
    "ArchiveFetcher",
    "GlobalStore",
    "LinkInfo",
    "LockEntry",
    "PackageInstaller",
    "PackageRecord",
    "RegistryClient",
    "StoreStats",
    "VersionConstraintResolver",
    "compare_versions",
]
