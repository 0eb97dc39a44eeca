"""包安装器

安装流程（单个包）:
  1. 向注册表查询全部可用版本
  2. 约束解析出具体版本
  3. 全局存储已有该版本 → 直接返回（缓存命中，不下载）
  4. 否则下载 dist 归档到私有临时目录并解压
  5. 读取包自身的 composer.json 收集直接依赖（过滤平台伪包）
  6. 登记到全局存储
  7. 深度优先递归安装依赖

正在解析中的包名记录在 _in_progress 中，依赖环再次进入时直接返回祖先
已选定的版本，不再依赖存储缓存命中来终止递归。

临时目录在 close() 时无条件删除，推荐用 with 语句管理。
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from pcomposer.core.config import DEFAULT_PLATFORM_PREFIXES
from pcomposer.core.dep.fetcher import ArchiveFetcher
from pcomposer.core.dep.registry import RegistryClient
from pcomposer.core.dep.store import GlobalStore, path_segment
from pcomposer.core.dep.version import VersionConstraintResolver
from pcomposer.core.protocols import ArtifactFetcher, ConstraintResolver, PackageSource

logger = logging.getLogger(__name__)


def is_platform_requirement(
    name: str, prefixes: Iterable[str] = DEFAULT_PLATFORM_PREFIXES,
) -> bool:
    """平台伪包（php、ext-*、lib-* 等）不含 vendor 分隔符"""
    if "/" in name:
        return False
    return any(name == p or name.startswith(p) for p in prefixes)


def filter_platform(
    require: Mapping[str, str],
    prefixes: Iterable[str] = DEFAULT_PLATFORM_PREFIXES,
) -> dict[str, str]:
    prefixes = tuple(prefixes)
    return {
        name: str(constraint) for name, constraint in require.items()
        if not is_platform_requirement(name, prefixes)
    }


class PackageInstaller:
    """包安装器 - 解析 + 缓存检查 + 下载 + 登记 + 递归"""

    def __init__(
        self,
        store: GlobalStore,
        registry: PackageSource | None = None,
        *,
        resolver: ConstraintResolver | None = None,
        fetcher: ArtifactFetcher | None = None,
        platform_prefixes: Iterable[str] = DEFAULT_PLATFORM_PREFIXES,
        timeout: int = 30,
    ) -> None:
        self.store = store
        self.registry = registry or RegistryClient(timeout=timeout)
        self.resolver = resolver or VersionConstraintResolver()
        self.platform_prefixes = tuple(platform_prefixes)
        self.temp_dir = Path(tempfile.mkdtemp(prefix="pcomposer_"))
        self.fetcher = fetcher or ArchiveFetcher(self.temp_dir, timeout=timeout)
        self._in_progress: dict[str, str] = {}
        self.downloaded: list[str] = []

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    def close(self) -> None:
        """删除私有临时目录"""
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir, ignore_errors=True)

    def __enter__(self) -> PackageInstaller:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # 安装
    # ------------------------------------------------------------------

    def install_and_resolve(self, name: str, constraint: str) -> str:
        """按约束安装单个包（含传递依赖），返回解析出的版本"""
        if name in self._in_progress:
            version = self._in_progress[name]
            logger.debug("依赖环: %s 正在由上层解析 (%s)，跳过", name, version)
            return version

        logger.info("安装 %s (%s)...", name, constraint)
        available = self.registry.get_versions(name)
        version = self.resolver.resolve(constraint, available)

        if self.store.has_package(name, version):
            logger.info("  全局存储已存在: %s@%s", name, version)
            return version

        self._in_progress[name] = version
        try:
            dependencies = self._download_and_store(name, version)
            self.install_all(dependencies)
        finally:
            self._in_progress.pop(name, None)

        logger.info("  已安装 %s (%s)", name, version)
        return version

    def install(self, name: str, version: str) -> str:
        """安装已确定的版本（如来自锁文件）；存储命中时不访问注册表"""
        if self.store.has_package(name, version):
            logger.info("  全局存储已存在: %s@%s", name, version)
            return version
        if name in self._in_progress:
            return self._in_progress[name]

        logger.info("安装 %s (%s)...", name, version)
        self._in_progress[name] = version
        try:
            dependencies = self._download_and_store(name, version)
            self.install_all(dependencies)
        finally:
            self._in_progress.pop(name, None)

        logger.info("  已安装 %s (%s)", name, version)
        return version

    def install_all(self, dependencies: Mapping[str, str]) -> dict[str, str]:
        """逐个按约束安装，返回 {name: version}"""
        return {
            name: self.install_and_resolve(name, constraint)
            for name, constraint in dependencies.items()
        }

    # ------------------------------------------------------------------
    # 下载 + 登记
    # ------------------------------------------------------------------

    def _download_and_store(self, name: str, version: str) -> dict[str, str]:
        dist = self.registry.get_dist(name, version)
        extract_dir = self.temp_dir / f"{path_segment(name)}@{path_segment(version)}"
        if extract_dir.exists():
            shutil.rmtree(extract_dir)

        try:
            self.fetcher.fetch(
                str(dist["url"]), extract_dir, shasum=str(dist.get("shasum") or ""),
            )
            dependencies = self.extract_dependencies(
                extract_dir,
                fallback=self.registry.get_requirements(name, version),
            )
            self.store.store(name, version, extract_dir, dependencies)
        finally:
            shutil.rmtree(extract_dir, ignore_errors=True)

        self.downloaded.append(f"{name}@{version}")
        return dependencies

    def extract_dependencies(
        self, package_path: Path, fallback: Mapping[str, str] | None = None,
    ) -> dict[str, str]:
        """读取包自身 composer.json 的 require 段；没有清单时使用注册表元数据"""
        manifest = package_path / "composer.json"
        if not manifest.is_file():
            return filter_platform(fallback or {}, self.platform_prefixes)

        try:
            data = json.loads(manifest.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("包内 composer.json 无法解析，按无依赖处理: %s (%s)", manifest, e)
            return {}

        require = data.get("require") if isinstance(data, dict) else None
        if not isinstance(require, dict):
            return {}
        return filter_platform(require, self.platform_prefixes)
