"""vendor 目录链接管理

项目的 vendor/<vendor>/<package> 是指向全局存储包目录的符号链接，
让共享的包看起来像是装在本地。

- create_links(): 为清单中的每个依赖（re）建链接
- remove_package(): 删除单个包的链接或目录
- repair_links(): 把目标已失效的链接重新指向存储中的最新版本

链接创建不是事务性的：某个包失败时立即抛错，之前已创建的链接保留。
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path

from pcomposer.core.config import DEFAULT_PLATFORM_PREFIXES
from pcomposer.core.dep.installer import is_platform_requirement
from pcomposer.core.dep.models import LinkInfo
from pcomposer.core.dep.registry import validate_package_name
from pcomposer.core.dep.store import GlobalStore
from pcomposer.core.exceptions import (
    LinkCreationError,
    PackageNotFoundError,
    PackagePathMissingError,
    StoreIOError,
    ValidationError,
)
from pcomposer.core.manifest import ManifestFile
from pcomposer.utils.fs import remove_path

logger = logging.getLogger(__name__)


class VendorLinker:
    """vendor 符号链接管理器"""

    def __init__(
        self,
        vendor_dir: str | Path,
        store: GlobalStore,
        manifest: ManifestFile,
        platform_prefixes: Iterable[str] = DEFAULT_PLATFORM_PREFIXES,
    ) -> None:
        self.vendor_dir = Path(vendor_dir)
        self.store = store
        self.manifest = manifest
        self.platform_prefixes = tuple(platform_prefixes)

    def vendor_path(self, name: str) -> Path:
        """vendor 下的包路径；必须严格位于 vendor 目录之内"""
        rel = Path(name)
        if rel.is_absolute() or not rel.parts or ".." in rel.parts:
            raise ValidationError(f"包路径越出 vendor 目录: {name!r}")
        path = self.vendor_dir / rel
        try:
            path.parent.resolve().relative_to(self.vendor_dir.resolve())
        except ValueError as e:
            raise ValidationError(f"包路径越出 vendor 目录: {name!r}") from e
        return path

    # ------------------------------------------------------------------
    # 创建
    # ------------------------------------------------------------------

    def create_links(self, versions: Mapping[str, str] | None = None) -> dict[str, Path]:
        """为清单中的 require + require-dev 建链接，返回 {name: vendor_path}

        versions 为锁文件解析出的 {name: version}；不在其中的包使用
        全局存储里的最新版本。
        """
        versions = versions or {}
        self._ensure_vendor_dir()

        linked: dict[str, Path] = {}
        for name in self.manifest.dependencies:
            if is_platform_requirement(name, self.platform_prefixes):
                continue
            version = versions.get(name) or self.store.get_latest_version(name)
            if version is None:
                raise PackageNotFoundError(f"全局存储中没有包 {name} 的任何版本")
            linked[name] = self.create_link(name, version)
        return linked

    def create_link(self, name: str, version: str) -> Path:
        target = self.store.get_path(name, version)
        if target is None:
            raise PackageNotFoundError(f"全局存储索引中没有 {name} ({version})")
        if not target.is_dir():
            raise PackagePathMissingError(f"包 {name} ({version}) 的存储目录不存在: {target}")

        link = self.vendor_path(name)
        try:
            remove_path(link)
            link.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreIOError(f"清理 vendor 路径失败 {link}: {e}") from e

        absolute_target = target.resolve()
        try:
            os.symlink(absolute_target, link.absolute(), target_is_directory=True)
        except OSError as e:
            raise LinkCreationError(
                f"创建符号链接失败 {name}: {e} (from: {absolute_target}, to: {link})"
            ) from e
        logger.info("  已链接 %s -> %s", name, absolute_target)
        return link

    def _ensure_vendor_dir(self) -> None:
        try:
            self.vendor_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreIOError(f"无法创建 vendor 目录 {self.vendor_dir}: {e}") from e

    # ------------------------------------------------------------------
    # 删除
    # ------------------------------------------------------------------

    def remove_package(self, name: str) -> bool:
        """删除单个包的链接或目录；只接受 vendor/package 格式的包名"""
        validate_package_name(name)
        path = self.vendor_path(name)
        was_link = path.is_symlink()
        try:
            removed = remove_path(path)
        except OSError as e:
            raise StoreIOError(f"删除 vendor 路径失败 {path}: {e}") from e
        if removed:
            logger.info("  已移除%s: %s", "链接" if was_link else "目录", name)
            parent = path.parent
            if parent != self.vendor_dir and parent.is_dir() and not any(parent.iterdir()):
                parent.rmdir()
        return removed

    # ------------------------------------------------------------------
    # 查询 / 修复
    # ------------------------------------------------------------------

    def get_linked_packages(self) -> dict[str, LinkInfo]:
        """扫描 vendor/<vendor>/<package>（顶层直接是链接的也计入）"""
        result: dict[str, LinkInfo] = {}
        if not self.vendor_dir.is_dir():
            return result

        for entry in sorted(self.vendor_dir.iterdir()):
            if entry.is_symlink():
                result[entry.name] = self._describe(entry)
            elif entry.is_dir():
                for child in sorted(entry.iterdir()):
                    if child.is_symlink() or child.is_dir():
                        result[f"{entry.name}/{child.name}"] = self._describe(child)
        return result

    @staticmethod
    def _describe(path: Path) -> LinkInfo:
        if path.is_symlink():
            target = Path(os.readlink(path))
            if not target.is_absolute():
                target = path.parent / target
            return LinkInfo(kind="link", target=str(target), target_exists=target.is_dir())
        return LinkInfo(kind="directory", target=str(path), target_exists=True)

    def is_package_linked(self, name: str) -> bool:
        path = self.vendor_path(name)
        return path.is_symlink() and self._describe(path).target_exists

    def get_package_target(self, name: str) -> Path | None:
        path = self.vendor_path(name)
        if not path.is_symlink():
            return None
        info = self._describe(path)
        return Path(info.target) if info.target_exists else None

    def repair_links(self) -> list[str]:
        """重建目标已失效的链接，返回修复成功的包名"""
        repaired: list[str] = []
        for name, info in self.get_linked_packages().items():
            if not info.broken:
                continue
            logger.info("修复失效链接: %s", name)
            self.vendor_path(name).unlink()
            latest = self.store.get_latest_version(name)
            if latest is None:
                logger.warning("  全局存储中没有 %s，跳过", name)
                continue
            self.create_link(name, latest)
            repaired.append(name)
        return repaired
