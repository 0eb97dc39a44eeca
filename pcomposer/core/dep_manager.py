"""项目依赖管理器

把清单、锁文件、全局存储、安装器、vendor 链接和 autoload 串成
面向项目的命令:

  install:  锁文件与清单一致时按锁定版本安装（存储命中则零网络请求），
            否则按约束重新解析并写锁
  update:   删除锁文件后全量重新解析
  require / remove: 修改清单后安装 / 移除链接

  1. 解析结果只写入锁文件；vendor 链接按锁定版本创建
  2. 任一步骤失败直接抛出，已完成的副作用（存储、链接、清单）不回滚

用法:
    from pcomposer.core.dep_manager import DepManager

    dm = DepManager(project_dir="/path/to/project")
    report = dm.install()
    dm.require("monolog/monolog", "^2.0")
    dm.remove("monolog/monolog")
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pcomposer.core.autoload import AutoloadGenerator
from pcomposer.core.dep.installer import PackageInstaller, filter_platform
from pcomposer.core.dep.models import StoreStats
from pcomposer.core.dep.registry import RegistryClient, validate_package_name
from pcomposer.core.dep.store import GlobalStore
from pcomposer.core.dep.version import VersionConstraintResolver
from pcomposer.core.exceptions import ManifestMissingError
from pcomposer.core.linker import VendorLinker
from pcomposer.core.lockfile import LockFile
from pcomposer.core.manifest import ManifestFile

if TYPE_CHECKING:
    from pcomposer.core.config import Config
    from pcomposer.core.protocols import ArtifactFetcher, ConstraintResolver, PackageSource

logger = logging.getLogger(__name__)

MODE_LOCK = "lock"
MODE_RESOLVE = "resolve"
MODE_EMPTY = "empty"


@dataclass
class InstallReport:
    """一次 install / update 的结果"""

    mode: str                                         # lock / resolve / empty
    packages: dict[str, str] = field(default_factory=dict)   # 直接依赖 name -> version
    downloaded: list[str] = field(default_factory=list)      # 本次实际下载的 name@version
    links: dict[str, Path] = field(default_factory=dict)
    autoload: Path | None = None


class DepManager:
    """项目级依赖编排"""

    def __init__(
        self,
        project_dir: str | Path = "",
        *,
        config: Config | None = None,
        store: GlobalStore | None = None,
        registry: PackageSource | None = None,
        resolver: ConstraintResolver | None = None,
        fetcher: ArtifactFetcher | None = None,
        manifest: ManifestFile | None = None,
        lockfile: LockFile | None = None,
        linker: VendorLinker | None = None,
        autoload: AutoloadGenerator | None = None,
    ) -> None:
        if config is None:
            from pcomposer.core.config import get_config
            config = get_config()
        self.config = config
        self.project_dir = Path(project_dir) if project_dir else config.resolve_project_dir()

        vendor_dir = Path(config.vendor_dir)
        if not vendor_dir.is_absolute():
            vendor_dir = self.project_dir / vendor_dir
        self.vendor_dir = vendor_dir

        self.store = store or GlobalStore(str(config.resolve_store_dir()))
        self.registry = registry or RegistryClient(
            config.registry_url, timeout=config.http_timeout,
        )
        self.resolver = resolver or VersionConstraintResolver()
        self.fetcher = fetcher
        self.manifest = manifest or ManifestFile(self.project_dir, config.manifest_file)
        self.lockfile = lockfile or LockFile(self.project_dir, config.lock_file)
        self.linker = linker or VendorLinker(
            self.vendor_dir, self.store, self.manifest, config.platform_prefixes,
        )
        self.autoload = autoload or AutoloadGenerator(self.vendor_dir, self.store, self.manifest)

    def _installer(self) -> PackageInstaller:
        return PackageInstaller(
            self.store,
            self.registry,
            resolver=self.resolver,
            fetcher=self.fetcher,
            platform_prefixes=self.config.platform_prefixes,
            timeout=self.config.http_timeout,
        )

    def _manifest_deps(self) -> tuple[dict[str, str], dict[str, str]]:
        """清单中的 (require, require-dev)，已过滤平台伪包"""
        prefixes = self.config.platform_prefixes
        return (
            filter_platform(self.manifest.production_dependencies, prefixes),
            filter_platform(self.manifest.development_dependencies, prefixes),
        )

    # ------------------------------------------------------------------
    # install / update
    # ------------------------------------------------------------------

    def install(self) -> InstallReport:
        """安装清单中的全部依赖"""
        if not self.manifest.exists():
            raise ManifestMissingError(f"清单文件不存在: {self.manifest.path}")

        prod, dev = self._manifest_deps()
        if not prod and not dev:
            logger.info("没有需要安装的依赖")
            return InstallReport(mode=MODE_EMPTY)

        with self._installer() as installer:
            if self._lock_usable(prod, dev):
                logger.info("使用锁文件中的版本: %s", self.lockfile.path)
                versions = self._install_from_lock(installer)
                mode = MODE_LOCK
            else:
                if self.lockfile.exists():
                    logger.info("锁文件与清单不一致，重新解析")
                else:
                    logger.info("锁文件不存在，解析并创建")
                versions = self._resolve_and_lock(installer, prod, dev)
                mode = MODE_RESOLVE
            downloaded = list(installer.downloaded)

        return self._finish(mode, versions, downloaded)

    def update(self) -> InstallReport:
        """删除锁文件，按清单约束全部重新解析"""
        if not self.manifest.exists():
            raise ManifestMissingError(f"清单文件不存在: {self.manifest.path}")

        self.lockfile.delete()
        prod, dev = self._manifest_deps()
        if not prod and not dev:
            logger.info("没有需要更新的依赖")
            return InstallReport(mode=MODE_EMPTY)

        with self._installer() as installer:
            versions = self._resolve_and_lock(installer, prod, dev)
            downloaded = list(installer.downloaded)
        return self._finish(MODE_RESOLVE, versions, downloaded)

    def _lock_usable(self, prod: Mapping[str, str], dev: Mapping[str, str]) -> bool:
        if not self.lockfile.exists():
            return False
        self.lockfile.load()
        if not self.lockfile.is_up_to_date(prod, dev):
            return False
        # 上次解析中途失败会留下只有约束的占位条目
        return not self.lockfile.get_outdated_packages()

    def _install_from_lock(self, installer: PackageInstaller) -> dict[str, str]:
        versions: dict[str, str] = {}
        for name, entry in self.lockfile.get_locked_packages().items():
            if entry.version is None:
                continue
            logger.info("按锁定版本安装 %s (%s)", name, entry.version)
            versions[name] = installer.install(name, entry.version)
        return versions

    def _resolve_and_lock(
        self,
        installer: PackageInstaller,
        prod: Mapping[str, str],
        dev: Mapping[str, str],
    ) -> dict[str, str]:
        self.lockfile.update_from_manifest(prod, dev)
        versions: dict[str, str] = {}
        for is_dev, deps in ((False, prod), (True, dev)):
            for name, constraint in deps.items():
                version = installer.install_and_resolve(name, constraint)
                record = self.store.get_record(name, version)
                self.lockfile.lock_package(
                    name,
                    version,
                    record.dependencies if record else {},
                    dev=is_dev,
                )
                versions[name] = version
        return versions

    def _finish(
        self, mode: str, versions: dict[str, str], downloaded: list[str],
    ) -> InstallReport:
        links = self.linker.create_links(versions)
        autoload = self.autoload.dump(versions)
        logger.info("依赖安装完成: %d 个直接依赖，%d 个新下载", len(versions), len(downloaded))
        return InstallReport(
            mode=mode,
            packages=versions,
            downloaded=downloaded,
            links=links,
            autoload=autoload,
        )

    # ------------------------------------------------------------------
    # require / remove
    # ------------------------------------------------------------------

    def require(
        self, name: str, constraint: str | None = None, dev: bool = False,
    ) -> InstallReport:
        """把包加入清单（不存在则创建清单）并执行 install"""
        self.manifest.add_dependency(name, constraint, dev=dev)
        logger.info("已添加依赖 %s (%s)", name, constraint or "*")
        return self.install()

    def remove(self, name: str) -> bool:
        """从清单、锁文件和 vendor 中移除包；返回清单中是否存在该包

        包名先行校验，非 vendor/package 格式时不做任何修改。
        """
        validate_package_name(name)
        if not self.manifest.exists():
            raise ManifestMissingError(f"清单文件不存在: {self.manifest.path}")

        removed = self.manifest.remove_dependency(name)
        self.linker.remove_package(name)
        if self.lockfile.exists():
            self.lockfile.load()
            self.lockfile.unlock_package(name)
        self.autoload.dump(self._locked_versions())
        if removed:
            logger.info("已移除依赖 %s", name)
        else:
            logger.warning("清单中没有依赖 %s", name)
        return removed

    def _locked_versions(self) -> dict[str, str]:
        if not self.lockfile.exists():
            return {}
        return {
            name: entry.version
            for name, entry in self.lockfile.get_locked_packages().items()
            if entry.version is not None
        }

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def list_packages(self) -> list[dict[str, Any]]:
        """清单中的依赖及其在全局存储中的已安装版本（没有则为 None）"""
        locked = self._locked_versions()
        result = []
        for name, constraint in self.manifest.dependencies.items():
            result.append({
                "name": name,
                "constraint": constraint,
                "installed_version": self._installed_version(name, locked.get(name)),
                "dev": self.manifest.is_dev_dependency(name),
            })
        return result

    def _installed_version(self, name: str, locked: str | None) -> str | None:
        """锁定版本在存储中可用则用之，否则取存储最新版本；目录已被删除的条目视为不存在"""
        for version in (locked, self.store.get_latest_version(name)):
            if version and self.store.has_package(name, version):
                return version
        return None

    def show_package(self, name: str) -> dict[str, Any] | None:
        """全局存储中该包的记录（优先锁定版本），不存在返回 None"""
        version = self._installed_version(name, self._locked_versions().get(name))
        record = self.store.get_record(name, version) if version else None
        if record is None:
            return None
        info = record.to_dict()
        info["linked"] = self.linker.is_package_linked(name)
        info["constraint"] = self.manifest.get_constraint(name)
        return info

    def lock_info(self) -> dict[str, Any] | None:
        """锁文件概要，锁文件不存在返回 None"""
        if not self.lockfile.exists():
            return None
        self.lockfile.load()
        return {
            "path": str(self.lockfile.path),
            "generated": self.lockfile.generated,
            "packages": [e.to_dict() | {"dev": e.dev}
                         for e in self.lockfile.get_locked_packages().values()],
        }

    def store_stats(self) -> StoreStats:
        return self.store.stats()

    # ------------------------------------------------------------------
    # 维护
    # ------------------------------------------------------------------

    def dump_autoload(self) -> Path:
        return self.autoload.dump(self._locked_versions())

    def clear_cache(self) -> None:
        """清空全局存储（vendor 链接会因此失效，清单不变）"""
        self.store.clear_cache()

    def unlock(self) -> bool:
        """删除锁文件，下次 install 会重新解析"""
        return self.lockfile.delete()

    def repair_links(self) -> list[str]:
        return self.linker.repair_links()
