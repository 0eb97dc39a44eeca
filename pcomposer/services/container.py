"""服务容器 — 统一依赖注入，消除 CLI 中的裸构造

同一容器内的实例共享状态（注册表元数据缓存、存储索引等）。
CLI 通过 get_container() 获取，而非直接 import 构造。

依赖关系图（→ 表示依赖）:
  linker   → store, manifest
  autoload → store, manifest
  deps     → store, registry, resolver, manifest, lockfile, linker, autoload

Config 注入:
  容器接受可选 Config 参数；不提供时使用全局 get_config()。

用法:
    container = ServiceContainer()
    container.deps.install()

    cfg = Config.from_file("config.yml")
    container = ServiceContainer(config=cfg)

    from pcomposer.services.container import get_container
    stats = get_container().store.stats()
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pcomposer.core.autoload import AutoloadGenerator
    from pcomposer.core.config import Config
    from pcomposer.core.dep.registry import RegistryClient
    from pcomposer.core.dep.store import GlobalStore
    from pcomposer.core.dep.version import VersionConstraintResolver
    from pcomposer.core.dep_manager import DepManager
    from pcomposer.core.linker import VendorLinker
    from pcomposer.core.lockfile import LockFile
    from pcomposer.core.manifest import ManifestFile

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器 — 每个实例持有一组共享的组件"""

    def __init__(self, config: Config | None = None) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from pcomposer.core.config import get_config
            config = get_config()
        self._config = config

    @property
    def config(self) -> Config:
        return self._config

    @property
    def project_dir(self) -> Path:
        if "project_dir" not in self._instances:
            self._instances["project_dir"] = self._config.resolve_project_dir()
            logger.debug("项目根目录: %s", self._instances["project_dir"])
        return self._instances["project_dir"]  # type: ignore[return-value]

    @property
    def vendor_dir(self) -> Path:
        vendor = Path(self._config.vendor_dir)
        return vendor if vendor.is_absolute() else self.project_dir / vendor

    # ---- 全局组件 ----

    @property
    def store(self) -> GlobalStore:
        if "store" not in self._instances:
            from pcomposer.core.dep.store import GlobalStore
            self._instances["store"] = GlobalStore(
                store_dir=str(self._config.resolve_store_dir()),
            )
        return self._instances["store"]  # type: ignore[return-value]

    @property
    def registry(self) -> RegistryClient:
        if "registry" not in self._instances:
            from pcomposer.core.dep.registry import RegistryClient
            self._instances["registry"] = RegistryClient(
                self._config.registry_url,
                timeout=self._config.http_timeout,
            )
        return self._instances["registry"]  # type: ignore[return-value]

    @property
    def resolver(self) -> VersionConstraintResolver:
        if "resolver" not in self._instances:
            from pcomposer.core.dep.version import VersionConstraintResolver
            self._instances["resolver"] = VersionConstraintResolver()
        return self._instances["resolver"]  # type: ignore[return-value]

    # ---- 项目组件 ----

    @property
    def manifest(self) -> ManifestFile:
        if "manifest" not in self._instances:
            from pcomposer.core.manifest import ManifestFile
            self._instances["manifest"] = ManifestFile(
                self.project_dir, self._config.manifest_file,
            )
        return self._instances["manifest"]  # type: ignore[return-value]

    @property
    def lockfile(self) -> LockFile:
        if "lockfile" not in self._instances:
            from pcomposer.core.lockfile import LockFile
            self._instances["lockfile"] = LockFile(
                self.project_dir, self._config.lock_file,
            )
        return self._instances["lockfile"]  # type: ignore[return-value]

    @property
    def linker(self) -> VendorLinker:
        if "linker" not in self._instances:
            from pcomposer.core.linker import VendorLinker
            self._instances["linker"] = VendorLinker(
                self.vendor_dir, self.store, self.manifest,
                self._config.platform_prefixes,
            )
        return self._instances["linker"]  # type: ignore[return-value]

    @property
    def autoload(self) -> AutoloadGenerator:
        if "autoload" not in self._instances:
            from pcomposer.core.autoload import AutoloadGenerator
            self._instances["autoload"] = AutoloadGenerator(
                self.vendor_dir, self.store, self.manifest,
            )
        return self._instances["autoload"]  # type: ignore[return-value]

    # ---- 编排（Facade — 统一访问入口） ----

    @property
    def deps(self) -> DepManager:
        if "deps" not in self._instances:
            from pcomposer.core.dep_manager import DepManager
            self._instances["deps"] = DepManager(
                self.project_dir,
                config=self._config,
                store=self.store,
                registry=self.registry,
                resolver=self.resolver,
                manifest=self.manifest,
                lockfile=self.lockfile,
                linker=self.linker,
                autoload=self.autoload,
            )
        return self._instances["deps"]  # type: ignore[return-value]


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def reset_container() -> None:
    """重置全局容器（CLI 切换配置 / 测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
