"""集中配置管理

替代各模块散落的默认路径常量，提供统一的配置入口。
支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import asdict, dataclass, field
from pathlib import Path

import yaml

from pcomposer.core.exceptions import ConfigError
from pcomposer.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

CONFIG_ENV = "PCOMPOSER_CONFIG"

DEFAULT_PLATFORM_PREFIXES = ("php", "ext-", "lib-", "composer-plugin-api")


def default_store_dir() -> Path:
    """全局存储根目录: ~/.pcomposer/store，无法解析 home 时回退到系统临时目录"""
    try:
        home = Path.home()
    except (RuntimeError, KeyError):
        home = Path(tempfile.gettempdir())
    return home / ".pcomposer" / "store"


def default_config_path() -> Path:
    env = os.getenv(CONFIG_ENV, "")
    if env:
        return Path(env)
    return default_store_dir().parent / "config.yml"


@dataclass
class Config:
    """全局配置"""

    # 目录
    store_dir: str = ""          # 空 = ~/.pcomposer/store
    project_dir: str = ""        # 空 = 从 cwd 向上查找清单文件
    vendor_dir: str = "vendor"   # 相对项目根目录

    # 文件名
    manifest_file: str = "composer.json"
    lock_file: str = "pcomposer.lock"

    # 注册表
    registry_url: str = "https://packagist.org/packages"
    http_timeout: int = 30

    # 平台伪包前缀（php、扩展、系统库等不参与解析）
    platform_prefixes: list[str] = field(
        default_factory=lambda: list(DEFAULT_PLATFORM_PREFIXES),
    )

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str | Path) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (ValueError, OSError) as e:
            raise ConfigError(f"无法读取配置文件 {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"配置文件格式错误 {path}: {e}") from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def resolve_store_dir(self) -> Path:
        if self.store_dir:
            return Path(self.store_dir).expanduser()
        return default_store_dir()

    def resolve_project_dir(self) -> Path:
        """项目根目录：显式配置优先，否则向上查找包含清单文件的目录"""
        if self.project_dir:
            return Path(self.project_dir).expanduser().resolve()
        return find_project_root(Path.cwd(), self.manifest_file)

    def resolve_vendor_dir(self) -> Path:
        vendor = Path(self.vendor_dir)
        if vendor.is_absolute():
            return vendor
        return self.resolve_project_dir() / vendor

    def to_dict(self) -> dict:
        return asdict(self)


def find_project_root(start: Path, manifest_file: str = "composer.json") -> Path:
    """从 start 向上逐级查找包含清单文件的目录，找不到时返回 start"""
    current = start.resolve()
    for candidate in (current, *current.parents):
        if (candidate / manifest_file).is_file():
            return candidate
    return current


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str | Path | None = None) -> Config:
    """从文件初始化全局配置，path 为空时使用 PCOMPOSER_CONFIG 或 ~/.pcomposer/config.yml"""
    global _current  # noqa: PLW0603
    cfg_path = Path(path) if path else default_config_path()
    _current = Config.from_file(cfg_path)
    logger.debug("配置已加载: %s", cfg_path)
    return _current
