"""vendor/autoload.php 生成

依次输出:
  1. 每个清单依赖（存储中有记录的）自身 composer.json 里的 autoload 配置，
     路径指向全局存储目录
  2. 项目自身的 autoload 配置，路径相对 vendor 目录的上一级

支持 psr-4 / psr-0 / classmap（仅文件）/ files。
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pcomposer.core.dep.store import GlobalStore
from pcomposer.core.exceptions import StoreIOError
from pcomposer.core.manifest import ManifestFile
from pcomposer.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

AUTOLOAD_FILE = "autoload.php"

_HEADER = "<?php\n\n// PComposer Autoloader\n// Generated automatically by PComposer\n\n"

_PSR_TEMPLATE = """spl_autoload_register(function ($class) {{
    $prefix = '{prefix}';
    $base_dir = {base_dir};
    $len = strlen($prefix);
    if (strncmp($prefix, $class, $len) !== 0) {{
        return;
    }}
    $relative_class = substr($class, $len);
    $file = $base_dir . str_replace('\\\\', '/', $relative_class) . '.php';
    if (file_exists($file)) {{
        require $file;
    }}
}});

"""


def _php_str(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _as_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(v) for v in value]
    return []


def _join(base: str, rel: str) -> str:
    rel = rel.strip("/")
    return f"{base.rstrip('/')}/{rel}/" if rel else f"{base.rstrip('/')}/"


class AutoloadGenerator:
    """autoload.php 生成器"""

    def __init__(
        self,
        vendor_dir: str | Path,
        store: GlobalStore,
        manifest: ManifestFile,
    ) -> None:
        self.vendor_dir = Path(vendor_dir)
        self.store = store
        self.manifest = manifest

    @property
    def output_path(self) -> Path:
        return self.vendor_dir / AUTOLOAD_FILE

    def dump(self, versions: Mapping[str, str] | None = None) -> Path:
        """生成并写入 vendor/autoload.php，返回文件路径"""
        content = self.render(versions)
        try:
            atomic_write(self.output_path, content)
        except OSError as e:
            raise StoreIOError(f"写入 autoload 文件失败 {self.output_path}: {e}") from e
        logger.info("autoload 已生成: %s", self.output_path)
        return self.output_path

    def render(self, versions: Mapping[str, str] | None = None) -> str:
        versions = versions or {}
        parts = [_HEADER]

        for name in self.manifest.dependencies:
            package_path = self.store.get_path(name, versions.get(name))
            if package_path is None or not package_path.is_dir():
                continue
            config = self._package_autoload(package_path)
            if not config:
                continue
            parts.append(f"// Autoloader for {name}\n")
            for kind, entries in config.items():
                parts.append(self._render_section(kind, entries, package_path, absolute=True))

        project = self.manifest.autoload_config
        if project:
            parts.append("\n// Project autoload configuration\n")
            for kind, entries in project.items():
                parts.append(self._render_section(kind, entries, None, absolute=False))
        return "".join(parts)

    @staticmethod
    def _package_autoload(package_path: Path) -> dict[str, Any]:
        manifest = package_path / "composer.json"
        if not manifest.is_file():
            return {}
        try:
            data = json.loads(manifest.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("包内 composer.json 无法解析，跳过 autoload: %s", manifest)
            return {}
        autoload = data.get("autoload") if isinstance(data, dict) else None
        return autoload if isinstance(autoload, dict) else {}

    def _base_expr(self, rel: str, package_path: Path | None) -> str:
        if package_path is not None:
            return _php_str(_join(str(package_path), rel))
        return "__DIR__ . " + _php_str(_join("/..", rel))

    def _render_section(
        self,
        kind: str,
        entries: Any,
        package_path: Path | None,
        *,
        absolute: bool,
    ) -> str:
        out: list[str] = []
        if kind in ("psr-4", "psr-0") and isinstance(entries, dict):
            for prefix, paths in entries.items():
                for rel in _as_list(paths):
                    out.append(_PSR_TEMPLATE.format(
                        prefix=str(prefix).replace("\\", "\\\\").replace("'", "\\'"),
                        base_dir=self._base_expr(rel, package_path),
                    ))
        elif kind in ("classmap", "files"):
            for rel in _as_list(entries):
                if absolute and package_path is not None:
                    if kind == "classmap" and (package_path / rel).is_dir():
                        # 目录型 classmap 需要扫描类定义，暂不支持
                        continue
                    out.append(f"require_once {_php_str(str(package_path / rel))};\n")
                else:
                    out.append(f"require_once __DIR__ . {_php_str('/../' + rel.lstrip('/'))};\n")
            out.append("\n")
        return "".join(out)
