"""项目清单 (composer.json) 读写

只关心 require / require-dev 两段依赖与 autoload 配置；
其余键（name、description、scripts ...）原样保留，写回时顺序不变。
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from pcomposer.core.exceptions import CorruptManifestError, StoreIOError
from pcomposer.utils.json_io import load_json, save_json

logger = logging.getLogger(__name__)

MANIFEST_FILE_NAME = "composer.json"

_PROJECT_NAME_RE = re.compile(
    r"^[a-z0-9]([_.-]?[a-z0-9]+)*/[a-z0-9]([_.-]?[a-z0-9]+)*$"
)


def _skeleton() -> dict[str, Any]:
    return {
        "name": "project/root",
        "description": "Project managed by PComposer",
        "type": "project",
        "require": {},
        "require-dev": {},
        "autoload": {},
        "autoload-dev": {},
    }


class ManifestFile:
    """项目清单"""

    def __init__(self, project_root: str | Path, file_name: str = MANIFEST_FILE_NAME) -> None:
        self.project_root = Path(project_root)
        self.path = self.project_root / file_name
        self.data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        try:
            data = load_json(self.path)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptManifestError(f"清单 JSON 无效 {self.path}: {e}") from e
        if data is None:
            return _skeleton()
        if not isinstance(data, dict):
            raise CorruptManifestError(f"清单顶层必须是对象: {self.path}")
        return data

    def reload(self) -> None:
        self.data = self._load()

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self) -> None:
        try:
            save_json(self.path, self.data)
        except OSError as e:
            raise StoreIOError(f"写入清单失败 {self.path}: {e}") from e

    # ------------------------------------------------------------------
    # 依赖查询
    # ------------------------------------------------------------------

    def _deps(self, section: str) -> dict[str, str]:
        deps = self.data.get(section)
        if not isinstance(deps, dict):
            return {}
        return {str(k): str(v) for k, v in deps.items()}

    @property
    def production_dependencies(self) -> dict[str, str]:
        return self._deps("require")

    @property
    def development_dependencies(self) -> dict[str, str]:
        return self._deps("require-dev")

    @property
    def dependencies(self) -> dict[str, str]:
        """require + require-dev，同名时 dev 覆盖"""
        return {**self.production_dependencies, **self.development_dependencies}

    @property
    def autoload_config(self) -> dict[str, Any]:
        value = self.data.get("autoload")
        return value if isinstance(value, dict) else {}

    @property
    def dev_autoload_config(self) -> dict[str, Any]:
        value = self.data.get("autoload-dev")
        return value if isinstance(value, dict) else {}

    def has_dependency(self, name: str) -> bool:
        return name in self.dependencies

    def get_constraint(self, name: str) -> str | None:
        return self.dependencies.get(name)

    def is_dev_dependency(self, name: str) -> bool:
        return name in self.development_dependencies

    # ------------------------------------------------------------------
    # 修改
    # ------------------------------------------------------------------

    def add_dependency(
        self, name: str, constraint: str | None = None, dev: bool = False,
    ) -> str:
        """加入依赖并按键排序写回，返回实际写入的约束"""
        constraint = constraint or "*"
        section = "require-dev" if dev else "require"
        deps = self._deps(section)
        deps[name] = constraint
        self.data[section] = dict(sorted(deps.items()))
        self.save()
        logger.info("清单已加入 %s: %s (%s)", section, name, constraint)
        return constraint

    def remove_dependency(self, name: str) -> bool:
        """从 require 与 require-dev 中移除；有变化时才写回"""
        removed = False
        for section in ("require", "require-dev"):
            deps = self.data.get(section)
            if isinstance(deps, dict) and name in deps:
                del deps[name]
                removed = True
        if removed:
            self.save()
            logger.info("清单已移除: %s", name)
        return removed

    def validate(self) -> list[str]:
        """结构校验，返回错误描述列表"""
        errors: list[str] = []
        name = self.data.get("name")
        if name is None:
            errors.append("缺少 'name' 字段")
        elif not isinstance(name, str) or not _PROJECT_NAME_RE.match(name):
            errors.append(f"项目名格式无效: {name}")
        for section in ("require", "require-dev", "autoload", "autoload-dev"):
            if section in self.data and not isinstance(self.data[section], dict):
                errors.append(f"'{section}' 段必须是对象")
        return errors
