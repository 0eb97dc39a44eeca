"""锁文件管理

把每次解析出的包版本锁定到项目根目录的 pcomposer.lock，
保证重复安装得到完全相同的版本。

格式:
  {
    "packages":     {name: {name, version, dependencies, locked_at}},
    "packages-dev": {...},
    "generated":    "<每次保存时刷新>",
    "minimum-stability": "stable", "platform": {}, ...  (兼容字段，原样保留)
  }

文件不存在视为空骨架；JSON 损坏直接报错，不允许静默重置。
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pcomposer.core.dep.models import LockEntry, now_iso
from pcomposer.core.exceptions import CorruptLockFileError, StoreIOError
from pcomposer.utils.json_io import load_json, save_json

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = "pcomposer.lock"

PROD_SECTION = "packages"
DEV_SECTION = "packages-dev"


def _skeleton() -> dict[str, Any]:
    return {
        PROD_SECTION: {},
        DEV_SECTION: {},
        "platform": {},
        "platform-dev": {},
        "aliases": [],
        "minimum-stability": "stable",
        "stability-flags": {},
        "prefer-stable": False,
        "prefer-lowest": False,
        "platform-references": {},
        "plugin-api-version": "2.0.0",
        "generated": now_iso(),
    }


class LockFile:
    """锁文件管理器"""

    def __init__(self, project_root: str | Path, file_name: str = LOCK_FILE_NAME) -> None:
        self.project_root = Path(project_root)
        self.path = self.project_root / file_name
        self.data: dict[str, Any] = self.load()

    # ------------------------------------------------------------------
    # 读写
    # ------------------------------------------------------------------

    def load(self) -> dict[str, Any]:
        """从磁盘重新加载（覆盖内存中的状态）"""
        try:
            data = load_json(self.path)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptLockFileError(f"锁文件 JSON 无效 {self.path}: {e}") from e
        except OSError as e:
            raise StoreIOError(f"读取锁文件失败 {self.path}: {e}") from e

        if data is None:
            data = _skeleton()
        elif not isinstance(data, dict):
            raise CorruptLockFileError(f"锁文件顶层必须是对象: {self.path}")
        for section in (PROD_SECTION, DEV_SECTION):
            if not isinstance(data.get(section), dict):
                data[section] = {}
        self.data = data
        return data

    def _save(self) -> None:
        self.data["generated"] = now_iso()
        try:
            save_json(self.path, self.data)
        except OSError as e:
            raise StoreIOError(f"写入锁文件失败 {self.path}: {e}") from e

    def exists(self) -> bool:
        return self.path.exists()

    def delete(self) -> bool:
        """删除锁文件，内存状态重置为空骨架"""
        existed = self.path.exists()
        if existed:
            try:
                self.path.unlink()
            except OSError as e:
                raise StoreIOError(f"删除锁文件失败 {self.path}: {e}") from e
            logger.info("锁文件已删除: %s", self.path)
        self.data = _skeleton()
        return existed

    @property
    def generated(self) -> str:
        return str(self.data.get("generated", ""))

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def _section(self, dev: bool) -> dict[str, Any]:
        return self.data[DEV_SECTION if dev else PROD_SECTION]

    def get_locked_packages(self) -> dict[str, LockEntry]:
        """合并 packages 与 packages-dev（同名时 dev 覆盖）"""
        merged: dict[str, LockEntry] = {}
        for dev in (False, True):
            for name, info in self._section(dev).items():
                if isinstance(info, dict):
                    merged[name] = LockEntry.from_dict(name, info, dev=dev)
        return merged

    def get_locked_version(self, name: str) -> str | None:
        entry = self.get_locked_packages().get(name)
        return entry.version if entry else None

    def is_package_locked(self, name: str) -> bool:
        return self.get_locked_version(name) is not None

    def get_outdated_packages(self) -> list[LockEntry]:
        """只有约束、尚未解析出版本的占位条目"""
        return [e for e in self.get_locked_packages().values() if not e.resolved]

    def is_up_to_date(
        self, prod_deps: Mapping[str, str], dev_deps: Mapping[str, str] | None = None,
    ) -> bool:
        """清单中的包名集合与锁文件中的包名集合完全一致（不比较版本漂移）"""
        wanted = set(prod_deps) | set(dev_deps or {})
        return wanted == set(self.get_locked_packages())

    # ------------------------------------------------------------------
    # 修改
    # ------------------------------------------------------------------

    def update_from_manifest(
        self, prod_deps: Mapping[str, str], dev_deps: Mapping[str, str] | None = None,
    ) -> None:
        """用清单约束的占位条目替换全部条目（清空已解析版本）"""
        stamp = now_iso()
        for dev, deps in ((False, prod_deps), (True, dev_deps or {})):
            self.data[DEV_SECTION if dev else PROD_SECTION] = {
                name: LockEntry(name=name, constraint=str(c), locked_at=stamp).to_dict()
                for name, c in deps.items()
            }
        self._save()

    def lock_package(
        self,
        name: str,
        version: str,
        dependencies: Mapping[str, str] | None = None,
        dev: bool = False,
    ) -> LockEntry:
        """写入（或覆盖）单个包的锁定版本"""
        entry = LockEntry(
            name=name,
            version=version,
            dependencies=dict(dependencies or {}),
            locked_at=now_iso(),
            dev=dev,
        )
        self._section(not dev).pop(name, None)
        self._section(dev)[name] = entry.to_dict()
        self._save()
        logger.debug("已锁定 %s -> %s", name, version)
        return entry

    def unlock_package(self, name: str) -> bool:
        removed = False
        for dev in (False, True):
            if self._section(dev).pop(name, None) is not None:
                removed = True
        if removed:
            self._save()
        return removed
