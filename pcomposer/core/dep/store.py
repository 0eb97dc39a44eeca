"""全局包存储

所有项目共享的一份 (name, version) 包目录，避免重复下载:

  ~/.pcomposer/store/
    metadata.json              索引: "name@version" -> PackageRecord
    vendor/pkg/1.1.0/...       包内容: <vendor>/<package>/<版本>（版本号经百分号编码）

不变量:
  - 索引条目只会在文件完整复制之后写入，读者看不到半成品
  - 索引损坏或缺失视为空索引（自愈）；目录被外部删除的条目视为不存在
  - 没有跨进程锁，同一时间只允许一个进程写存储
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from urllib.parse import quote

from pcomposer.core.dep.models import (
    PackageRecord,
    StoreStats,
    now_iso,
    package_key,
)
from pcomposer.core.dep.version import max_version
from pcomposer.core.dep.registry import validate_package_name
from pcomposer.core.exceptions import StoreIOError, ValidationError
from pcomposer.utils.fs import copy_tree, directory_size, remove_path
from pcomposer.utils.json_io import load_json, save_json

logger = logging.getLogger(__name__)

INDEX_FILE = "metadata.json"


def path_segment(value: str) -> str:
    """把版本号等任意字符串编码为单层目录名（可逆，不同输入不会撞名）"""
    if value in ("", ".", ".."):
        raise ValidationError(f"无法用作目录名: {value!r}")
    return quote(value, safe="")


class GlobalStore:
    """全局包存储 - 本地磁盘 + JSON 索引"""

    def __init__(self, store_dir: str = "") -> None:
        if not store_dir:
            from pcomposer.core.config import get_config
            store_dir = str(get_config().resolve_store_dir())
        self.root = Path(store_dir).expanduser()
        self.index_path = self.root / INDEX_FILE
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreIOError(f"无法创建全局存储目录 {self.root}: {e}") from e
        self._index: dict[str, PackageRecord] = self._load_index()

    # ------------------------------------------------------------------
    # 索引读写
    # ------------------------------------------------------------------

    def _load_index(self) -> dict[str, PackageRecord]:
        try:
            data = load_json(self.index_path)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("存储索引损坏，按空索引处理: %s (%s)", self.index_path, e)
            return {}
        except OSError as e:
            raise StoreIOError(f"读取存储索引失败 {self.index_path}: {e}") from e

        if not isinstance(data, dict):
            if data is not None:
                logger.warning("存储索引格式异常，按空索引处理: %s", self.index_path)
            return {}

        index: dict[str, PackageRecord] = {}
        for key, info in data.items():
            try:
                index[key] = PackageRecord.from_dict(info)
            except (KeyError, TypeError, AttributeError):
                logger.warning("忽略无效的索引条目: %s", key)
        return index

    def _save_index(self) -> None:
        try:
            save_json(
                self.index_path,
                {key: rec.to_dict() for key, rec in self._index.items()},
            )
        except OSError as e:
            raise StoreIOError(f"写入存储索引失败 {self.index_path}: {e}") from e

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def has_package(self, name: str, version: str) -> bool:
        """索引中有记录且目录仍然存在"""
        rec = self._index.get(package_key(name, version))
        return rec is not None and Path(rec.path).is_dir()

    def get_latest_version(self, name: str) -> str | None:
        prefix = f"{name}@"
        return max_version(
            rec.version for key, rec in self._index.items() if key.startswith(prefix)
        )

    def get_record(self, name: str, version: str | None = None) -> PackageRecord | None:
        """精确查找；不指定版本时返回存储中的最新版本"""
        ver = version or self.get_latest_version(name)
        if ver is None:
            return None
        return self._index.get(package_key(name, ver))

    def get_path(self, name: str, version: str | None = None) -> Path | None:
        rec = self.get_record(name, version)
        return Path(rec.path) if rec else None

    def list_records(self) -> list[PackageRecord]:
        return [self._index[k] for k in sorted(self._index)]

    def package_path(self, name: str, version: str) -> Path:
        """(name, version) 的确定性存储路径: root/<vendor>/<package>/<version>"""
        return self._package_dir(name) / path_segment(version)

    def _package_dir(self, name: str) -> Path:
        validate_package_name(name)
        vendor, package = name.split("/", 1)
        return self.root / vendor / package

    # ------------------------------------------------------------------
    # 写入 / 删除
    # ------------------------------------------------------------------

    def store(
        self,
        name: str,
        version: str,
        source_path: Path,
        dependencies: dict[str, str] | None = None,
    ) -> Path:
        """把已解压的包目录复制进存储并登记索引，返回最终路径

        重复存储同一 (name, version) 会覆盖原目录，索引中只保留一条记录。
        """
        source = Path(source_path)
        if not source.is_dir():
            raise StoreIOError(f"待存储的包目录不存在: {source}")

        dest = self.package_path(name, version)
        if dest.resolve() == source.resolve():
            raise StoreIOError(f"源目录与存储目录相同: {source}")
        try:
            if dest.exists() or dest.is_symlink():
                remove_path(dest)
            copy_tree(source, dest)
        except (OSError, shutil.Error) as e:
            raise StoreIOError(f"复制包到全局存储失败 {name}@{version}: {e}") from e

        rec = PackageRecord(
            name=name,
            version=version,
            path=str(dest),
            dependencies=dict(dependencies or {}),
            installed_at=now_iso(),
        )
        self._index[rec.key] = rec
        self._save_index()
        logger.info("已存入全局存储: %s -> %s", rec.key, dest)
        return dest

    def remove(self, name: str, version: str | None = None) -> bool:
        """删除指定版本；不指定版本时删除该包的全部版本"""
        if version:
            key = package_key(name, version)
            keys = [key] if key in self._index else []
        else:
            prefix = f"{name}@"
            keys = [k for k in self._index if k.startswith(prefix)]
        if not keys:
            return False

        for key in keys:
            path = Path(self._index[key].path)
            try:
                remove_path(path)
            except OSError as e:
                raise StoreIOError(f"删除包目录失败 {path}: {e}") from e
            del self._index[key]
            logger.info("已从全局存储移除: %s", key)

        # 清理空的 <package> 与 <vendor> 目录
        package_dir = self._package_dir(name)
        for d in (package_dir, package_dir.parent):
            if d.is_dir() and not any(d.iterdir()):
                d.rmdir()

        self._save_index()
        return True

    def clear_cache(self) -> None:
        """删除整个存储根目录并重置索引"""
        try:
            if self.root.exists():
                shutil.rmtree(self.root)
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreIOError(f"清空全局存储失败 {self.root}: {e}") from e
        self._index = {}
        self._save_index()
        logger.info("全局存储已清空: %s", self.root)

    # ------------------------------------------------------------------
    # 统计
    # ------------------------------------------------------------------

    def stats(self) -> StoreStats:
        total = 0
        by_vendor: dict[str, int] = {}
        for rec in self._index.values():
            path = Path(rec.path)
            if path.is_dir():
                total += directory_size(path)
            by_vendor[rec.vendor] = by_vendor.get(rec.vendor, 0) + 1
        return StoreStats(
            package_count=len(self._index),
            total_bytes=total,
            counts_by_vendor=by_vendor,
            store_path=str(self.root),
        )
