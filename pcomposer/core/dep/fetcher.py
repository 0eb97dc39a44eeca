"""制品拉取器

职责:
- 下载 dist 归档到私有工作目录
- 校验和验证（dist.shasum，SHA-1）
- 解压 zip / tar(.gz)，拒绝越界路径
- 归档只包一层顶级目录时，把其内容上移一层，统一不同来源的目录布局
"""

from __future__ import annotations

import hashlib
import logging
import shutil
import tarfile
import uuid
import zipfile
from pathlib import Path

from pcomposer.core.exceptions import ArchiveError, ValidationError
from pcomposer.utils.net import HttpClient, get_http_client, validate_url_scheme

logger = logging.getLogger(__name__)


class ArchiveFetcher:
    """制品拉取器 - 下载 + 校验 + 解压"""

    def __init__(
        self,
        work_dir: Path,
        *,
        timeout: int = 30,
        http_client: HttpClient | None = None,
    ) -> None:
        self.work_dir = Path(work_dir)
        self.timeout = timeout
        self.http = http_client or get_http_client()

    def fetch(self, url: str, destination: Path, *, shasum: str = "") -> Path:
        """下载并解压到 destination，返回解压后的目录"""
        archive = self.download(url, shasum=shasum)
        try:
            self.extract(archive, destination)
        finally:
            archive.unlink(missing_ok=True)
        flatten_single_root(destination)
        return destination

    def download(self, url: str, *, shasum: str = "") -> Path:
        try:
            validate_url_scheme(url, context="dist download")
        except ValidationError as e:
            raise ArchiveError(str(e)) from e

        self.work_dir.mkdir(parents=True, exist_ok=True)
        dest = self.work_dir / f"package_{uuid.uuid4().hex[:12]}.archive"
        logger.info("  下载: %s", url)
        try:
            content = self.http.get(
                url, accept="application/octet-stream", timeout=self.timeout,
            )
        except ConnectionError as e:
            raise ArchiveError(f"下载失败: {url} - {e}") from e

        dest.write_bytes(content)
        if shasum:
            try:
                self._verify_checksum(dest, shasum)
            except ArchiveError:
                dest.unlink(missing_ok=True)
                raise
        return dest

    @staticmethod
    def _verify_checksum(path: Path, expected: str) -> None:
        sha1 = hashlib.sha1()  # nosec B324 - 与注册表 dist.shasum 一致
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                sha1.update(chunk)
        actual = sha1.hexdigest()
        if actual != expected.lower():
            raise ArchiveError(
                f"校验和不匹配 {path.name}: 期望 {expected}, 实际 {actual}",
            )
        logger.info("  校验和通过: %s", path.name)

    def extract(self, archive: Path, destination: Path) -> None:
        """解压 zip 或 tar 归档到 destination"""
        destination.mkdir(parents=True, exist_ok=True)
        try:
            if zipfile.is_zipfile(archive):
                _extract_zip(archive, destination)
            elif tarfile.is_tarfile(archive):
                _extract_tar(archive, destination)
            else:
                raise ArchiveError(f"无法识别的归档格式: {archive.name}")
        except (zipfile.BadZipFile, tarfile.TarError, OSError) as e:
            raise ArchiveError(f"解压失败 {archive.name}: {e}") from e


def _is_within(base: Path, target: Path) -> bool:
    try:
        target.resolve().relative_to(base.resolve())
    except ValueError:
        return False
    return True


def _extract_zip(archive: Path, destination: Path) -> None:
    with zipfile.ZipFile(archive) as zf:
        for member in zf.infolist():
            if not _is_within(destination, destination / member.filename):
                raise ArchiveError(f"归档成员路径越界: {member.filename}")
        zf.extractall(destination)


def _extract_tar(archive: Path, destination: Path) -> None:
    with tarfile.open(archive) as tf:
        for member in tf.getmembers():
            if not _is_within(destination, destination / member.name):
                raise ArchiveError(f"归档成员路径越界: {member.name}")
        if hasattr(tarfile, "data_filter"):
            tf.extractall(destination, filter="data")
        else:
            tf.extractall(destination)  # nosec B202 - 成员路径已校验


def flatten_single_root(destination: Path) -> bool:
    """解压结果恰好是一个子目录且没有其他文件时，把子目录内容上移一层"""
    entries = list(destination.iterdir())
    if len(entries) != 1 or not entries[0].is_dir() or entries[0].is_symlink():
        return False

    root = entries[0]
    # 先改名，避免子目录中有与根目录同名的条目
    staging = destination / f".flatten-{uuid.uuid4().hex[:8]}"
    root.rename(staging)
    for item in staging.iterdir():
        shutil.move(str(item), str(destination / item.name))
    staging.rmdir()
    logger.debug("  已展开顶级目录: %s", root.name)
    return True
