"""制品下载 / 校验 / 解压测试"""

from __future__ import annotations

import hashlib
import io
import tarfile
from pathlib import Path

import pytest

from pcomposer.core.dep.fetcher import ArchiveFetcher, flatten_single_root
from pcomposer.core.exceptions import ArchiveError

URL = "https://dist.test/vendor/pkg/1.0.0.zip"


@pytest.fixture()
def fetcher(tmp_path: Path, fake_http) -> ArchiveFetcher:
    return ArchiveFetcher(tmp_path / "work", http_client=fake_http)


class TestFetch:
    def test_wrapped_archive_flattened(
        self, fetcher: ArchiveFetcher, fake_http, make_zip, tmp_path: Path,
    ) -> None:
        fake_http.archives[URL] = make_zip(
            {"composer.json": "{}", "src/A.php": "<?php"}, root="vendor-pkg-abc123",
        )
        dest = fetcher.fetch(URL, tmp_path / "out")
        assert (dest / "composer.json").is_file()
        assert (dest / "src" / "A.php").is_file()
        assert not (dest / "vendor-pkg-abc123").exists()

    def test_unwrapped_archive_untouched(
        self, fetcher: ArchiveFetcher, fake_http, make_zip, tmp_path: Path,
    ) -> None:
        fake_http.archives[URL] = make_zip({"composer.json": "{}", "README": "x"})
        dest = fetcher.fetch(URL, tmp_path / "out")
        assert sorted(p.name for p in dest.iterdir()) == ["README", "composer.json"]

    def test_archive_removed_after_extract(
        self, fetcher: ArchiveFetcher, fake_http, make_zip, tmp_path: Path,
    ) -> None:
        fake_http.archives[URL] = make_zip({"a.txt": "1"})
        fetcher.fetch(URL, tmp_path / "out")
        assert list(fetcher.work_dir.iterdir()) == []

    def test_tar_gz(self, fetcher: ArchiveFetcher, fake_http, tmp_path: Path) -> None:
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w:gz") as tf:
            data = b"<?php"
            info = tarfile.TarInfo("pkg-1.0/src/A.php")
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
        fake_http.archives[URL] = buf.getvalue()

        dest = fetcher.fetch(URL, tmp_path / "out")
        assert (dest / "src" / "A.php").read_bytes() == b"<?php"


class TestChecksum:
    def test_matching_shasum(
        self, fetcher: ArchiveFetcher, fake_http, make_zip, tmp_path: Path,
    ) -> None:
        data = make_zip({"a.txt": "1"})
        fake_http.archives[URL] = data
        fetcher.fetch(URL, tmp_path / "out", shasum=hashlib.sha1(data).hexdigest().upper())
        assert (tmp_path / "out" / "a.txt").exists()

    def test_mismatch_raises(
        self, fetcher: ArchiveFetcher, fake_http, make_zip, tmp_path: Path,
    ) -> None:
        fake_http.archives[URL] = make_zip({"a.txt": "1"})
        with pytest.raises(ArchiveError, match="校验和不匹配"):
            fetcher.fetch(URL, tmp_path / "out", shasum="0" * 40)
        assert list(fetcher.work_dir.iterdir()) == []


class TestFailures:
    def test_download_failure(self, fetcher: ArchiveFetcher, tmp_path: Path) -> None:
        with pytest.raises(ArchiveError, match="下载失败"):
            fetcher.fetch(URL, tmp_path / "out")

    def test_not_an_archive(self, fetcher: ArchiveFetcher, fake_http, tmp_path: Path) -> None:
        fake_http.archives[URL] = b"this is not an archive"
        with pytest.raises(ArchiveError, match="无法识别"):
            fetcher.fetch(URL, tmp_path / "out")

    def test_non_http_scheme(self, fetcher: ArchiveFetcher, tmp_path: Path) -> None:
        with pytest.raises(ArchiveError):
            fetcher.fetch("file:///etc/passwd", tmp_path / "out")

    def test_path_traversal_rejected(
        self, fetcher: ArchiveFetcher, fake_http, make_zip, tmp_path: Path,
    ) -> None:
        fake_http.archives[URL] = make_zip({"../evil.txt": "x"})
        with pytest.raises(ArchiveError, match="越界"):
            fetcher.fetch(URL, tmp_path / "out")
        assert not (tmp_path / "evil.txt").exists()


class TestFlatten:
    def test_single_dir_with_sibling_file_kept(self, tmp_path: Path) -> None:
        (tmp_path / "inner").mkdir()
        (tmp_path / "LICENSE").write_text("x")
        assert flatten_single_root(tmp_path) is False
        assert (tmp_path / "inner").is_dir()

    def test_nested_name_collision(self, tmp_path: Path) -> None:
        root = tmp_path / "pkg"
        (root / "pkg").mkdir(parents=True)
        (root / "pkg" / "a.txt").write_text("1")
        assert flatten_single_root(tmp_path) is True
        assert (tmp_path / "pkg" / "a.txt").read_text() == "1"
