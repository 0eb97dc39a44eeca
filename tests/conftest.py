"""测试公共夹具 — 假注册表 / 假下载源、隔离的配置与存储目录"""

from __future__ import annotations

import hashlib
import io
import json
import zipfile
from pathlib import Path
from typing import Any

import pytest

import pcomposer.core.config as cfgmod
import pcomposer.utils.net as netmod
from pcomposer.services.container import reset_container

REGISTRY_BASE = "https://repo.test/packages"
DIST_BASE = "https://dist.test"


def build_zip(files: dict[str, str], root: str | None = None) -> bytes:
    """内存中构造 zip；root 非空时所有文件包在一层顶级目录里"""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for rel, content in files.items():
            arcname = f"{root}/{rel}" if root else rel
            zf.writestr(arcname, content)
    return buf.getvalue()


class FakeRegistryHttp:
    """同时充当注册表元数据接口和 dist 下载服务器，记录每次请求"""

    def __init__(self) -> None:
        self.packages: dict[str, dict[str, dict[str, Any]]] = {}
        self.archives: dict[str, bytes] = {}
        self.raw: dict[str, bytes] = {}
        self.calls: list[str] = []

    def publish(
        self,
        name: str,
        version: str,
        *,
        require: dict[str, str] | None = None,
        files: dict[str, str] | None = None,
        wrap: bool = True,
        with_shasum: bool = False,
    ) -> str:
        """发布一个版本，返回其 dist URL"""
        if files is None:
            files = {
                "composer.json": json.dumps({"name": name, "require": require or {}}),
                "src/Lib.php": "<?php\n",
            }
        root = f"{name.replace('/', '-')}-{version}" if wrap else None
        data = build_zip(files, root=root)
        url = f"{DIST_BASE}/{name}/{version}.zip"
        self.archives[url] = data

        dist: dict[str, Any] = {"url": url, "type": "zip"}
        if with_shasum:
            dist["shasum"] = hashlib.sha1(data).hexdigest()
        self.packages.setdefault(name, {})[version] = {
            "name": name,
            "version": version,
            "dist": dist,
            "require": dict(require or {}),
        }
        return url

    def get(
        self,
        url: str,
        *,
        accept: str = "application/json",
        timeout: int | None = None,
    ) -> bytes:
        self.calls.append(url)
        if url in self.raw:
            return self.raw[url]
        if url in self.archives:
            return self.archives[url]
        prefix = REGISTRY_BASE + "/"
        if url.startswith(prefix) and url.endswith(".json"):
            name = url[len(prefix):-len(".json")]
            if name in self.packages:
                body = {"package": {"name": name, "versions": self.packages[name]}}
                return json.dumps(body).encode()
        raise ConnectionError(f"404 Not Found: {url}")

    @property
    def registry_calls(self) -> list[str]:
        return [c for c in self.calls if c.startswith(REGISTRY_BASE)]

    @property
    def download_calls(self) -> list[str]:
        return [c for c in self.calls if c.startswith(DIST_BASE)]


@pytest.fixture()
def make_zip():
    return build_zip


@pytest.fixture()
def fake_http(monkeypatch: pytest.MonkeyPatch) -> FakeRegistryHttp:
    """替换全局默认 HTTP 客户端"""
    client = FakeRegistryHttp()
    monkeypatch.setattr(netmod, "_default_client", client)
    return client


@pytest.fixture()
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture()
def pc_config(
    tmp_path: Path, project_dir: Path, monkeypatch: pytest.MonkeyPatch,
) -> cfgmod.Config:
    """独立的存储目录 + 项目目录 + 假注册表地址"""
    cfg = cfgmod.Config(
        store_dir=str(tmp_path / "store"),
        project_dir=str(project_dir),
        registry_url=REGISTRY_BASE,
    )
    monkeypatch.setattr(cfgmod, "_current", cfg)
    reset_container()
    yield cfg
    reset_container()


@pytest.fixture()
def write_manifest(project_dir: Path):
    def _write(data: dict[str, Any]) -> Path:
        path = project_dir / "composer.json"
        path.write_text(json.dumps(data, indent=4), encoding="utf-8")
        return path
    return _write
