"""ServiceContainer 单元测试"""

from __future__ import annotations

from pathlib import Path

import pytest

import pcomposer.core.config as cfgmod
from pcomposer.services.container import (
    ServiceContainer,
    get_container,
    reset_container,
)


@pytest.fixture(autouse=True)
def _setup_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """确保测试有独立的存储和项目目录"""
    project = tmp_path / "project"
    project.mkdir()
    cfg = cfgmod.Config(
        store_dir=str(tmp_path / "store"),
        project_dir=str(project),
        vendor_dir="libs",
    )
    monkeypatch.setattr(cfgmod, "_current", cfg)
    reset_container()
    yield
    reset_container()


class TestServiceContainer:
    def test_lazy_loading(self) -> None:
        c = ServiceContainer()
        assert len(c._instances) == 0
        _ = c.store
        assert "store" in c._instances
        assert "registry" not in c._instances

    def test_shared_instances(self) -> None:
        c = ServiceContainer()
        assert c.store is c.store
        assert c.manifest is c.manifest

    def test_deps_shares_components(self) -> None:
        c = ServiceContainer()
        deps = c.deps
        assert deps.store is c.store
        assert deps.registry is c.registry
        assert deps.lockfile is c.lockfile
        assert deps.linker is c.linker
        assert deps.linker.store is c.store
        assert deps.autoload.manifest is c.manifest

    def test_paths_from_config(self, tmp_path: Path) -> None:
        c = ServiceContainer()
        assert c.project_dir == (tmp_path / "project").resolve()
        assert c.vendor_dir == c.project_dir / "libs"
        assert c.linker.vendor_dir == c.vendor_dir
        assert c.store.root == tmp_path / "store"
        assert c.lockfile.path == c.project_dir / "pcomposer.lock"

    def test_explicit_config(self, tmp_path: Path) -> None:
        cfg = cfgmod.Config(
            store_dir=str(tmp_path / "other"),
            project_dir=str(tmp_path),
            registry_url="https://mirror.test/packages",
        )
        c = ServiceContainer(config=cfg)
        assert c.config is cfg
        assert c.registry.base_url == "https://mirror.test/packages"
        assert c.store.root == tmp_path / "other"


class TestGlobalContainer:
    def test_singleton(self) -> None:
        assert get_container() is get_container()

    def test_reset(self) -> None:
        c1 = get_container()
        reset_container()
        assert get_container() is not c1
