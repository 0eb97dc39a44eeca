"""配置加载测试"""

from __future__ import annotations

from pathlib import Path

import pytest

import pcomposer.core.config as cfgmod
from pcomposer.core.config import Config, find_project_root, get_config, init_config
from pcomposer.core.exceptions import ConfigError


class TestConfig:
    def test_defaults(self) -> None:
        cfg = Config()
        assert cfg.registry_url == "https://packagist.org/packages"
        assert cfg.lock_file == "pcomposer.lock"
        assert cfg.platform_prefixes == ["php", "ext-", "lib-", "composer-plugin-api"]
        assert cfg.resolve_store_dir().parts[-2:] == (".pcomposer", "store")

    def test_from_missing_file(self, tmp_path: Path) -> None:
        assert Config.from_file(tmp_path / "none.yml") == Config()

    def test_from_file_with_extra(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text(
            "store_dir: /data/store\n"
            "http_timeout: 5\n"
            "mirror: cn\n"
        )
        cfg = Config.from_file(path)
        assert cfg.store_dir == "/data/store"
        assert cfg.http_timeout == 5
        assert cfg.extra == {"mirror": "cn"}
        assert cfg.to_dict()["http_timeout"] == 5

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text("store_dir: [unclosed\n")
        with pytest.raises(ConfigError):
            Config.from_file(path)

    def test_resolve_dirs(self, tmp_path: Path) -> None:
        cfg = Config(project_dir=str(tmp_path), store_dir=str(tmp_path / "s"))
        assert cfg.resolve_project_dir() == tmp_path.resolve()
        assert cfg.resolve_vendor_dir() == tmp_path.resolve() / "vendor"
        assert cfg.resolve_store_dir() == tmp_path / "s"

        cfg.vendor_dir = str(tmp_path / "elsewhere")
        assert cfg.resolve_vendor_dir() == tmp_path / "elsewhere"


class TestProjectRoot:
    def test_walks_up_to_manifest(self, tmp_path: Path) -> None:
        (tmp_path / "composer.json").write_text("{}")
        nested = tmp_path / "src" / "deep"
        nested.mkdir(parents=True)
        assert find_project_root(nested) == tmp_path.resolve()

    def test_falls_back_to_start(self, tmp_path: Path) -> None:
        assert find_project_root(tmp_path, "no-such-manifest.json") == tmp_path.resolve()


class TestGlobalConfig:
    def test_init_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "config.yml"
        path.write_text("vendor_dir: libs\n")
        monkeypatch.setenv(cfgmod.CONFIG_ENV, str(path))
        monkeypatch.setattr(cfgmod, "_current", None)

        cfg = init_config()
        assert cfg.vendor_dir == "libs"
        assert get_config() is cfg

    def test_get_config_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cfgmod, "_current", None)
        assert get_config().vendor_dir == "vendor"
