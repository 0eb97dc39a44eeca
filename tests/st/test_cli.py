"""命令行端到端测试（CliRunner + 假注册表）"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

import pcomposer.core.config as cfgmod
from pcomposer import __version__
from pcomposer.cli import main
from pcomposer.services.container import reset_container
from pcomposer.utils.logger import reset_logging

REGISTRY = "https://repo.test/packages"


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(cfgmod, "_current", None)
    monkeypatch.delenv(cfgmod.CONFIG_ENV, raising=False)
    monkeypatch.setenv("PCOMPOSER_LOG_LEVEL", "WARNING")
    yield
    reset_logging()
    reset_container()


@pytest.fixture()
def cli(tmp_path: Path, project_dir: Path, fake_http):
    """返回调用函数: cli("install") -> Result"""
    config = tmp_path / "config.yml"
    config.write_text(f"store_dir: {tmp_path / 'store'}\nregistry_url: {REGISTRY}\n")
    for v in ("1.0.0", "1.1.0", "2.0.0"):
        fake_http.publish("vendor/pkg", v)
    runner = CliRunner()

    def _invoke(*args: str):
        return runner.invoke(main, ["-c", str(config), "-d", str(project_dir), *args])
    return _invoke


class TestBasics:
    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_unknown_command(self, cli) -> None:
        result = cli("frobnicate")
        assert result.exit_code == 2
        assert "No such command" in result.output

    def test_missing_argument(self, cli) -> None:
        result = cli("require")
        assert result.exit_code == 2
        assert "Missing argument" in result.output

    def test_domain_error_exit_code(self, cli) -> None:
        result = cli("install")
        assert result.exit_code == 1
        assert "[MANIFEST_MISSING]" in result.output

    def test_remove_rejects_parent_directory(
        self, cli, project_dir: Path, write_manifest,
    ) -> None:
        write_manifest({"require": {}})
        result = cli("remove", "..")
        assert result.exit_code == 1
        assert "[VALIDATION_ERROR]" in result.output
        assert (project_dir / "composer.json").is_file()

    def test_bad_config_file(self, tmp_path: Path) -> None:
        config = tmp_path / "bad.yml"
        config.write_text("store_dir: [unclosed\n")
        result = CliRunner().invoke(main, ["-c", str(config), "stats"])
        assert result.exit_code == 1
        assert "[CONFIG_ERROR]" in result.output


class TestWorkflow:
    def test_install_list_clear_remove(
        self, cli, project_dir: Path, write_manifest, fake_http,
    ) -> None:
        write_manifest({"name": "acme/app", "require": {"vendor/pkg": "^1.0"}})

        result = cli("install")
        assert result.exit_code == 0, result.output
        assert "vendor/pkg: 1.1.0" in result.output
        assert (project_dir / "vendor" / "vendor" / "pkg").is_symlink()
        assert (project_dir / "pcomposer.lock").is_file()

        fake_http.calls.clear()
        result = cli("install")
        assert result.exit_code == 0
        assert "锁定版本" in result.output
        assert fake_http.calls == []

        result = cli("list")
        assert "vendor/pkg: ^1.0 (已安装: 1.1.0)" in result.output

        assert cli("clear-cache").exit_code == 0
        result = cli("list")
        assert "vendor/pkg: ^1.0" in result.output
        assert "已安装" not in result.output

        result = cli("remove", "vendor/pkg")
        assert result.exit_code == 0
        assert "已移除: vendor/pkg" in result.output
        assert not (project_dir / "vendor" / "vendor" / "pkg").exists()
        manifest = json.loads((project_dir / "composer.json").read_text())
        assert manifest == {"name": "acme/app", "require": {}}

    def test_require_and_show(self, cli, project_dir: Path) -> None:
        result = cli("require", "vendor/pkg", "~1.0.0")
        assert result.exit_code == 0, result.output
        assert "vendor/pkg: 1.0.0" in result.output

        result = cli("show", "vendor/pkg")
        assert "版本:   1.0.0" in result.output
        assert "已链接: 是" in result.output

        result = cli("show", "vendor/none")
        assert "全局存储中没有包" in result.output

    def test_require_dev_flag(self, cli, project_dir: Path) -> None:
        assert cli("require", "vendor/pkg", "--dev").exit_code == 0
        manifest = json.loads((project_dir / "composer.json").read_text())
        assert manifest["require-dev"] == {"vendor/pkg": "*"}
        assert "[dev]" in cli("list").output

    def test_lock_unlock_update(self, cli, write_manifest, fake_http) -> None:
        write_manifest({"require": {"vendor/pkg": "^1.0"}})
        assert "没有锁文件" in cli("lock").output
        cli("install")

        result = cli("lock")
        assert "vendor/pkg: 1.1.0" in result.output

        fake_http.publish("vendor/pkg", "1.3.0")
        result = cli("update")
        assert result.exit_code == 0
        assert "vendor/pkg: 1.3.0" in result.output

        assert "锁文件已删除" in cli("unlock").output
        assert "没有锁文件" in cli("unlock").output

    def test_maintenance_commands(self, cli, project_dir: Path, write_manifest) -> None:
        write_manifest({"require": {"vendor/pkg": "^1.0"}})
        cli("install")

        result = cli("dump-autoload")
        assert result.exit_code == 0
        assert "autoload.php" in result.output

        result = cli("stats")
        assert "包数量:   1" in result.output

        assert "没有需要修复的链接" in cli("repair-links").output
