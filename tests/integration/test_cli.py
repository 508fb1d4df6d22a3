"""Integration tests for CLI commands."""

import json
from pathlib import Path
from typing import Any

import pytest
import yaml
from typer.testing import CliRunner

from dxt.cli.main import app
from dxt.config.parser import save_yaml


@pytest.fixture
def runner():
    """Get a CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_file(temp_dir: Path) -> Path:
    """Installer config pointing at temporary roots."""
    path = temp_dir / "config.yaml"
    save_yaml(
        path,
        {
            "extensions_dir": str(temp_dir / "extensions"),
            "temp_root": str(temp_dir / "tmp"),
        },
    )
    return path


def invoke(runner: CliRunner, config_file: Path, *args: str):
    """Invoke the CLI with the test config."""
    return runner.invoke(app, ["--config", str(config_file), *args])


class TestVersionCommand:
    """Tests for 'dxt version' command."""

    def test_version_shows_version(self, runner: CliRunner):
        """Version command shows version."""
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "dxt" in result.output


class TestInitCommand:
    """Tests for 'dxt init' command."""

    def test_init_writes_config(self, runner: CliRunner, temp_dir: Path, monkeypatch):
        """Init writes the selected roots."""
        monkeypatch.setenv("HOME", str(temp_dir))
        monkeypatch.delenv("DXT_EXTENSIONS_DIR", raising=False)
        monkeypatch.delenv("DXT_TEMP_ROOT", raising=False)
        path = temp_dir / "new.yaml"

        result = runner.invoke(
            app,
            ["--config", str(path), "init", "-e", str(temp_dir / "ext"), "-t", str(temp_dir)],
        )

        assert result.exit_code == 0
        config = yaml.safe_load(path.read_text())
        assert config["extensions_dir"] == str((temp_dir / "ext").resolve())
        assert config["temp_root"] == str(temp_dir.resolve())

    def test_init_refuses_overwrite(self, runner: CliRunner, config_file: Path):
        """Init fails if the config exists and --force is not given."""
        result = invoke(runner, config_file, "init")

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_init_force(self, runner: CliRunner, config_file: Path, temp_dir: Path):
        """--force overwrites the existing config."""
        result = invoke(runner, config_file, "init", "--force", "-e", str(temp_dir / "other"))

        assert result.exit_code == 0
        config = yaml.safe_load(config_file.read_text())
        assert config["extensions_dir"] == str((temp_dir / "other").resolve())


class TestInstallCommand:
    """Tests for 'dxt install' command."""

    def test_install(self, runner: CliRunner, config_file: Path, make_archive, temp_dir: Path):
        """Installs an archive."""
        result = invoke(runner, config_file, "install", str(make_archive()))

        assert result.exit_code == 0
        assert "Installed acme@1.0.0" in result.output
        assert (temp_dir / "extensions" / "server-acme" / "manifest.json").is_file()

    def test_install_failure_exit_code(
        self, runner: CliRunner, config_file: Path, make_archive, temp_dir: Path
    ):
        """A failed archive sets a non-zero exit code."""
        result = invoke(runner, config_file, "install", str(make_archive(manifest=None)))

        assert result.exit_code == 1
        assert "Failed to install" in result.output

    def test_install_continues_after_failure(
        self,
        runner: CliRunner,
        config_file: Path,
        make_archive,
        manifest_data: dict[str, Any],
        temp_dir: Path,
    ):
        """Later archives are still installed after one fails."""
        bad = make_archive(manifest="{broken")
        good = make_archive(manifest_data)

        result = invoke(runner, config_file, "install", str(bad), str(good))

        assert result.exit_code == 1
        assert (temp_dir / "extensions" / "server-acme").is_dir()

    def test_invalid_config(self, runner: CliRunner, temp_dir: Path, make_archive):
        """An unreadable config file is reported."""
        path = temp_dir / "bad.yaml"
        path.write_text("- not\n- a mapping\n")

        result = invoke(runner, path, "install", str(make_archive()))

        assert result.exit_code == 1
        assert "mapping" in result.output


class TestUninstallCommand:
    """Tests for 'dxt uninstall' command."""

    def test_uninstall(self, runner: CliRunner, config_file: Path, make_archive, temp_dir: Path):
        """Uninstall removes an installed extension."""
        invoke(runner, config_file, "install", str(make_archive()))

        result = invoke(runner, config_file, "uninstall", "acme")

        assert result.exit_code == 0
        assert "Uninstalled acme" in result.output
        assert not (temp_dir / "extensions" / "server-acme").exists()

    def test_uninstall_missing(self, runner: CliRunner, config_file: Path):
        """Uninstalling an unknown extension fails."""
        result = invoke(runner, config_file, "uninstall", "ghost")

        assert result.exit_code == 1
        assert "Extension not found: ghost" in result.output


class TestResolveCommand:
    """Tests for 'dxt resolve' command."""

    def test_resolve_prints_json(
        self,
        runner: CliRunner,
        config_file: Path,
        make_archive,
        manifest_data: dict[str, Any],
    ):
        """Resolve prints the launch configuration."""
        manifest_data["server"]["mcp_config"]["args"] = ["--key", "${user_config.api_key}"]
        invoke(runner, config_file, "install", str(make_archive(manifest_data)))

        result = invoke(runner, config_file, "resolve", "acme", "-c", "api_key=abc")

        assert result.exit_code == 0
        output = json.loads(result.output)
        assert output["command"] == "node"
        assert output["args"] == ["--key", "abc"]
        assert output["env"] == {"LOG_LEVEL": "info"}

    def test_resolve_not_installed(self, runner: CliRunner, config_file: Path):
        """Resolving an unknown extension fails."""
        result = invoke(runner, config_file, "resolve", "ghost")

        assert result.exit_code == 1
        assert "Could not resolve" in result.output

    def test_resolve_bad_config_value(self, runner: CliRunner, config_file: Path):
        """Config values must be key=value."""
        result = invoke(runner, config_file, "resolve", "acme", "-c", "novalue")

        assert result.exit_code != 0


class TestListCommand:
    """Tests for 'dxt list' command."""

    def test_list_empty(self, runner: CliRunner, config_file: Path):
        """List with nothing installed."""
        result = invoke(runner, config_file, "list")

        assert result.exit_code == 0
        assert "No extensions installed" in result.output

    def test_list_installed(self, runner: CliRunner, config_file: Path, make_archive):
        """List shows installed extensions."""
        invoke(runner, config_file, "install", str(make_archive()))

        result = invoke(runner, config_file, "list")

        assert result.exit_code == 0
        assert "acme" in result.output
        assert "1.0.0" in result.output


class TestInfoCommand:
    """Tests for 'dxt info' command."""

    def test_info(self, runner: CliRunner, config_file: Path, make_archive):
        """Info shows manifest details."""
        invoke(runner, config_file, "install", str(make_archive()))

        result = invoke(runner, config_file, "info", "acme")

        assert result.exit_code == 0
        assert "Acme Tools" in result.output
        assert "search" in result.output

    def test_info_not_installed(self, runner: CliRunner, config_file: Path):
        """Info on an unknown extension fails."""
        result = invoke(runner, config_file, "info", "ghost")

        assert result.exit_code == 1
        assert "Extension not installed" in result.output


class TestPurgeCommand:
    """Tests for 'dxt purge' command."""

    def test_purge(self, runner: CliRunner, config_file: Path, temp_dir: Path):
        """Purge removes the uploads directory."""
        (temp_dir / "tmp" / "dxt_uploads" / "dxt_leftover").mkdir(parents=True)

        result = invoke(runner, config_file, "purge")

        assert result.exit_code == 0
        assert not (temp_dir / "tmp" / "dxt_uploads").exists()
