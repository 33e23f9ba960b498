"""Tests for argument parsing, config overrides and the CLI entry point."""

import json
import os

import pytest

import cli_config
import compkg
from args import parse_args
from common.errors import CompkgError
from constants import Constants, ExitCodes


@pytest.fixture
def restore_constants(monkeypatch):
    """Let tests change tunables freely; monkeypatch puts the originals back."""
    for attr, _ in cli_config.TUNABLES.values():
        monkeypatch.setattr(Constants, attr, getattr(Constants, attr))
    for attr, _ in cli_config.TUNABLES.values():
        monkeypatch.delenv(cli_config.ENV_PREFIX + attr, raising=False)


@pytest.fixture
def quiet_cli(monkeypatch, tmp_path, restore_constants):
    monkeypatch.setattr(compkg, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.chdir(tmp_path)


class TestParseArgs:
    """Subcommands and their flags."""

    def test_install(self):
        args = parse_args(["install", "er@3.0.0", "etpl", "--save", "-y", "--root", "/tmp/app"])
        assert args.action == "install"
        assert args.components == ["er@3.0.0", "etpl"]
        assert args.SAVE_TO_DEP
        assert not args.SAVE_TO_DEV_DEP
        assert args.NO_CONFIRM
        assert args.ROOT == "/tmp/app"
        assert args.LOG_LEVEL == "INFO"

    def test_install_without_components(self):
        args = parse_args(["install", "--production"])
        assert args.components == []
        assert args.PRODUCTION

    def test_save_flags_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["install", "er", "--save", "--save-dev"])

    def test_uninstall_requires_name(self):
        with pytest.raises(SystemExit):
            parse_args(["uninstall"])
        args = parse_args(["uninstall", "er", "--ignore-dep"])
        assert args.IGNORE_DEP

    def test_ls_alias(self):
        args = parse_args(["ls", "-p", "er", "-u", "--depth", "1"])
        assert args.action == "list"
        assert args.PACKAGE == "er"
        assert args.AVAILABLE_UPDATE
        assert args.DEPTH == 1

    def test_search(self):
        args = parse_args(["search", "github:er", "--owner", "ecomfe"])
        assert args.key == "github:er"
        assert args.OWNER == "ecomfe"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestConfig:
    """Config file, environment and CLI layers."""

    def test_yaml_file(self, tmp_path, restore_constants):
        path = tmp_path / "conf.yml"
        path.write_text("registry_url_npm: https://registry.example.com\nrequest_timeout: 5\n")
        cli_config.apply_file_overrides(cli_config.load_config_file(str(path)))
        assert Constants.REGISTRY_URL_NPM == "https://registry.example.com"
        assert Constants.REQUEST_TIMEOUT == 5

    def test_json_file_nested_endpoint(self, tmp_path, restore_constants):
        path = tmp_path / "conf.json"
        path.write_text(json.dumps({"endpoint": {"type": "edp", "value": "http://edp"}}))
        cli_config.apply_file_overrides(cli_config.load_config_file(str(path)))
        assert Constants.DEFAULT_ENDPOINT_TYPE == "edp"
        assert Constants.DEFAULT_ENDPOINT_VALUE == "http://edp"

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "conf.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(CompkgError):
            cli_config.load_config_file(str(path))

    def test_env_overrides(self, restore_constants):
        cli_config.apply_env_overrides({"COMPKG_INSTALL_DIR": "vendor", "COMPKG_GITHUB_TOKEN": "t"})
        assert Constants.INSTALL_DIR == "vendor"
        assert Constants.GITHUB_TOKEN == "t"

    def test_invalid_env_value_ignored(self, restore_constants, caplog):
        before = Constants.REQUEST_TIMEOUT
        with caplog.at_level("WARNING"):
            cli_config.apply_env_overrides({"COMPKG_REQUEST_TIMEOUT": "soon"})
        assert Constants.REQUEST_TIMEOUT == before
        assert "Ignoring invalid environment value for request_timeout" in caplog.text

    def test_precedence(self, tmp_path, monkeypatch, restore_constants):
        (tmp_path / ".compkg.yml").write_text("install_dir: from_file\nmanifest_file: app.json\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("COMPKG_INSTALL_DIR", "from_env")
        args = parse_args(["install", "--install-dir", "from_cli"])
        cli_config.apply_config_overrides(args)
        assert Constants.INSTALL_DIR == "from_cli"
        assert Constants.MANIFEST_FILE == "app.json"

    def test_missing_explicit_config(self, tmp_path, restore_constants):
        args = parse_args(["list", "--config", str(tmp_path / "nope.yml")])
        with pytest.raises(CompkgError):
            cli_config.apply_config_overrides(args)


class TestMain:
    """Exit codes of the entry point."""

    def test_install_success(self, quiet_cli, project_dir, fake_registry):
        fake_registry.packages = {"A": {"1.0.0": {}}}
        code = compkg.main(["install", "A", "-y", "--root", str(project_dir)])
        assert code == ExitCodes.SUCCESS.value
        assert os.path.isdir(os.path.join(str(project_dir), "dep", "A"))

    def test_failure_without_flag_succeeds(self, quiet_cli, project_dir, fake_registry):
        code = compkg.main(["install", "missing", "-y", "--root", str(project_dir)])
        assert code == ExitCodes.SUCCESS.value

    def test_error_on_warnings(self, quiet_cli, project_dir, fake_registry):
        code = compkg.main(
            ["install", "missing", "-y", "--error-on-warnings", "--root", str(project_dir)]
        )
        assert code == ExitCodes.EXIT_WARNINGS.value

    def test_missing_root(self, quiet_cli, tmp_path):
        code = compkg.main(["list", "--root", str(tmp_path / "nope")])
        assert code == ExitCodes.FILE_ERROR.value

    def test_uninstall_not_installed(self, quiet_cli, project_dir):
        code = compkg.main(["uninstall", "nope", "-y", "--error-on-warnings", "--root", str(project_dir)])
        assert code == ExitCodes.SUCCESS.value
