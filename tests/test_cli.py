from __future__ import annotations

import pytest
from click.testing import CliRunner

from convox_installer import cli
from convox_installer.errors import MissingConfigError


@pytest.fixture
def cli_args(tmp_path):
    return ["--config-file", str(tmp_path / "config.json"), "--convox-dir", str(tmp_path / "convox")]


def test_error_exits_non_zero_with_a_message(cli_args, monkeypatch):
    def fail(installer):
        installer.results["config"] = {"success": False, "details": "stack_name is missing"}
        raise MissingConfigError("stack_name")

    monkeypatch.setattr(cli, "run_installation", fail)

    result = CliRunner().invoke(cli.main, cli_args)

    assert result.exit_code == 1
    assert "MissingConfigError: stack_name is missing from the config!" in result.output
    assert "Installation Results" in result.output


def test_success_shows_results(cli_args, monkeypatch, tmp_path):
    seen = {}

    def succeed(installer):
        seen["paths"] = installer.paths
        installer.results["install_convox"] = {"success": True, "details": "Convox rack demo already exists"}

    monkeypatch.setattr(cli, "run_installation", succeed)

    result = CliRunner().invoke(cli.main, cli_args + ["--debug"])

    assert result.exit_code == 0
    assert "Install Convox" in result.output
    assert seen["paths"].installer_config_file == tmp_path / "config.json"
    assert seen["paths"].convox_dir == tmp_path / "convox"
