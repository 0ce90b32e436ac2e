"""Shared pytest fixtures"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Callable, Mapping, Union

import pytest
from rich.console import Console

from convox_installer.command_runner import CommandResult, CommandRunner
from convox_installer.config import ConfigStore, PromptSpec
from convox_installer.convox_client import ConvoxClient
from convox_installer.paths import Paths
from convox_installer.prompts import Terminal

Response = Union[CommandResult, Callable[[str], CommandResult]]

DEMO_CONFIG = {
    "stack_name": "demo",
    "aws_region": "us-east-1",
    "instance_type": "t3.medium",
    "aws_access_key_id": "A",
    "aws_secret_access_key": "B",
}


class FakeRunner(CommandRunner):
    """Records every command instead of running it.

    ``responses`` maps a command prefix to a CommandResult (or a callable
    building one). Unmatched commands succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.responses: dict[str, Response] = {}

    def respond(self, prefix: str, stdout: str = "", exit_status: int = 0) -> None:
        self.responses[prefix] = CommandResult(prefix, exit_status, stdout=stdout)

    def run(self, command: str, env: Mapping[str, str] | None = None, cwd=None, capture: bool = False) -> CommandResult:
        self.calls.append({"command": command, "env": dict(env or {}), "cwd": cwd})
        for prefix in sorted(self.responses, key=len, reverse=True):
            if command.startswith(prefix):
                response = self.responses[prefix]
                result = response(command) if callable(response) else response
                return CommandResult(command, result.exit_status, stdout=result.stdout)
        return CommandResult(command, 0)

    @property
    def commands(self) -> list[str]:
        return [call["command"] for call in self.calls]


class Sleeper:
    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def paths(tmp_path: Path) -> Paths:
    return Paths(
        convox_dir=tmp_path / "convox",
        installer_config_file=tmp_path / ".installer_config.json",
        work_dir=tmp_path / "work",
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def sleeper() -> Sleeper:
    return Sleeper()


@pytest.fixture
def make_store(paths: Paths) -> Callable[..., ConfigStore]:
    def _make(values: dict | None = None, prompts: list[PromptSpec] | None = None) -> ConfigStore:
        store = ConfigStore(paths.installer_config_file, prompts or [])
        store.merge_overrides(values or {})
        return store

    return _make


@pytest.fixture
def make_client(paths: Paths, runner: FakeRunner, sleeper: Sleeper, make_store) -> Callable[..., ConvoxClient]:
    def _make(values: dict | None = None, http_get=None, clock=None) -> ConvoxClient:
        store = make_store({**DEMO_CONFIG, **(values or {})})
        kwargs = {"http_get": http_get} if http_get else {}
        if clock:
            kwargs["clock"] = clock
        return ConvoxClient(store, paths, runner=runner, sleep=sleeper, **kwargs)

    return _make


@pytest.fixture
def make_terminal() -> Callable[[str], Terminal]:
    """A Terminal that reads the given answers and records everything it prints"""

    def _make(answers: str) -> Terminal:
        console = Console(file=io.StringIO(), width=200, color_system=None, record=True)
        return Terminal(console=console, stream=io.StringIO(answers))

    return _make
