"""Convox installer façade used by installation scripts"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable, Sequence, TypeVar

from rich.console import Console

from convox_installer.command_runner import CommandResult, CommandRunner
from convox_installer.config import DEFAULT_PROMPTS, ConfigStore, PromptSpec
from convox_installer.convox_client import ConvoxClient
from convox_installer.paths import Paths
from convox_installer.prompts import PromptEngine, Terminal
from convox_installer.requirements import Requirements
from convox_installer.steps import StepResult

CONSOLE: Console = Console()

T = TypeVar("T")


class ConvoxInstaller:
    """Collects the config, then runs each provisioning step through a ConvoxClient.

    Every step's outcome is recorded in ``results`` so the CLI can show a
    summary, including the step that failed.
    """

    def __init__(
        self,
        paths: Paths,
        prompts: Sequence[PromptSpec] = DEFAULT_PROMPTS,
        overrides: dict[str, Any] | None = None,
        terminal: Terminal | None = None,
        runner: CommandRunner | None = None,
        requirements: Requirements | None = None,
        sleep: Callable[[float], None] = time.sleep,
        environ: dict[str, str] | None = None,
    ) -> None:
        self.paths: Paths = paths
        self.prompts: list[PromptSpec] = list(prompts)
        self.config: ConfigStore = ConfigStore.build(
            paths.installer_config_file, self.prompts, environ=environ, overrides=overrides
        )
        self.terminal: Terminal = terminal or Terminal()
        self.requirements: Requirements = requirements or Requirements()
        self.client: ConvoxClient = ConvoxClient(self.config, paths, runner=runner, sleep=sleep)

        self.results: dict[str, dict[str, Any]] = {}

    def _step(self, name: str, action: Callable[[], T]) -> T:
        try:
            result: T = action()
        except Exception as e:
            CONSOLE.print(f"[red]❌ {name.replace('_', ' ').capitalize()} failed: {e.__class__.__name__}: {e}[/red]")
            self.results[name] = {
                "success": False,
                "details": f"{e.__class__.__name__}: {e}",
            }
            raise

        details: Any = result.details if isinstance(result, StepResult) else result
        self.results[name] = {"success": True, "details": "" if details is None else details}
        return result

    # Configuration

    def ensure_requirements(self) -> None:
        self._step("requirements", self.requirements.ensure_requirements)

    def prompt_for_config(self) -> dict[str, Any]:
        engine = PromptEngine(self.prompts, self.config, self.terminal)
        self._step("config", engine.prompt_for_config)
        return self.config.values

    # Rack

    def backup_convox_config(self) -> list[Path]:
        return self._step("backup_convox_config", self.client.backup_convox_config)

    def install_convox(self) -> StepResult:
        return self._step("install_convox", self.client.install_convox)

    def validate_convox_rack_and_write_current(self) -> Path:
        return self._step("current_rack", self.client.validate_convox_rack_and_write_current)

    def validate_convox_rack_api(self) -> dict[str, Any]:
        return self._step("rack_api", self.client.validate_convox_rack_api)

    # App

    def create_convox_app(self) -> StepResult:
        return self._step("convox_app", self.client.create_convox_app)

    def set_default_app_for_directory(self) -> Path:
        return self._step("default_app", self.client.set_default_app_for_directory)

    def add_docker_registry(self) -> StepResult:
        return self._step("docker_registry", self.client.add_docker_registry)

    # Terraform resources

    def add_s3_bucket(self) -> StepResult:
        return self._step("s3_bucket", self.client.add_s3_bucket)

    def add_rds_database(self) -> StepResult:
        return self._step("rds_database", self.client.add_rds_database)

    def add_elasticache_cluster(self) -> StepResult:
        return self._step("elasticache_cluster", self.client.add_elasticache_cluster)

    def apply_terraform_update(self) -> StepResult:
        return self._step("terraform_update", self.client.apply_terraform_update)

    def wait_for_s3_bucket(self) -> StepResult:
        return self._step("s3_bucket_ready", self.client.wait_for_s3_bucket)

    def set_s3_bucket_cors_policy(self) -> StepResult:
        return self._step("s3_cors_policy", self.client.set_s3_bucket_cors_policy)

    def s3_bucket_details(self) -> dict[str, str]:
        return self.client.s3_bucket_details()

    def rds_details(self) -> dict[str, str]:
        return self.client.rds_details()

    def elasticache_details(self) -> dict[str, str]:
        return self.client.elasticache_details()

    # App runtime

    def default_service_domain_name(self) -> str:
        return self.client.default_service_domain_name()

    def run_convox_command(self, cmd: str, env: dict[str, str] | None = None) -> CommandResult:
        return self.client.run_convox_command(cmd, env=env)

    def wait_for_url(self, url: str, timeout: float = 300, delay: float = 5) -> StepResult:
        return self._step("site_reachable", lambda: self.client.wait_for_url(url, timeout=timeout, delay=delay))
