"""Idempotent provisioning steps for a Convox rack and its AWS resources"""

from __future__ import annotations

import json
import logging
import os
import shlex
import time
from pathlib import Path
from typing import Any, Callable

import requests
from jinja2 import Environment, PackageLoader, StrictUndefined
from rich.console import Console

from convox_installer import terraform_state
from convox_installer.aws_client import AWSClient, cors_policies_equal
from convox_installer.command_runner import CommandResult, CommandRunner
from convox_installer.config import ConfigStore
from convox_installer.errors import ResourceNotFoundError, ValidationMismatchError
from convox_installer.paths import Paths
from convox_installer.poller import poll_until, poll_until_elapsed
from convox_installer.rack_files import RackFiles
from convox_installer.steps import ProvisioningStep, StepResult, StepStatus
from convox_installer.terraform_manager import TerraformManager
from convox_installer.terraform_state import ResourceHandle

CONSOLE: Console = Console()
LOGGER = logging.getLogger(__name__)

TEMPLATE_DEFAULTS: dict[str, Any] = {
    "database_name": "app",
    "database_instance_class": "db.t3.medium",
    "database_allocated_storage": 20,
    "cache_node_type": "cache.t3.medium",
}


class ConvoxClient:
    """Every step starts by checking whether its resource already exists, so the
    whole installation can be re-run after a failure.
    """

    def __init__(
        self,
        config: ConfigStore,
        paths: Paths,
        runner: CommandRunner | None = None,
        sleep: Callable[[float], None] = time.sleep,
        http_get: Callable[..., Any] = requests.get,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config: ConfigStore = config
        self.paths: Paths = paths
        self.runner: CommandRunner = runner or CommandRunner()
        self.sleep: Callable[[float], None] = sleep
        self.http_get: Callable[..., Any] = http_get
        self.clock: Callable[[], float] = clock
        self.rack_files: RackFiles = RackFiles(paths)
        self.templates: Environment = Environment(
            loader=PackageLoader("convox_installer", "templates"),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self._rack_data: dict[str, Any] | None = None
        self._default_service_domain_name: str | None = None

    # ------------------------------------------------------------------
    # Helpers

    @property
    def stack_name(self) -> str:
        return self.config.get("stack_name")

    @property
    def rack_dir(self) -> Path:
        return self.paths.rack_dir(self.stack_name)

    def aws_env(self) -> dict[str, str]:
        self.config.require("aws_access_key_id", "aws_secret_access_key")
        return {
            "AWS_ACCESS_KEY_ID": self.config.get("aws_access_key_id"),
            "AWS_SECRET_ACCESS_KEY": self.config.get("aws_secret_access_key"),
        }

    def aws_client(self) -> AWSClient:
        env: dict[str, str] = self.aws_env()
        return AWSClient(
            env["AWS_ACCESS_KEY_ID"],
            env["AWS_SECRET_ACCESS_KEY"],
            self.config.get("aws_region"),
            runner=self.runner,
        )

    def terraform(self) -> TerraformManager:
        return TerraformManager(self.rack_dir, runner=self.runner, env=self.aws_env())

    def run_convox_command(
        self,
        cmd: str,
        env: dict[str, str] | None = None,
        rack_arg: bool = True,
        capture: bool = False,
    ) -> CommandResult:
        command = f"convox {cmd}"
        if rack_arg:
            command += f" --rack {shlex.quote(self.stack_name)}"
        return self.runner.run_checked(command, env=env, capture=capture)

    # ------------------------------------------------------------------
    # Rack

    def backup_convox_config(self) -> list[Path]:
        return self.rack_files.backup_convox_config()

    def rack_already_installed(self) -> bool:
        self.config.require("aws_region", "stack_name")
        return self.rack_files.rack_exists(self.stack_name)

    def install_convox(self) -> StepResult:
        self.config.require("aws_region", "stack_name")
        stack_name: str = self.stack_name

        def create() -> None:
            self.config.require(
                "aws_region", "aws_access_key_id", "aws_secret_access_key", "stack_name", "instance_type"
            )
            CONSOLE.print(f"[yellow]Installing Convox ({stack_name})...[/yellow]")
            self.run_convox_command(
                f"rack install aws {shlex.quote(stack_name)} "
                f"{shlex.quote('node_type=' + self.config.get('instance_type'))} "
                f"{shlex.quote('region=' + self.config.get('aws_region'))}",
                env=self.aws_env(),
                rack_arg=False,
            )

        result: StepResult = ProvisioningStep(
            f"Convox rack {stack_name}",
            check=self.rack_already_installed,
            create=create,
            max_attempts=10,
            delay=5,
        ).run(sleep=self.sleep)

        if result.status == StepStatus.READY:
            CONSOLE.print(f"✅ There is already a Convox rack named {stack_name}. Using this rack.")
            LOGGER.debug(
                "If you need to start over, you can run: convox rack uninstall %s "
                "(Make sure you don't lose any important data.)",
                stack_name,
            )
        else:
            CONSOLE.print(f"✅ Installed Convox rack {stack_name}")
        return result

    def validate_convox_rack_and_write_current(self) -> Path:
        self.config.require("aws_region", "stack_name")
        if not self.rack_already_installed():
            raise ResourceNotFoundError(
                "rack",
                self.stack_name,
                f"Could not find rack terraform directory: {self.rack_dir}",
            )
        # Tells the Convox CLI to use this terraform rack
        return self.rack_files.write_current_rack(self.stack_name)

    def fetch_rack_data(self) -> dict[str, Any] | None:
        """Rack attributes from the rack API, or None while the API is not ready"""
        result: CommandResult = self.runner.run(
            f"convox api get /system --rack {shlex.quote(self.stack_name)}", capture=True
        )
        if not result.success:
            return None
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            LOGGER.debug("Could not parse rack data: %s", result.stdout)
            return None
        return data if isinstance(data, dict) else None

    def convox_rack_data(self) -> dict[str, Any]:
        if self._rack_data is None:
            LOGGER.debug("Fetching convox rack attributes...")

            def check() -> bool:
                self._rack_data = self.fetch_rack_data()
                return self._rack_data is not None

            poll_until(check, max_attempts=5, delay=5, name="the Convox rack API", sleep=self.sleep)
        return self._rack_data  # type: ignore[return-value]

    def validate_convox_rack_api(self) -> dict[str, Any]:
        self.config.require("aws_region", "stack_name", "instance_type")
        LOGGER.debug("Validating that convox rack has the correct attributes...")

        rack_data: dict[str, Any] = self.convox_rack_data()
        expected: dict[str, str] = {
            "name": self.stack_name,
            "provider": "aws",
            "region": self.config.get("aws_region"),
            "status": "running",
        }
        for key, value in expected.items():
            actual = rack_data.get(key)
            if actual != value:
                raise ValidationMismatchError(key, value, actual)

        LOGGER.debug("=> Convox rack API is valid")
        return rack_data

    # ------------------------------------------------------------------
    # App

    def convox_app_exists(self) -> bool:
        """Check if the app is listed by `convox apps`"""
        app_name: str = self.config.get("convox_app_name")
        LOGGER.debug("Looking for existing %s app...", app_name)

        result: CommandResult = self.runner.run(f"convox apps --rack {shlex.quote(self.stack_name)}", capture=True)
        if result.success:
            for line in result.stdout.splitlines()[1:]:
                columns: list[str] = line.split()
                if columns and columns[0] == app_name:
                    LOGGER.debug("=> Found %s app.", app_name)
                    return True

        LOGGER.debug("=> Did not find %s app.", app_name)
        return False

    def create_convox_app(self) -> StepResult:
        self.config.require("convox_app_name")
        app_name: str = self.config.get("convox_app_name")

        def create() -> None:
            CONSOLE.print(f"[yellow]Creating app: {app_name}...[/yellow]")
            LOGGER.info("=> Documentation: https://docs.convox.com/deployment/creating-an-application")
            self.run_convox_command(f"apps create {shlex.quote(app_name)} --wait")

        result: StepResult = ProvisioningStep(
            f"{app_name} app",
            check=self.convox_app_exists,
            create=create,
            max_attempts=6,
            delay=3,
        ).run(sleep=self.sleep)
        CONSOLE.print(f"✅ {app_name} app is ready")
        return result

    def set_default_app_for_directory(self) -> Path:
        app_name: str = self.config.get("convox_app_name")
        LOGGER.info("=> Setting app %s as default for current directory", app_name)
        return self.rack_files.write_default_app(app_name)

    # ------------------------------------------------------------------
    # Docker registry

    def docker_registry_exists(self) -> bool:
        registry_url: str = self.config.get("docker_registry_url")
        LOGGER.debug("Looking up existing Docker registries...")
        result: CommandResult = self.runner.run(
            f"convox registries --rack {shlex.quote(self.stack_name)}", capture=True
        )
        if not result.success:
            return False
        return any(line.split()[:1] == [registry_url] for line in result.stdout.splitlines())

    def add_docker_registry(self) -> StepResult:
        self.config.require("docker_registry_url", "docker_registry_username", "docker_registry_password")
        registry_url: str = self.config.get("docker_registry_url")

        def create() -> None:
            CONSOLE.print(f"[yellow]Adding Docker Registry: {registry_url}...[/yellow]")
            LOGGER.info("=> Documentation: https://docs.convox.com/configuration/private-registries")
            self.run_convox_command(
                f"registries add {shlex.quote(registry_url)} "
                f"{shlex.quote(self.config.get('docker_registry_username'))} "
                f"{shlex.quote(self.config.get('docker_registry_password'))}"
            )

        return ProvisioningStep(
            f"Docker Registry {registry_url}",
            check=self.docker_registry_exists,
            create=create,
            max_attempts=5,
            delay=3,
        ).run(sleep=self.sleep)

    # ------------------------------------------------------------------
    # Terraform resources

    def template_values(self) -> dict[str, Any]:
        values: dict[str, Any] = dict(TEMPLATE_DEFAULTS)
        values.update(self.config.values)
        return values

    def write_terraform_template(self, name: str) -> Path:
        content: str = self.templates.get_template(f"{name}.tf.j2").render(**self.template_values())
        tf_file: Path = self.rack_dir / f"{name}.tf"
        LOGGER.debug("Writing terraform template to %s...", tf_file)
        tf_file.write_text(content)
        return tf_file

    def add_s3_bucket(self) -> StepResult:
        if "s3_bucket_name" not in self.config:
            LOGGER.info("Skipping S3 bucket creation (s3_bucket_name not set)")
            return StepResult("S3 bucket", StepStatus.SKIPPED, "s3_bucket_name not set")
        self.config.require("stack_name", "s3_bucket_name")
        tf_file: Path = self.write_terraform_template("s3_bucket")
        return StepResult("S3 bucket", StepStatus.CREATED, f"Wrote {tf_file}")

    def add_rds_database(self) -> StepResult:
        self.config.require("stack_name", "database_username", "database_password")
        tf_file: Path = self.write_terraform_template("rds")
        return StepResult("RDS database", StepStatus.CREATED, f"Wrote {tf_file}")

    def add_elasticache_cluster(self) -> StepResult:
        self.config.require("stack_name")
        tf_file: Path = self.write_terraform_template("elasticache")
        return StepResult("ElastiCache cluster", StepStatus.CREATED, f"Wrote {tf_file}")

    def apply_terraform_update(self) -> StepResult:
        """terraform init + apply in the rack directory. Never retried: a failure stops the run."""
        self.config.require("stack_name", "aws_access_key_id", "aws_secret_access_key")
        CONSOLE.print("[yellow]Applying terraform update...[/yellow]")

        terraform: TerraformManager = self.terraform()
        terraform.init()
        if os.getenv("DEBUG_TERRAFORM"):
            terraform.plan()
        else:
            terraform.apply()

        CONSOLE.print("✅ Terraform update applied")
        return StepResult("Terraform update", StepStatus.APPLIED, str(self.rack_dir))

    def wait_for_s3_bucket(self) -> StepResult:
        bucket_name: str = self.s3_bucket_details()["name"]
        aws: AWSClient = self.aws_client()
        attempts: int = poll_until(
            lambda: aws.s3_bucket_exists(bucket_name),
            max_attempts=10,
            delay=3,
            name=f"S3 bucket {bucket_name}",
            sleep=self.sleep,
        )
        return StepResult(f"S3 bucket {bucket_name}", StepStatus.READY, bucket_name, attempts)

    def terraform_state(self) -> dict[str, Any]:
        return terraform_state.load_state(self.paths.terraform_state_file(self.stack_name))

    def terraform_resource(self, resource_type: str, resource_name: str) -> dict[str, Any]:
        return ResourceHandle(resource_type, resource_name).resolve(self.terraform_state()).attributes

    def s3_bucket_details(self) -> dict[str, str]:
        """Bucket name and IAM access key for the uploads bucket"""
        self.config.require("s3_bucket_name")
        bucket: dict[str, Any] = self.terraform_resource("aws_s3_bucket", "uploads")
        access_key: dict[str, Any] = self.terraform_resource("aws_iam_access_key", "uploads")
        return {
            "name": bucket["bucket"],
            "access_key_id": access_key["id"],
            "secret_access_key": access_key["secret"],
        }

    def rds_details(self) -> dict[str, str]:
        self.config.require("database_username", "database_password")
        database: dict[str, Any] = self.terraform_resource("aws_db_instance", "database")
        return {"postgres_url": terraform_state.database_url(database)}

    def elasticache_details(self) -> dict[str, str]:
        cluster: dict[str, Any] = self.terraform_resource("aws_elasticache_cluster", "cache")
        return {"url": terraform_state.redis_url(cluster)}

    def set_s3_bucket_cors_policy(self) -> StepResult:
        if "s3_bucket_cors_policy" not in self.config:
            LOGGER.info("Skipping S3 bucket CORS policy (s3_bucket_cors_policy not set)")
            return StepResult("S3 CORS policy", StepStatus.SKIPPED, "s3_bucket_cors_policy not set")

        bucket_name: str = self.s3_bucket_details()["name"]
        policy: str = self.config.get("s3_bucket_cors_policy")
        aws: AWSClient = self.aws_client()

        existing: Any | None = aws.get_bucket_cors(bucket_name)
        if existing is not None and cors_policies_equal(existing, json.loads(policy)):
            CONSOLE.print(f"✅ CORS policy is already up to date for {bucket_name}.")
            return StepResult("S3 CORS policy", StepStatus.READY, bucket_name)

        CONSOLE.print(f"[yellow]Setting CORS policy for {bucket_name}...[/yellow]")
        aws.put_bucket_cors(bucket_name, policy)
        CONSOLE.print(f"✅ Successfully set CORS policy for {bucket_name}.")
        return StepResult("S3 CORS policy", StepStatus.APPLIED, bucket_name)

    # ------------------------------------------------------------------
    # Domain

    def default_service_domain_name(self) -> str:
        self.config.require("convox_app_name", "default_service")
        if self._default_service_domain_name is None:
            convox_domain = self.convox_rack_data().get("domain")
            if not convox_domain:
                raise ResourceNotFoundError("rack", self.stack_name, "Convox rack data has no domain!")
            self._default_service_domain_name = (
                f"{self.config.get('default_service')}.{self.config.get('convox_app_name')}.{convox_domain}"
            )
        return self._default_service_domain_name

    def url_reachable(self, url: str) -> bool:
        try:
            response = self.http_get(url, timeout=10)
        except requests.RequestException as e:
            LOGGER.debug("%s is not reachable yet: %s", url, e)
            return False
        return response.status_code < 500

    def wait_for_url(self, url: str, timeout: float = 300, delay: float = 5) -> StepResult:
        CONSOLE.print(f"[yellow]Waiting for {url} to respond...[/yellow]")
        attempts: int = poll_until_elapsed(
            lambda: self.url_reachable(url),
            timeout=timeout,
            delay=delay,
            name=url,
            sleep=self.sleep,
            clock=self.clock,
        )
        CONSOLE.print(f"✅ {url} is up")
        return StepResult(url, StepStatus.READY, url, attempts)
