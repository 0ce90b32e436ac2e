"""Terraform operations for a rack's terraform directory"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from convox_installer.command_runner import CommandRunner


class TerraformManager:
    """Runs terraform inside one rack directory.

    Only the AWS access keys are passed to terraform, through the environment.
    """

    def __init__(
        self,
        work_dir: os.PathLike | str,
        runner: CommandRunner | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.work_dir: Path = Path(os.path.normpath(work_dir))
        self.runner: CommandRunner = runner or CommandRunner()
        self.env: dict[str, str] = dict(env or {})

    def init(self) -> None:
        """Initialize Terraform"""
        self.runner.run_checked("terraform init", env=self.env, cwd=self.work_dir)

    def plan(self) -> None:
        """Run terraform plan"""
        self.runner.run_checked("terraform plan", env=self.env, cwd=self.work_dir)

    def apply(self, auto_approve: bool = True) -> None:
        """Run terraform apply"""
        cmd = "terraform apply"
        if auto_approve:
            cmd += " -auto-approve"
        self.runner.run_checked(cmd, env=self.env, cwd=self.work_dir)

