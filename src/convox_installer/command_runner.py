"""Run external command line tools"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from convox_installer.errors import CommandFailedError

LOGGER = logging.getLogger(__name__)


@dataclass
class CommandResult:
    command: str
    exit_status: int | None
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.exit_status == 0

    def check(self) -> CommandResult:
        """Raise CommandFailedError unless the command exited with status 0"""
        if not self.success:
            raise CommandFailedError(self.command, self.exit_status)
        return self


class CommandRunner:
    """Spawns external programs and waits for them to finish.

    The command is given as a single string (split with shell quoting rules,
    but never run through a shell). Secrets must be passed in ``env`` so they
    never show up in the command text, logs or error messages.
    """

    def run(
        self,
        command: str,
        env: Mapping[str, str] | None = None,
        cwd: os.PathLike | str | None = None,
        capture: bool = False,
    ) -> CommandResult:
        LOGGER.debug("+ %s", command)

        process_env: dict[str, str] = dict(os.environ)
        if env:
            process_env.update(env)

        try:
            result: subprocess.CompletedProcess[str] = subprocess.run(
                shlex.split(command),
                cwd=Path(cwd) if cwd else None,
                env=process_env,
                capture_output=capture,
                text=True,
            )
        except FileNotFoundError:
            LOGGER.debug("=> Command not found: %s", command)
            return CommandResult(command, None)

        return CommandResult(
            command,
            result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )

    def run_checked(
        self,
        command: str,
        env: Mapping[str, str] | None = None,
        cwd: os.PathLike | str | None = None,
        capture: bool = False,
    ) -> CommandResult:
        return self.run(command, env=env, cwd=cwd, capture=capture).check()

