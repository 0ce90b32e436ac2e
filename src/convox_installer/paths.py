"""Filesystem locations used by the Convox CLI and the installer"""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass
from pathlib import Path

DEFAULT_INSTALLER_CONFIG_FILE = ".installer_config.json"


def is_mac() -> bool:
    return platform.system() == "Darwin"


def default_convox_dir() -> Path:
    """Where the Convox CLI keeps its auth, current rack and rack terraform directories"""
    if is_mac():
        return Path("~/Library/Preferences/convox").expanduser()

    xdg_config_home = os.getenv("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / "convox"
    return Path("~/.config/convox").expanduser()


@dataclass(frozen=True)
class Paths:
    convox_dir: Path
    installer_config_file: Path
    work_dir: Path

    @classmethod
    def detect(
        cls,
        installer_config_file: os.PathLike | str | None = None,
        convox_dir: os.PathLike | str | None = None,
        work_dir: os.PathLike | str | None = None,
    ) -> Paths:
        work: Path = Path(work_dir) if work_dir else Path.cwd()
        config_file: Path = (
            Path(installer_config_file).expanduser()
            if installer_config_file
            else work / DEFAULT_INSTALLER_CONFIG_FILE
        )
        return cls(
            convox_dir=Path(convox_dir).expanduser() if convox_dir else default_convox_dir(),
            installer_config_file=config_file,
            work_dir=work,
        )

    @property
    def current_file(self) -> Path:
        return self.convox_dir / "current"

    @property
    def racks_dir(self) -> Path:
        return self.convox_dir / "racks"

    def rack_dir(self, stack_name: str) -> Path:
        return self.racks_dir / stack_name

    def terraform_state_file(self, stack_name: str) -> Path:
        return self.rack_dir(stack_name) / "terraform.tfstate"

    @property
    def app_file(self) -> Path:
        """Default app for the current directory"""
        return self.work_dir / ".convox" / "app"
