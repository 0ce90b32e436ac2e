"""Files the Convox CLI reads: the current rack pointer and the rack terraform directories"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path

from convox_installer.paths import Paths

LOGGER = logging.getLogger(__name__)

BACKUP_FILES = ("host", "rack", "current")


class RackFiles:
    def __init__(self, paths: Paths) -> None:
        self.paths: Paths = paths

    def backup_convox_config(self) -> list[Path]:
        """Move existing host/rack/current files out of the way so the new rack is used"""
        moved: list[Path] = []
        for name in BACKUP_FILES:
            path: Path = self.paths.convox_dir / name
            if not path.exists():
                continue
            backup: Path = path.with_name(f"{name}.bak")
            LOGGER.info("Moving existing %s to %s...", path, backup)
            shutil.move(str(path), str(backup))
            moved.append(backup)
        return moved

    def rack_exists(self, stack_name: str) -> bool:
        """A rack is installed when its terraform directory exists"""
        return self.paths.rack_dir(stack_name).is_dir()

    def write_current_rack(self, stack_name: str) -> Path:
        """Point the Convox CLI at a terraform rack"""
        self.paths.convox_dir.mkdir(parents=True, exist_ok=True)
        self.paths.current_file.write_text(json.dumps({"name": stack_name, "type": "terraform"}) + "\n")
        return self.paths.current_file

    def write_default_app(self, app_name: str) -> Path:
        """Default app for convox commands run from the work directory"""
        self.paths.app_file.parent.mkdir(parents=True, exist_ok=True)
        self.paths.app_file.write_text(f"{app_name}\n")
        return self.paths.app_file
