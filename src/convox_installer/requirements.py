"""Check that the command line tools the installer shells out to are available"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass

from convox_installer.errors import RequirementsError
from convox_installer.paths import is_mac

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Package:
    name: str
    brew: str
    docs: str


REQUIRED_PACKAGES: list[Package] = [
    Package("convox", "convox", "https://docs.convox.com/introduction/installation"),
    Package("aws", "awscli", "https://docs.aws.amazon.com/cli/latest/userguide/cli-chap-install.html"),
    Package("terraform", "terraform", "https://developer.hashicorp.com/terraform/install"),
]


class Requirements:
    def __init__(self, packages: list[Package] | None = None) -> None:
        self.packages: list[Package] = REQUIRED_PACKAGES if packages is None else packages

    def find_command(self, command: str) -> str | None:
        return shutil.which(command)

    def has_command(self, command: str) -> bool:
        path = self.find_command(command)
        if path:
            LOGGER.debug("=> Found %s: %s", command, path)
            return True
        LOGGER.debug("=> Could not find %s!", command)
        return False

    def missing_packages(self) -> list[Package]:
        LOGGER.debug("Checking for required commands...")
        return [package for package in self.packages if not self.has_command(package.name)]

    def ensure_requirements(self) -> None:
        missing: list[Package] = self.missing_packages()
        if not missing:
            return

        LOGGER.error("This script requires the convox and AWS CLI tools.")
        if is_mac():
            LOGGER.error("Please run: brew install %s", " ".join(package.brew for package in missing))
        else:
            LOGGER.error("Installation Instructions:")
            for package in missing:
                LOGGER.error("* %s: %s", package.name, package.docs)

        raise RequirementsError([package.name for package in missing])
