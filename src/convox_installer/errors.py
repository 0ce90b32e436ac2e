"""Error types raised by the installer"""

from __future__ import annotations

from typing import Any


class InstallerError(Exception):
    """Base class for every error the installer reports to the operator"""


class MissingConfigError(InstallerError):
    def __init__(self, key: str) -> None:
        self.key: str = key
        super().__init__(f"{key} is missing from the config!")


class CommandFailedError(InstallerError):
    def __init__(self, command: str, exit_status: int | None) -> None:
        self.command: str = command
        self.exit_status: int | None = exit_status
        super().__init__(f"Error running: {command} (exit status: {exit_status})")


class ResourceNotFoundError(InstallerError):
    def __init__(self, resource_type: str, resource_name: str, message: str | None = None) -> None:
        self.resource_type: str = resource_type
        self.resource_name: str = resource_name
        super().__init__(
            message or f"Could not find {resource_type} resource named {resource_name} in terraform state!"
        )


class PollTimeoutError(InstallerError, TimeoutError):
    """Raised when a resource never became ready within the polling bound"""


class ValidationMismatchError(InstallerError):
    def __init__(self, key: str, expected: Any, actual: Any) -> None:
        self.key: str = key
        self.expected: Any = expected
        self.actual: Any = actual
        super().__init__(f"Convox data did not match! Expected {key} to be '{expected}', but was: '{actual}'")


class RequirementsError(InstallerError):
    def __init__(self, missing: list[str]) -> None:
        self.missing: list[str] = missing
        super().__init__(f"Missing required commands: {', '.join(missing)}")
