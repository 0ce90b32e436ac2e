"""Check, create, then poll: the shape of every provisioning step"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from convox_installer.poller import poll_until

LOGGER = logging.getLogger(__name__)


class StepStatus(str, Enum):
    READY = "ready"
    CREATED = "created"
    APPLIED = "applied"
    SKIPPED = "skipped"


@dataclass
class StepResult:
    name: str
    status: StepStatus
    details: str = ""
    attempts: int = 0


@dataclass
class ProvisioningStep:
    """An idempotent step: ``check`` must be read-only and safe to repeat"""

    name: str
    check: Callable[[], bool]
    create: Callable[[], None]
    max_attempts: int = 5
    delay: float = 3

    def run(self, sleep: Callable[[float], None] = time.sleep) -> StepResult:
        if self.check():
            LOGGER.debug("=> %s already exists", self.name)
            return StepResult(self.name, StepStatus.READY, f"{self.name} already exists")

        self.create()
        attempts: int = poll_until(self.check, self.max_attempts, self.delay, name=self.name, sleep=sleep)
        return StepResult(self.name, StepStatus.CREATED, f"{self.name} created", attempts)
