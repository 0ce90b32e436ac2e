"""Bounded polling for resources that become ready eventually"""

from __future__ import annotations

import logging
import time
from typing import Callable

from convox_installer.errors import PollTimeoutError

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MESSAGE = (
    "Timed out while waiting for {name}! "
    "(Please wait a few moments and then restart the installation script.)"
)


def poll_until(
    check: Callable[[], bool],
    max_attempts: int,
    delay: float,
    name: str = "resource",
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Call ``check`` until it returns True.

    The first call happens immediately. The delay between calls is constant.
    Returns the number of checks performed, or raises PollTimeoutError after
    ``max_attempts`` failed checks.
    """
    for attempt in range(1, max_attempts + 1):
        if check():
            return attempt
        if attempt < max_attempts:
            LOGGER.info("Waiting for %s to be ready...", name)
            sleep(delay)

    raise PollTimeoutError(DEFAULT_TIMEOUT_MESSAGE.format(name=name))


def poll_until_elapsed(
    check: Callable[[], bool],
    timeout: float,
    delay: float,
    name: str = "resource",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Same as poll_until, bounded by wall-clock seconds instead of attempts"""
    deadline: float = clock() + timeout
    attempts = 0
    while True:
        attempts += 1
        if check():
            return attempts
        if clock() + delay > deadline:
            break
        LOGGER.info("Waiting for %s to be ready...", name)
        sleep(delay)

    raise PollTimeoutError(DEFAULT_TIMEOUT_MESSAGE.format(name=name))
