from __future__ import annotations

import pytest

from convox_installer.errors import PollTimeoutError
from convox_installer.steps import ProvisioningStep, StepStatus


def test_existing_resource_is_ready_without_creating(sleeper):
    created = []

    result = ProvisioningStep("bucket", check=lambda: True, create=lambda: created.append(1)).run(sleep=sleeper)

    assert result.status == StepStatus.READY
    assert created == []


def test_create_is_called_once_even_when_polling_times_out(sleeper):
    created = []

    step = ProvisioningStep("bucket", check=lambda: False, create=lambda: created.append(1), max_attempts=3, delay=4)

    with pytest.raises(PollTimeoutError):
        step.run(sleep=sleeper)

    assert created == [1]
    assert sleeper.delays == [4, 4]
