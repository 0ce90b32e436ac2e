"""Installer configuration: prompt declarations and the persisted config store"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence, Union

from convox_installer.errors import MissingConfigError

LOGGER = logging.getLogger(__name__)


@dataclass
class Literal:
    value: str

    def resolve(self) -> str:
        return self.value


@dataclass
class Generated:
    """A value computed on first use (e.g. a random password) and then reused"""

    factory: Callable[[], str]
    _value: str | None = field(default=None, init=False, repr=False)
    _resolved: bool = field(default=False, init=False, repr=False)

    def resolve(self) -> str:
        if not self._resolved:
            self._value = self.factory()
            self._resolved = True
        return self._value  # type: ignore[return-value]


ValueSource = Union[Literal, Generated]


@dataclass
class PromptSpec:
    key: str | None = None
    title: str | None = None
    prompt: str | None = None
    default: str | None = None
    value: ValueSource | str | Callable[[], str] | None = None
    hidden: bool = False
    section: str | None = None
    info: str | None = None

    def __post_init__(self) -> None:
        if self.value is None or isinstance(self.value, (Literal, Generated)):
            return
        if callable(self.value):
            self.value = Generated(self.value)
        else:
            self.value = Literal(str(self.value))

    @property
    def label(self) -> str | None:
        return self.title or self.key

    @property
    def question(self) -> str:
        return self.prompt or f"Please enter your {self.label}"


DEFAULT_PROMPTS: list[PromptSpec] = [
    PromptSpec(
        key="stack_name",
        title="Convox Stack Name",
        prompt="Please enter a name for your Convox installation",
        default="convox",
    ),
    PromptSpec(key="aws_region", title="AWS Region", default="us-east-1"),
    PromptSpec(key="instance_type", title="EC2 Instance Type", default="t3.medium"),
    PromptSpec(section="Admin AWS Credentials"),
    PromptSpec(key="aws_access_key_id", title="AWS Access Key ID"),
    PromptSpec(key="aws_secret_access_key", title="AWS Secret Access Key"),
]


class ConfigStore:
    """Ordered key/value config, persisted as ``{"config": {...}}`` after every change.

    Values are layered with the precedence: config file < environment < overrides.
    """

    def __init__(self, file_path: os.PathLike | str, prompts: Sequence[PromptSpec] = DEFAULT_PROMPTS) -> None:
        self.file_path: Path = Path(file_path).expanduser()
        self.prompts: list[PromptSpec] = list(prompts)
        self.values: dict[str, Any] = {}

    @classmethod
    def build(
        cls,
        file_path: os.PathLike | str,
        prompts: Sequence[PromptSpec] = DEFAULT_PROMPTS,
        environ: Mapping[str, str] | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> ConfigStore:
        store = cls(file_path, prompts)
        store.load()
        store.merge_env(os.environ if environ is None else environ)
        store.merge_overrides(overrides or {})
        return store

    @property
    def keys(self) -> list[str]:
        return [prompt.key for prompt in self.prompts if prompt.key]

    def load(self) -> dict[str, Any]:
        if not self.file_path.exists():
            return self.values

        LOGGER.debug("Loading saved config from %s...", self.file_path)
        loaded: dict[str, Any] = json.loads(self.file_path.read_text()).get("config") or {}
        for key in self.keys:
            if key in loaded:
                self.values[key] = loaded[key]
        return self.values

    def merge_env(self, environ: Mapping[str, str]) -> dict[str, Any]:
        for key in self.keys:
            env_key = key.upper()
            value = environ.get(env_key)
            if not value:
                continue
            LOGGER.debug("Found value for %s in env var: %s", key, env_key)
            self.values[key] = value
        return self.values

    def merge_overrides(self, overrides: Mapping[str, Any]) -> dict[str, Any]:
        self.values.update(overrides)
        return self.values

    def get(self, key: str) -> Any:
        if not self.values.get(key):
            raise MissingConfigError(key)
        return self.values[key]

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value
        self.save()

    def require(self, *keys: str) -> None:
        """Raise MissingConfigError for the first missing key"""
        for key in keys:
            self.get(key)

    def save(self) -> None:
        """Rewrite the whole config file, replacing it atomically"""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.file_path.parent, prefix=f".{self.file_path.name}.")
        try:
            with os.fdopen(fd, "w") as tmp_file:
                json.dump({"config": self.values}, tmp_file, indent=2)
                tmp_file.write("\n")
            os.replace(tmp_name, self.file_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def __contains__(self, key: object) -> bool:
        return bool(self.values.get(key))  # type: ignore[call-overload]
