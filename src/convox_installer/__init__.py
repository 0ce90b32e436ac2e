"""Idempotent Convox rack installer"""

from convox_installer.config import DEFAULT_PROMPTS, ConfigStore, Generated, Literal, PromptSpec
from convox_installer.installer import ConvoxInstaller
from convox_installer.paths import Paths

__all__ = [
    "DEFAULT_PROMPTS",
    "ConfigStore",
    "ConvoxInstaller",
    "Generated",
    "Literal",
    "Paths",
    "PromptSpec",
]
