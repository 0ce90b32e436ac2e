"""Interactive configuration prompts"""

from __future__ import annotations

import logging
from typing import Any, Sequence, TextIO

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.text import Text

from convox_installer.config import ConfigStore, PromptSpec

LOGGER = logging.getLogger(__name__)

SEPARATOR = "============================================"


class Terminal:
    """Asks questions on a rich console.

    ``stream`` replaces stdin when given, which is how tests script the answers.
    """

    def __init__(self, console: Console | None = None, stream: TextIO | None = None) -> None:
        self.console: Console = console or Console()
        self.stream: TextIO | None = stream

    def say(self, message: str = "") -> None:
        self.console.print(Text(message))

    def ask(self, question: str, default: str | None = None) -> str:
        """Ask until a non-empty answer is given, falling back to ``default``"""
        kwargs: dict[str, Any] = {"console": self.console, "stream": self.stream}
        if default:
            kwargs["default"] = default

        while True:
            answer: str = (Prompt.ask(Text(question), **kwargs) or "").strip()
            if answer:
                return answer
            if default:
                return default

    def confirm(self, question: str) -> bool:
        return Confirm.ask(Text(question), console=self.console, stream=self.stream)


class PromptEngine:
    """Asks for every declared config value, then lets the operator review and correct them"""

    def __init__(
        self,
        prompts: Sequence[PromptSpec],
        store: ConfigStore,
        terminal: Terminal | None = None,
    ) -> None:
        self.prompts: list[PromptSpec] = list(prompts)
        self.store: ConfigStore = store
        self.terminal: Terminal = terminal or Terminal()

    def prompt_for_config(self) -> dict[str, Any]:
        revising = False
        while True:
            for prompt in self.prompts:
                if prompt.section or prompt.info:
                    self.show_section(prompt)
                if not prompt.key:
                    continue
                self.ask_prompt(prompt, revising)

            self.store.save()
            self.show_config_summary()

            # Every later pass re-asks all questions, defaulting to the current answers
            revising = True

            self.terminal.say("Please double check all of these configuration details.")
            if self.terminal.confirm(
                "Would you like to start the Convox installation? (press 'n' to correct any settings)"
            ):
                break
            self.terminal.say()

        return self.store.values

    def show_section(self, prompt: PromptSpec) -> None:
        self.terminal.say()
        if prompt.section:
            self.terminal.say(prompt.section)
            self.terminal.say(SEPARATOR)
        if prompt.info:
            self.terminal.say(prompt.info)
        self.terminal.say()

    def ask_prompt(self, prompt: PromptSpec, revising: bool = False) -> None:
        key: str = prompt.key  # type: ignore[assignment]

        if key in self.store and not revising:
            LOGGER.debug("Found existing config for %s", key)
            return

        # Forced values are never asked for (e.g. securely generated passwords)
        if prompt.value is not None:
            if key in self.store:
                return
            self.store.set(key, prompt.value.resolve())  # type: ignore[union-attr]
            return

        default: str | None = self.store.values.get(key) if revising else prompt.default
        self.store.set(key, self.terminal.ask(prompt.question, default))

    def summary_lines(self) -> list[str]:
        titles: list[str] = [prompt.label for prompt in self.prompts if prompt.label]
        width: int = max((len(title) for title in titles), default=0)

        lines: list[str] = []
        for prompt in self.prompts:
            if not prompt.key or prompt.hidden:
                continue
            padded_title = f"{prompt.label}:".ljust(width + 3)
            lines.append(f"    {padded_title} {self.store.values.get(prompt.key, '')}")
        return lines

    def show_config_summary(self) -> None:
        self.terminal.say()
        self.terminal.say(SEPARATOR)
        self.terminal.say("                 SUMMARY")
        self.terminal.say(SEPARATOR)
        self.terminal.say()

        for line in self.summary_lines():
            self.terminal.say(line)

        self.terminal.say()
        self.terminal.say(f"We've saved your configuration to: {self.store.file_path}")
        self.terminal.say(
            "If anything goes wrong during the installation, "
            "you can restart the script to reload the config and continue."
        )
        self.terminal.say()
