from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from typing import TextIO

from scripto_core.models import PlaceholderSpec


class PromptAborted(RuntimeError):
    pass


class ConsolePrompter:
    """
    Line-oriented prompts for the interactive bits of a run.

    Prompts go to stderr so stdout only ever carries the final command.
    """

    def __init__(
        self,
        input_fn: Callable[[], str] | None = None,
        output: TextIO | None = None,
    ) -> None:
        self._input_fn = input_fn
        self._output = output

    @property
    def output(self) -> TextIO:
        return self._output if self._output is not None else sys.stderr

    def _readline(self) -> str:
        if self._input_fn is not None:
            return self._input_fn()
        line = sys.stdin.readline()
        if not line:
            raise PromptAborted("failed to read input: end of file")
        return line

    def prompt_text(self, message: str) -> str:
        self.output.write(message)
        self.output.flush()
        return self._readline().strip()

    def prompt_value(self, name: str, description: str = "") -> str:
        message = f"Enter value for {name}"
        if description:
            message += f" ({description})"
        return self.prompt_text(message + ": ")

    def prompt_yes_no(self, message: str) -> bool:
        while True:
            answer = self.prompt_text(f"{message} (y/n): ").lower()
            if answer in {"y", "yes"}:
                return True
            if answer in {"n", "no"}:
                return False
            self.output.write("Please enter 'y' or 'n'\n")


def prompt_missing(prompter: ConsolePrompter, missing: Sequence[PlaceholderSpec]) -> dict[str, str]:
    """Ask for each missing placeholder in declaration order."""
    values: dict[str, str] = {}
    if not missing:
        return values
    prompter.output.write(f"Missing {len(missing)} argument(s):\n")
    for spec in missing:
        values[spec.name] = prompter.prompt_value(spec.name, spec.description)
    return values
