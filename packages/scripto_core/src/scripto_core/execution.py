from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from scripto_core.binding import bind
from scripto_core.config import ScriptoConfig
from scripto_core.models import PlaceholderSpec, ProcessResult, ScriptDefinition
from scripto_core.placeholders import extract_placeholders
from scripto_core.substitute import quote_value

logger = logging.getLogger(__name__)

SHEBANG = "#!"


@dataclass(frozen=True)
class InvocationPlan:
    """What to do with a matched script: run it as a file, or render its template."""

    script: ScriptDefinition
    executable: bool
    specs: list[PlaceholderSpec]
    result: ProcessResult

    @property
    def final_command(self) -> str | None:
        return self.result.final_command


def is_executable_script(template_text: str) -> bool:
    return template_text.startswith(SHEBANG)


def executable_command(file_path: str, tokens: Sequence[str]) -> str:
    return " ".join([file_path, *(quote_value(token) for token in tokens)])


def plan_invocation(
    script: ScriptDefinition,
    tokens: Sequence[str],
    template_text: str,
) -> InvocationPlan:
    """
    Bind `tokens` for a matched script.

    Scripts starting with a shebang are run by path with the tokens passed through and
    no placeholder handling. Everything else is treated as a placeholder template.
    """

    if is_executable_script(template_text):
        command = executable_command(script.file_path, tokens)
        logger.debug("Executable script %s: %s", script.display_name, command)
        return InvocationPlan(
            script=script,
            executable=True,
            specs=[],
            result=ProcessResult(bound={}, missing=[], final_command=command),
        )

    specs = extract_placeholders(template_text)
    return InvocationPlan(
        script=script,
        executable=False,
        specs=specs,
        result=bind(specs, tokens, template=template_text),
    )


def emit_command(command: str, config: ScriptoConfig, stream: TextIO | None = None) -> None:
    """
    Hand the final command to the shell wrapper.

    With a command descriptor path configured the command is written there; otherwise it
    is printed to `stream` (stdout) without a trailing newline.
    """

    if config.cmd_fd_path is not None:
        path = Path(config.cmd_fd_path)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(command)
        logger.debug("Wrote command to %s", path)
        return

    out = stream if stream is not None else sys.stdout
    out.write(command)
    out.flush()
