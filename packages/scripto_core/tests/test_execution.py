from __future__ import annotations

import io
import os
import stat
from pathlib import Path

import pytest

from scripto_core.config import ScriptoConfig
from scripto_core.execution import emit_command, is_executable_script, plan_invocation
from scripto_core.models import GLOBAL_SCOPE, ScriptDefinition


def test_shebang_scripts_run_by_path_with_quoted_args() -> None:
    script = ScriptDefinition(name="tool", file_path="/s/tool.sh", scope=GLOBAL_SCOPE)
    template = "#!/bin/sh\necho %not_a_placeholder%\n"

    plan = plan_invocation(script, ["plain", "two words", '"quoted already"'], template)

    assert is_executable_script(template)
    assert plan.executable
    assert plan.specs == []
    assert plan.final_command == '/s/tool.sh plain "two words" "quoted already"'


def test_template_scripts_are_bound() -> None:
    script = ScriptDefinition(name="greet", file_path="/s/greet.sh", scope=GLOBAL_SCOPE)

    plan = plan_invocation(script, ["--who=world"], "echo hello %who%")

    assert not plan.executable
    assert [s.name for s in plan.specs] == ["who"]
    assert plan.final_command == "echo hello world"


def test_emit_command_prints_without_newline(tmp_path: Path) -> None:
    out = io.StringIO()

    emit_command("ls -la", ScriptoConfig.for_directory(tmp_path), out)

    assert out.getvalue() == "ls -la"


def test_emit_command_writes_descriptor_file(tmp_path: Path) -> None:
    fd_path = tmp_path / "cmd"
    cfg = ScriptoConfig.for_directory(tmp_path, cmd_fd_path=fd_path)
    out = io.StringIO()

    emit_command("make test", cfg, out)

    assert fd_path.read_text(encoding="utf-8") == "make test"
    assert out.getvalue() == ""
    if os.name != "nt":
        assert stat.S_IMODE(fd_path.stat().st_mode) & 0o077 == 0


@pytest.mark.parametrize("text", ["echo hi", " #!/bin/sh", ""])
def test_non_shebang_text_is_a_template(text: str) -> None:
    assert not is_executable_script(text)
