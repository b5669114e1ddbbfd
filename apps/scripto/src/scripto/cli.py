from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, TextIO

from scripto import __version__
from scripto.prompt import ConsolePrompter, PromptAborted, prompt_missing
from scripto_core.binding import bind, require_complete, retry_tokens
from scripto_core.config import ScriptoConfig, load_config
from scripto_core.errors import (
    ConfigError,
    MissingArgumentsError,
    ScriptFileError,
    ScriptNotFoundError,
    ScriptoError,
)
from scripto_core.execution import InvocationPlan, emit_command, plan_invocation
from scripto_core.matcher import ScriptMatcher
from scripto_core.models import GLOBAL_SCOPE, ScriptDefinition
from scripto_core.placeholders import extract_placeholders
from scripto_core.scopes import PRIORITY_LOCAL, PRIORITY_PARENT, resolve_all, scope_priority
from scripto_core.store import ScriptStore, read_template

logger = logging.getLogger(__name__)

_SUBCOMMANDS = frozenset({"run", "add", "list", "show", "rm"})
_GLOBAL_FLAGS = frozenset({"-v", "--verbose"})


def build_parser() -> argparse.ArgumentParser:
    """Build the scripto CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="scripto",
        description="Store shell command templates and run them later by name.",
        epilog=(
            "Examples:\n"
            "  scripto add --name deploy -- ./deploy.sh %env:target environment:staging%\n"
            "  scripto deploy --env=prod\n"
            "  scripto greet \"hello world\"\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"scripto version {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log resolution details to stderr."
    )
    sub = parser.add_subparsers(dest="cmd")

    run_p = sub.add_parser(
        "run",
        help="Run a stored script (the default when the first word is not a subcommand).",
    )
    run_p.add_argument("name", help="Script name.")
    run_p.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Positional values, or `--name=value` / `--name value` for named placeholders.",
    )
    run_p.add_argument(
        "--no-input",
        action="store_true",
        help=(
            "Fail instead of prompting for missing values or offering to save unknown "
            "commands. Accepted before or after the script name."
        ),
    )

    add_p = sub.add_parser("add", help="Store a new script.")
    add_p.add_argument("--global", dest="is_global", action="store_true", help="Store globally.")
    add_p.add_argument("--name", default="", help="Name to invoke the script by.")
    add_p.add_argument("--description", default="", help="Description for the script.")
    add_p.add_argument("--file", help="Reference an existing script file instead of a command.")
    add_p.add_argument("command", nargs="*", help="Command template (put it after `--`).")

    list_p = sub.add_parser("list", help="List scripts visible from the current directory.")
    list_p.add_argument(
        "--all", dest="show_all", action="store_true", help="List every scope in the store."
    )

    show_p = sub.add_parser("show", help="Show a script's template and placeholders.")
    show_p.add_argument("name")

    rm_p = sub.add_parser("rm", help="Remove the script a name resolves to from here.")
    rm_p.add_argument("name")
    rm_p.add_argument(
        "--global",
        dest="is_global",
        action="store_true",
        help="Remove the global script with this name, ignoring local and parent scopes.",
    )
    rm_p.add_argument(
        "--keep-file", action="store_true", help="Leave the script file on disk."
    )

    return parser


def _route(argv: Sequence[str]) -> list[str]:
    """Insert the implicit `run` subcommand when the first word is a script name."""
    out = list(argv)
    idx = 0
    while idx < len(out) and out[idx] in _GLOBAL_FLAGS:
        idx += 1
    if idx >= len(out):
        return out
    head = out[idx]
    if head in _SUBCOMMANDS or head.startswith("-"):
        return out
    return [*out[:idx], "run", *out[idx:]]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def _scope_label(scope: str, cwd: Path) -> str:
    priority = scope_priority(scope, cwd)
    if priority == PRIORITY_LOCAL:
        return "local"
    if priority == PRIORITY_PARENT:
        return f"parent:{scope}"
    if scope == GLOBAL_SCOPE:
        return "global"
    return scope


def _finish_plan(
    plan: InvocationPlan,
    tokens: Sequence[str],
    template_text: str,
    *,
    prompter: ConsolePrompter,
    no_input: bool,
) -> str:
    result = plan.result
    if result.missing:
        if no_input:
            raise MissingArgumentsError(result.missing)
        prompted = prompt_missing(prompter, result.missing)
        result = bind(
            plan.specs,
            retry_tokens(plan.specs, tokens, result, prompted),
            template=template_text,
        )
    return require_complete(result)


def _save_unknown_command(
    invocation: str,
    *,
    store: ScriptStore,
    cwd: Path,
    prompter: ConsolePrompter,
) -> ScriptDefinition:
    save = prompter.prompt_yes_no(f"Command '{invocation}' not found. Save as script?")
    if not save:
        raise ScriptNotFoundError(invocation)

    name = prompter.prompt_text("Enter script name (optional, press Enter to skip): ")
    description = prompter.prompt_text("Enter description (optional, press Enter to skip): ")
    is_global = prompter.prompt_yes_no("Save globally?")
    scope = GLOBAL_SCOPE if is_global else str(cwd)

    saved = store.add_script(
        ScriptDefinition(name=name, description=description, scope=scope),
        command=invocation,
    )
    prompter.output.write(f"Saved script: {invocation}\n")
    return saved


def _split_run_flags(tokens: Sequence[str]) -> tuple[list[str], bool]:
    """Pull `--no-input` out of the script tokens; REMAINDER captures it after the name."""
    kept = [token for token in tokens if token != "--no-input"]
    return kept, len(kept) != len(tokens)


def _cmd_run(
    args: argparse.Namespace,
    *,
    config: ScriptoConfig,
    cwd: Path,
    prompter: ConsolePrompter,
    stdout: TextIO,
) -> int:
    """Resolve a script by name, bind its arguments, and emit the final command."""
    store = ScriptStore(config)
    tokens, trailing_no_input = _split_run_flags(args.args)
    no_input: bool = args.no_input or trailing_no_input
    matcher = ScriptMatcher(store.read(), cwd)
    found = matcher.match(args.name)

    if found.script is None:
        invocation = " ".join([args.name, *tokens])
        if no_input or not config.confirm_save:
            raise ScriptNotFoundError(invocation)
        script = _save_unknown_command(invocation, store=store, cwd=cwd, prompter=prompter)
        template_text = read_template(script.file_path)
        tokens = []
    else:
        script = found.script
        template_text = read_template(script.file_path)

    plan = plan_invocation(script, tokens, template_text)
    command = _finish_plan(
        plan, tokens, template_text, prompter=prompter, no_input=no_input
    )
    emit_command(command, config, stdout)
    return 0


def _read_command_file(file_arg: str) -> tuple[str, Path]:
    path = Path(file_arg).expanduser().resolve()
    if not path.is_file():
        raise ScriptFileError(f"file does not exist: {path}", code="script_file_missing")
    command = read_template(path)
    if not command:
        raise ScriptFileError(f"file is empty: {path}", code="script_file_empty")
    return command, path


def _cmd_add(
    args: argparse.Namespace, *, config: ScriptoConfig, cwd: Path, stdout: TextIO
) -> int:
    """Store a command (or a reference to an existing script file) under a scope."""
    command_tokens = list(args.command)
    if command_tokens and command_tokens[0] == "--":
        command_tokens = command_tokens[1:]
    if args.file and command_tokens:
        print("Error: Cannot specify both --file and command arguments", file=sys.stderr)
        return 2
    if not args.file and not command_tokens:
        print("Error: Nothing to add; pass a command after `--` or use --file.", file=sys.stderr)
        return 2

    scope = GLOBAL_SCOPE if args.is_global else str(cwd)
    name: str = args.name.strip()
    store = ScriptStore(config)

    if args.file:
        command, path = _read_command_file(args.file)
        if not name:
            name = path.stem
        script = store.add_script(
            ScriptDefinition(
                name=name, description=args.description, file_path=str(path), scope=scope
            )
        )
    else:
        command = " ".join(command_tokens)
        script = store.add_script(
            ScriptDefinition(name=name, description=args.description, scope=scope),
            command=command,
        )

    if script.name:
        print(f"Added script '{script.name}'", file=stdout)
    else:
        print(f"Added script: {command}", file=stdout)
    return 0


def _describe_placeholders(script: ScriptDefinition) -> str:
    try:
        specs = extract_placeholders(read_template(script.file_path))
    except ScriptFileError:
        return "<unreadable>"
    return " ".join(spec.name for spec in specs)


def _cmd_list(
    args: argparse.Namespace, *, config: ScriptoConfig, cwd: Path, stdout: TextIO
) -> int:
    """List visible scripts, most local first."""
    data = ScriptStore(config).read()
    if args.show_all:
        rows = [(scope, script) for scope, scripts in data.items() for script in scripts]
    else:
        rows = [(entry.scope, entry.script) for entry in resolve_all(data, cwd)]

    for scope, script in rows:
        fields = [
            _scope_label(scope, cwd),
            script.display_name,
            script.description,
            _describe_placeholders(script),
        ]
        print("\t".join(fields), file=stdout)
    return 0


def _cmd_show(
    args: argparse.Namespace, *, config: ScriptoConfig, cwd: Path, stdout: TextIO
) -> int:
    """Print one script's file, template and placeholders."""
    found = ScriptMatcher(ScriptStore(config).read(), cwd).require(args.name)
    assert found.script is not None
    template_text = read_template(found.script.file_path)

    print(f"name: {found.script.name}", file=stdout)
    print(f"scope: {found.scope}", file=stdout)
    if found.script.description:
        print(f"description: {found.script.description}", file=stdout)
    print(f"file: {found.script.file_path}", file=stdout)
    print(f"template: {template_text}", file=stdout)
    for spec in extract_placeholders(template_text):
        kind = "positional" if spec.positional else "named"
        line = f"  {spec.name} ({kind})"
        if spec.description:
            line += f": {spec.description}"
        if spec.default is not None:
            line += f" [default: {spec.default}]"
        print(line, file=stdout)
    return 0


def _cmd_rm(
    args: argparse.Namespace, *, config: ScriptoConfig, cwd: Path, stdout: TextIO
) -> int:
    """Remove the script a name resolves to from the current directory, or from `global`."""
    store = ScriptStore(config)
    data = store.read()
    if args.is_global:
        data = {scope: scripts for scope, scripts in data.items() if scope == GLOBAL_SCOPE}
    found = ScriptMatcher(data, cwd).require(args.name)
    assert found.script is not None
    store.remove_script(found.script, delete_file=not args.keep_file)
    print(f"Removed script '{found.script.name}' from {found.script.scope}", file=stdout)
    return 0


def _dispatch(
    args: argparse.Namespace,
    *,
    config: ScriptoConfig,
    cwd: Path,
    prompter: ConsolePrompter,
    stdout: TextIO,
) -> int:
    kwargs: dict[str, Any] = {"config": config, "cwd": cwd, "stdout": stdout}
    if args.cmd == "run":
        return _cmd_run(args, prompter=prompter, **kwargs)
    if args.cmd == "add":
        return _cmd_add(args, **kwargs)
    if args.cmd == "list":
        return _cmd_list(args, **kwargs)
    if args.cmd == "show":
        return _cmd_show(args, **kwargs)
    if args.cmd == "rm":
        return _cmd_rm(args, **kwargs)
    return 2


def main(
    argv: list[str] | None = None,
    *,
    config: ScriptoConfig | None = None,
    prompter: ConsolePrompter | None = None,
    stdout: TextIO | None = None,
) -> None:
    """Run the CLI entrypoint."""
    parser = build_parser()
    raw = list(sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(_route(raw))
    _configure_logging(args.verbose)

    if args.cmd is None:
        parser.print_help(sys.stderr)
        raise SystemExit(0)

    try:
        cfg = config if config is not None else load_config()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2) from e

    try:
        code = _dispatch(
            args,
            config=cfg,
            cwd=Path.cwd(),
            prompter=prompter if prompter is not None else ConsolePrompter(),
            stdout=stdout if stdout is not None else sys.stdout,
        )
    except (ScriptoError, PromptAborted) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1) from e
    raise SystemExit(code)


if __name__ == "__main__":
    main()
