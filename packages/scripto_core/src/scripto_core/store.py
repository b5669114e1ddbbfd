from __future__ import annotations

import json
import logging
import os
import re
import secrets
import string
from dataclasses import replace
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from scripto_core.config import ScriptoConfig
from scripto_core.errors import ScriptFileError, StoreReadError, StoreWriteError
from scripto_core.models import GLOBAL_SCOPE, ScriptDefinition
from scripto_core.scopes import canonicalize_scope

logger = logging.getLogger(__name__)

StoreData = dict[str, list[ScriptDefinition]]

_STORE_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": {
        "type": "array",
        "items": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "description": {"type": "string"},
                "file_path": {"type": "string"},
                # Legacy inline fields; read and dropped.
                "command": {"type": "string"},
                "placeholders": {"type": ["array", "null"]},
            },
        },
    },
}

_FILENAME_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9_\-]")
_PREFIX_ALPHABET = string.ascii_lowercase + string.digits
_PREFIX_LENGTH = 6
_MAX_FILENAME_BASE = 50


def _validate_store(raw: Any) -> list[str]:
    validator = Draft202012Validator(_STORE_SCHEMA)
    errors = sorted(validator.iter_errors(raw), key=lambda e: str(e.path))
    formatted: list[str] = []
    for error in errors:
        path = "$"
        for part in error.path:
            path += f"[{part!r}]" if isinstance(part, int) else f".{part}"
        formatted.append(f"{path}: {error.message}")
    return formatted


def sanitize_for_filename(value: str) -> str:
    sanitized = _FILENAME_UNSAFE_RE.sub("", value.replace(" ", "_"))
    sanitized = sanitized[:_MAX_FILENAME_BASE]
    return sanitized or "script"


def random_prefix() -> str:
    return "".join(secrets.choice(_PREFIX_ALPHABET) for _ in range(_PREFIX_LENGTH))


def script_filename(name: str, command: str, *, extension: str) -> str:
    base = name if name else command
    return f"{random_prefix()}_{sanitize_for_filename(base)}{extension}"


def read_template(path: str | os.PathLike[str]) -> str:
    """Read a script's command template, without surrounding whitespace."""
    if not str(path):
        raise ScriptFileError("script has no file path", code="script_file_missing_path")
    try:
        return Path(path).read_text(encoding="utf-8").strip()
    except OSError as e:
        raise ScriptFileError(
            f"failed to read script file {path}: {e}",
            code="script_file_read_failed",
            details={"path": str(path)},
        ) from e


def validate_scope(scope: str) -> None:
    if not scope:
        raise StoreWriteError("scope cannot be empty", code="invalid_scope")
    if scope != GLOBAL_SCOPE and not Path(scope).is_absolute():
        raise StoreWriteError(
            f"scope must be 'global' or an absolute path: {scope}",
            code="invalid_scope",
            details={"scope": scope},
        )


def _same_script(a: ScriptDefinition, b: ScriptDefinition) -> bool:
    return (
        a.name == b.name
        and a.file_path == b.file_path
        and a.description == b.description
        and a.scope == b.scope
    )


class ScriptStore:
    """JSON store of script definitions keyed by scope, plus the script files they point to."""

    def __init__(self, config: ScriptoConfig) -> None:
        self.config = config

    @property
    def path(self) -> Path:
        return self.config.store_path

    def read(self) -> StoreData:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("Store %s does not exist; treating as empty", self.path)
            return {}
        except OSError as e:
            raise StoreReadError(
                f"failed to read config: {e}",
                code="store_read_failed",
                details={"path": str(self.path)},
            ) from e

        try:
            raw = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as e:
            raise StoreReadError(
                f"failed to parse {self.path}: {e}",
                code="store_corrupt",
                details={"path": str(self.path)},
            ) from e

        errors = _validate_store(raw)
        if errors:
            raise StoreReadError(
                f"invalid store {self.path}: {errors[0]}",
                code="store_invalid",
                details={"path": str(self.path), "errors": errors},
            )

        data: StoreData = {}
        for scope, items in raw.items():
            data[scope] = [
                ScriptDefinition(
                    name=item.get("name", ""),
                    description=item.get("description", ""),
                    file_path=item.get("file_path", ""),
                    scope=scope,
                )
                for item in items
            ]
        return data

    def write(self, data: StoreData) -> None:
        payload: dict[str, list[dict[str, str]]] = {}
        for scope, scripts in data.items():
            if not scripts:
                continue
            entries = []
            for script in scripts:
                entry = {"name": script.name, "description": script.description}
                if script.file_path:
                    entry["file_path"] = script.file_path
                entries.append(entry)
            payload[scope] = entries

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise StoreWriteError(
                f"failed to save config: {e}",
                code="store_write_failed",
                details={"path": str(self.path)},
            ) from e

    def save_script_file(self, name: str, command: str) -> Path:
        scripts_dir = self.config.scripts_dir
        file_path = scripts_dir / script_filename(
            name, command, extension=self.config.shell_extension
        )
        try:
            scripts_dir.mkdir(parents=True, exist_ok=True)
            file_path.write_text(command, encoding="utf-8")
        except OSError as e:
            raise StoreWriteError(
                f"failed to save script to file: {e}",
                code="script_file_write_failed",
                details={"path": str(file_path)},
            ) from e
        return file_path

    @staticmethod
    def _scripts_in_scope(data: StoreData, scope: str) -> list[ScriptDefinition]:
        return [
            script
            for key, scripts in data.items()
            if canonicalize_scope(key) == scope
            for script in scripts
        ]

    def add_script(self, script: ScriptDefinition, command: str | None = None) -> ScriptDefinition:
        """
        Persist `script` under its scope.

        The scope is stored in canonical form, and a name must be unique among every store
        key that canonicalizes to it. When the script has no file yet, `command`
        is written to a new file under the scripts directory.
        """

        validate_scope(script.scope)
        script = replace(script, scope=canonicalize_scope(script.scope))
        data = self.read()

        if script.name:
            for existing in self._scripts_in_scope(data, script.scope):
                if existing.name == script.name:
                    raise StoreWriteError(
                        f"script with name '{script.name}' already exists in scope '{script.scope}'",
                        code="duplicate_name",
                        details={"name": script.name, "scope": script.scope},
                    )

        if not script.file_path:
            if command is None:
                raise StoreWriteError(
                    "script has no file path or command content", code="missing_command"
                )
            script = replace(script, file_path=str(self.save_script_file(script.name, command)))

        data.setdefault(script.scope, []).append(script)
        self.write(data)
        logger.debug("Added script %s to scope %s", script.display_name, script.scope)
        return script

    def remove_script(self, script: ScriptDefinition, *, delete_file: bool = True) -> None:
        data = self.read()
        scripts = data.get(script.scope)
        if scripts is None:
            raise StoreWriteError(
                "script scope not found in config",
                code="scope_not_found",
                details={"scope": script.scope},
            )

        for idx, existing in enumerate(scripts):
            if _same_script(existing, script):
                del scripts[idx]
                break
        else:
            raise StoreWriteError(
                "script not found in config",
                code="script_not_in_store",
                details={"name": script.name, "scope": script.scope},
            )

        if not scripts:
            del data[script.scope]
        self.write(data)

        if delete_file and script.file_path:
            try:
                Path(script.file_path).unlink(missing_ok=True)
            except OSError as e:
                raise StoreWriteError(
                    f"failed to remove script file: {e}",
                    code="script_file_remove_failed",
                    details={"path": script.file_path},
                ) from e
