from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from scripto_core.errors import ConfigError

_CONFIG_VERSION = 1
CONFIG_DIR_NAME = ".scripto"
STORE_FILE_NAME = "scripts.json"
SCRIPTS_DIR_NAME = "scripts"
SETTINGS_FILE_NAME = "config.yaml"

ENV_STORE_PATH = "SCRIPTO_CONFIG"
ENV_CMD_FD = "SCRIPTO_CMD_FD"
ENV_SHELL = "SHELL"

_SHELL_EXTENSIONS: dict[str, str] = {"zsh": ".zsh", "bash": ".sh", "fish": ".fish"}
_DEFAULT_SHELL_EXTENSION = ".sh"


@dataclass(frozen=True)
class ScriptoConfig:
    config_dir: Path
    store_path: Path
    scripts_dir: Path
    cmd_fd_path: Path | None = None
    shell_extension: str = _DEFAULT_SHELL_EXTENSION
    confirm_save: bool = True

    @classmethod
    def for_directory(cls, config_dir: Path, **overrides: Any) -> ScriptoConfig:
        """Config rooted at `config_dir` with default file names (handy for tests)."""
        return cls(
            config_dir=config_dir,
            store_path=config_dir / STORE_FILE_NAME,
            scripts_dir=config_dir / SCRIPTS_DIR_NAME,
            **overrides,
        )


def shell_extension_for(shell: str | None) -> str:
    if not shell:
        return _DEFAULT_SHELL_EXTENSION
    return _SHELL_EXTENSIONS.get(Path(shell).name, _DEFAULT_SHELL_EXTENSION)


def _load_settings(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}", code="config_read_failed") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {path}: {e}", code="config_parse_failed") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Expected a YAML mapping in {path}, got {type(raw).__name__}.",
            code="config_not_mapping",
        )

    allowed = {"version", "store_path", "scripts_dir", "confirm_save", "meta"}
    unknown = set(raw) - allowed
    if unknown:
        raise ConfigError(
            f"Unknown keys in {path}: {', '.join(sorted(unknown))}. "
            f"Allowed: {', '.join(sorted(allowed))}.",
            code="config_unknown_keys",
            details={"unknown": sorted(unknown)},
        )

    version = raw.get("version", _CONFIG_VERSION)
    if version != _CONFIG_VERSION:
        raise ConfigError(
            f"Unsupported config version in {path}: {version!r} (expected {_CONFIG_VERSION}).",
            code="config_version",
        )
    return raw


def _parse_path(value: Any, *, root: Path, path: Path, field: str) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Expected non-empty string for {field} in {path}.", code="config_field")
    raw = Path(value).expanduser()
    return raw if raw.is_absolute() else (root / raw)


def load_config(
    environ: Mapping[str, str] | None = None,
    *,
    home: Path | None = None,
) -> ScriptoConfig:
    """
    Build the configuration once at startup.

    Layers, lowest to highest: defaults under `~/.scripto`, the optional
    `config.yaml` next to the store, then environment variables.
    """

    env = os.environ if environ is None else environ
    home_dir = home if home is not None else Path.home()

    env_store = env.get(ENV_STORE_PATH, "").strip()
    if env_store:
        store_path = Path(env_store).expanduser()
        config_dir = store_path.parent
    else:
        config_dir = home_dir / CONFIG_DIR_NAME
        store_path = config_dir / STORE_FILE_NAME
    scripts_dir = config_dir / SCRIPTS_DIR_NAME

    settings_path = config_dir / SETTINGS_FILE_NAME
    settings = _load_settings(settings_path)

    if settings.get("store_path") is not None and not env_store:
        store_path = _parse_path(
            settings["store_path"], root=config_dir, path=settings_path, field="store_path"
        )
    if settings.get("scripts_dir") is not None:
        scripts_dir = _parse_path(
            settings["scripts_dir"], root=config_dir, path=settings_path, field="scripts_dir"
        )

    confirm_save = settings.get("confirm_save", True)
    if not isinstance(confirm_save, bool):
        raise ConfigError(
            f"Expected boolean for confirm_save in {settings_path}.", code="config_field"
        )

    cmd_fd = env.get(ENV_CMD_FD, "").strip()
    return ScriptoConfig(
        config_dir=config_dir,
        store_path=store_path,
        scripts_dir=scripts_dir,
        cmd_fd_path=Path(cmd_fd) if cmd_fd else None,
        shell_extension=shell_extension_for(env.get(ENV_SHELL)),
        confirm_save=confirm_save,
    )
