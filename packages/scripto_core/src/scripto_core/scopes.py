from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path

from scripto_core.models import GLOBAL_SCOPE, ResolvedScript, ScriptDefinition

logger = logging.getLogger(__name__)

PRIORITY_LOCAL = 0
PRIORITY_PARENT = 1
PRIORITY_GLOBAL = 2
PRIORITY_OTHER = 3


def canonicalize_scope(scope: str) -> str:
    """Canonical key for a scope: `global`, or the resolved absolute directory path."""
    if scope == GLOBAL_SCOPE:
        return GLOBAL_SCOPE
    try:
        return str(Path(scope).expanduser().resolve(strict=False))
    except OSError:
        return os.path.normpath(os.path.abspath(scope))


def _current_directory(cwd: str | os.PathLike[str] | None) -> Path:
    # os.getcwd() raises if the working directory is gone; that is fatal here.
    raw = Path(cwd) if cwd is not None else Path(os.getcwd())
    return Path(canonicalize_scope(str(raw)))


def iter_scope_chain(cwd: str | os.PathLike[str] | None = None) -> Iterator[str]:
    """
    Yield candidate scopes in priority order.

    The current directory comes first, then each ancestor up to but excluding the
    filesystem root, then `global`. Each canonical directory is yielded once.
    """

    current = _current_directory(cwd)
    seen: set[str] = set()

    for directory in [current, *current.parents]:
        key = str(directory)
        if directory != current and directory == Path(directory.anchor):
            break
        if key in seen:
            continue
        seen.add(key)
        yield key

    yield GLOBAL_SCOPE


def _index_by_scope(
    store_data: Mapping[str, Sequence[ScriptDefinition]],
) -> dict[str, list[ScriptDefinition]]:
    index: dict[str, list[ScriptDefinition]] = {}
    for raw_scope, scripts in store_data.items():
        index.setdefault(canonicalize_scope(raw_scope), []).extend(scripts)
    return index


def resolve_all(
    store_data: Mapping[str, Sequence[ScriptDefinition]],
    cwd: str | os.PathLike[str] | None = None,
) -> list[ResolvedScript]:
    """Return every script visible from `cwd`, tagged with its scope, most local first."""

    index = _index_by_scope(store_data)
    resolved: list[ResolvedScript] = []
    for scope in iter_scope_chain(cwd):
        scripts = index.get(scope, [])
        if scripts:
            logger.debug("Scope %s contributes %d script(s)", scope, len(scripts))
        for script in scripts:
            resolved.append(ResolvedScript(scope=scope, script=script))
    return resolved


def scope_priority(scope: str, cwd: str | os.PathLike[str] | None = None) -> int:
    if scope == GLOBAL_SCOPE:
        return PRIORITY_GLOBAL

    current = _current_directory(cwd)
    candidate = Path(canonicalize_scope(scope))
    if candidate == current:
        return PRIORITY_LOCAL
    if candidate in current.parents and candidate != Path(current.anchor):
        return PRIORITY_PARENT
    return PRIORITY_OTHER
