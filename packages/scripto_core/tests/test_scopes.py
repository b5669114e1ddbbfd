from __future__ import annotations

import os
from pathlib import Path

import pytest

from scripto_core.models import GLOBAL_SCOPE, ScriptDefinition
from scripto_core.scopes import (
    PRIORITY_GLOBAL,
    PRIORITY_LOCAL,
    PRIORITY_OTHER,
    PRIORITY_PARENT,
    iter_scope_chain,
    resolve_all,
    scope_priority,
)


def _script(name: str, scope: str, file_path: str = "") -> ScriptDefinition:
    return ScriptDefinition(name=name, file_path=file_path or f"/scripts/{name}.sh", scope=scope)


def test_resolve_all_orders_local_parent_global() -> None:
    store = {
        GLOBAL_SCOPE: [_script("g", GLOBAL_SCOPE)],
        "/a/b": [_script("parent", "/a/b")],
        "/a/b/c": [_script("local", "/a/b/c")],
    }

    resolved = resolve_all(store, "/a/b/c")

    assert [entry.scope for entry in resolved] == ["/a/b/c", "/a/b", GLOBAL_SCOPE]
    assert [entry.script.name for entry in resolved] == ["local", "parent", "g"]


def test_scope_chain_stops_before_filesystem_root() -> None:
    chain = list(iter_scope_chain("/a/b/c"))

    assert chain == ["/a/b/c", "/a/b", "/a", GLOBAL_SCOPE]


def test_missing_scopes_contribute_nothing() -> None:
    assert resolve_all({}, "/a/b") == []
    assert resolve_all({"/elsewhere": [_script("x", "/elsewhere")]}, "/a/b") == []


def test_trailing_slash_keys_are_canonicalized_and_merged() -> None:
    store = {
        "/a/b/": [_script("one", "/a/b/")],
        "/a/b": [_script("two", "/a/b")],
    }

    resolved = resolve_all(store, "/a/b")

    assert [entry.scope for entry in resolved] == ["/a/b", "/a/b"]
    assert [entry.script.name for entry in resolved] == ["one", "two"]


@pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
def test_symlinked_cwd_resolves_to_real_directory(tmp_path: Path) -> None:
    real = tmp_path / "real" / "project"
    real.mkdir(parents=True)
    link = tmp_path / "link"
    link.symlink_to(tmp_path / "real")

    store = {str(real): [_script("build", str(real))]}

    resolved = resolve_all(store, link / "project")

    assert [entry.script.name for entry in resolved] == ["build"]
    assert resolved[0].scope == str(real.resolve())


def test_scope_priority_table() -> None:
    assert scope_priority("/a/b/c", "/a/b/c") == PRIORITY_LOCAL
    assert scope_priority("/a/b", "/a/b/c") == PRIORITY_PARENT
    assert scope_priority("/a", "/a/b/c") == PRIORITY_PARENT
    assert scope_priority(GLOBAL_SCOPE, "/a/b/c") == PRIORITY_GLOBAL
    assert scope_priority("/x/y", "/a/b/c") == PRIORITY_OTHER
    assert scope_priority("/a/b/cd", "/a/b/c") == PRIORITY_OTHER
