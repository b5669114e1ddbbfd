from __future__ import annotations

import json
from pathlib import Path

import pytest

from scripto_core.config import ScriptoConfig
from scripto_core.errors import ScriptFileError, StoreReadError, StoreWriteError
from scripto_core.models import GLOBAL_SCOPE, ScriptDefinition
from scripto_core.store import (
    ScriptStore,
    read_template,
    sanitize_for_filename,
    script_filename,
)


def _store(tmp_path: Path) -> ScriptStore:
    return ScriptStore(ScriptoConfig.for_directory(tmp_path / ".scripto"))


def test_missing_store_file_reads_as_empty(tmp_path: Path) -> None:
    assert _store(tmp_path).read() == {}


def test_corrupt_store_is_fatal(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StoreReadError) as exc:
        store.read()
    assert exc.value.code == "store_corrupt"


def test_schema_invalid_store_is_fatal(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text(json.dumps({"global": [{"name": 3}]}), encoding="utf-8")

    with pytest.raises(StoreReadError) as exc:
        store.read()
    assert exc.value.code == "store_invalid"
    assert any("$.global[0].name" in err for err in exc.value.details["errors"])


def test_legacy_fields_are_tolerated_and_dropped_on_write(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text(
        json.dumps(
            {
                "global": [
                    {
                        "name": "hi",
                        "command": "echo hi",
                        "placeholders": None,
                        "description": "",
                        "file_path": "/s/hi.sh",
                    }
                ]
            }
        ),
        encoding="utf-8",
    )

    data = store.read()
    assert data == {
        "global": [ScriptDefinition(name="hi", file_path="/s/hi.sh", scope="global")]
    }

    store.write(data)
    written = json.loads(store.path.read_text(encoding="utf-8"))
    assert written == {"global": [{"name": "hi", "description": "", "file_path": "/s/hi.sh"}]}


def test_add_script_writes_template_file_and_store_entry(tmp_path: Path) -> None:
    store = _store(tmp_path)
    scope = str(tmp_path / "project")

    saved = store.add_script(
        ScriptDefinition(name="greet", description="say hi", scope=scope),
        command="echo %who:person%",
    )

    file_path = Path(saved.file_path)
    assert file_path.parent == store.config.scripts_dir
    assert file_path.name.endswith("_greet.sh")
    assert read_template(file_path) == "echo %who:person%"
    assert store.read() == {scope: [saved]}


def test_add_script_rejects_duplicate_name_in_scope(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.add_script(ScriptDefinition(name="x", scope=GLOBAL_SCOPE), command="echo 1")

    with pytest.raises(StoreWriteError) as exc:
        store.add_script(ScriptDefinition(name="x", scope=GLOBAL_SCOPE), command="echo 2")
    assert exc.value.code == "duplicate_name"

    # Same name in another scope and unnamed duplicates are fine.
    store.add_script(ScriptDefinition(name="x", scope=str(tmp_path)), command="echo 3")
    store.add_script(ScriptDefinition(name="", scope=GLOBAL_SCOPE), command="echo 4")
    store.add_script(ScriptDefinition(name="", scope=GLOBAL_SCOPE), command="echo 5")
    assert len(store.read()[GLOBAL_SCOPE]) == 3


def test_add_script_detects_duplicates_across_spellings_of_a_scope(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = tmp_path / "project"
    project.mkdir()
    link = tmp_path / "link"
    link.symlink_to(project, target_is_directory=True)

    saved = store.add_script(ScriptDefinition(name="deploy", scope=str(project)), command="ls")
    assert saved.scope == str(project.resolve())

    for spelling in (str(link), str(project) + "/", str(project / "sub" / "..")):
        with pytest.raises(StoreWriteError) as exc:
            store.add_script(ScriptDefinition(name="deploy", scope=spelling), command="ls")
        assert exc.value.code == "duplicate_name"

    assert list(store.read()) == [str(project.resolve())]


def test_add_script_checks_duplicates_against_uncanonical_store_keys(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = tmp_path / "project"
    project.mkdir()
    store.config.store_path.parent.mkdir(parents=True)
    store.config.store_path.write_text(
        json.dumps({str(project) + "/": [{"name": "deploy", "file_path": "/s/d.sh"}]}),
        encoding="utf-8",
    )

    with pytest.raises(StoreWriteError) as exc:
        store.add_script(ScriptDefinition(name="deploy", scope=str(project)), command="ls")
    assert exc.value.code == "duplicate_name"


def test_add_script_validates_scope(tmp_path: Path) -> None:
    store = _store(tmp_path)

    with pytest.raises(StoreWriteError) as exc:
        store.add_script(ScriptDefinition(name="x", scope="relative/dir"), command="ls")
    assert exc.value.code == "invalid_scope"

    with pytest.raises(StoreWriteError):
        store.add_script(ScriptDefinition(name="x", scope=""), command="ls")


def test_add_script_keeps_external_file_reference(tmp_path: Path) -> None:
    store = _store(tmp_path)
    external = tmp_path / "deploy.sh"
    external.write_text("#!/bin/sh\necho deploy\n", encoding="utf-8")

    saved = store.add_script(
        ScriptDefinition(name="deploy", file_path=str(external), scope=GLOBAL_SCOPE)
    )

    assert saved.file_path == str(external)
    assert not store.config.scripts_dir.exists()


def test_remove_script_drops_entry_scope_and_file(tmp_path: Path) -> None:
    store = _store(tmp_path)
    saved = store.add_script(ScriptDefinition(name="tmp", scope=GLOBAL_SCOPE), command="ls")

    store.remove_script(saved)

    assert store.read() == {}
    assert not Path(saved.file_path).exists()

    with pytest.raises(StoreWriteError) as exc:
        store.remove_script(saved)
    assert exc.value.code == "scope_not_found"


def test_sanitize_for_filename() -> None:
    assert sanitize_for_filename("deploy app!") == "deploy_app"
    assert sanitize_for_filename("***") == "script"
    assert len(sanitize_for_filename("x" * 80)) == 50


def test_script_filename_uses_command_when_unnamed() -> None:
    name = script_filename("", "git status", extension=".zsh")

    prefix, rest = name.split("_", 1)
    assert len(prefix) == 6
    assert prefix.isalnum() and prefix == prefix.lower()
    assert rest == "git_status.zsh"


def test_read_template_strips_and_reports_errors(tmp_path: Path) -> None:
    path = tmp_path / "t.sh"
    path.write_text("\n  echo hi  \n", encoding="utf-8")
    assert read_template(path) == "echo hi"

    with pytest.raises(ScriptFileError) as exc:
        read_template(tmp_path / "missing.sh")
    assert exc.value.code == "script_file_read_failed"

    with pytest.raises(ScriptFileError):
        read_template("")
