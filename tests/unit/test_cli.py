from __future__ import annotations

import json
from pathlib import Path

import pytest

from src.app_shell.cli import main

SECTION = {
    "name": "Docs",
    "handle": "docs",
    "type": "structure",
    "locales": {
        "en": {"locale": "en", "nested_url": "{slug}", "nested_url_format": "{parent.uri}/{slug}"}
    },
    "entry_types": [{"name": "Page", "handle": "page"}],
}


@pytest.fixture
def cli(tmp_path: Path):
    db = str(tmp_path / "cli.db")

    def invoke(*args: str) -> int:
        return main(["--db", db, *args])

    assert invoke("migrate") == 0
    return invoke


def _write(tmp_path: Path, name: str, data: dict) -> str:
    path = tmp_path / name
    path.write_text(json.dumps(data))
    return str(path)


def test_migrate_reports_count(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = str(tmp_path / "fresh.db")
    assert main(["--db", db, "migrate"]) == 0
    assert "Applied 1 migration(s)." in capsys.readouterr().out

    assert main(["--db", db, "migrate"]) == 0
    assert "Applied 0 migration(s)." in capsys.readouterr().out


def test_section_save_show_tree(cli, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli("section", _write(tmp_path, "section.json", SECTION)) == 0
    assert "saved with id 1" in capsys.readouterr().out

    entry = {"section_id": 1, "locale": "en", "title": "Getting Started"}
    assert cli("save", _write(tmp_path, "entry.json", entry)) == 0
    saved = json.loads(capsys.readouterr().out)
    assert saved["slug"] == "getting-started"
    assert saved["uri"] == "getting-started"

    assert cli("show", str(saved["id"])) == 0
    shown = json.loads(capsys.readouterr().out)
    assert shown["title"] == "Getting Started"

    assert cli("tree", "1") == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == ["[root] (1, 4)", "  getting-started (2, 3)"]


def test_section_rerun_updates_by_handle(
    cli, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert cli("section", _write(tmp_path, "section.json", SECTION)) == 0
    renamed = {**SECTION, "name": "Documentation"}
    assert cli("section", _write(tmp_path, "renamed.json", renamed)) == 0

    out = capsys.readouterr().out.splitlines()
    assert out == ["Section 'docs' saved with id 1.", "Section 'docs' saved with id 1."]

    entry = {"section_id": 1, "locale": "en", "title": "Intro"}
    assert cli("save", _write(tmp_path, "entry.json", entry)) == 0
    assert json.loads(capsys.readouterr().out)["type_id"] == 1


def test_save_regenerate_slug(cli, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    cli("section", _write(tmp_path, "section.json", SECTION))
    cli("save", _write(tmp_path, "entry.json", {"section_id": 1, "locale": "en", "title": "Old"}))
    entry_id = json.loads(capsys.readouterr().out.split("\n", 1)[1])["id"]

    update = {"id": entry_id, "locale": "en", "title": "New"}
    assert cli("save", _write(tmp_path, "update.json", update), "--regenerate-slug") == 0
    assert json.loads(capsys.readouterr().out)["slug"] == "new"


def test_save_validation_failure(cli, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    cli("section", _write(tmp_path, "section.json", SECTION))
    capsys.readouterr()

    assert cli("save", _write(tmp_path, "entry.json", {"section_id": 1, "locale": "en"})) == 2
    assert "title:" in capsys.readouterr().err


def test_fatal_errors_exit_nonzero(cli, tmp_path: Path) -> None:
    entry = {"section_id": 42, "locale": "en", "title": "Orphan"}
    assert cli("save", _write(tmp_path, "entry.json", entry)) == 1
    assert cli("show", "42") == 1
    assert cli("tree", "42") == 1
