"""Tests for sigscan.bookkeeping."""

from __future__ import annotations

from pathlib import Path

from sigscan.bookkeeping import ensure_gitignored


def test_output_dir_is_appended_once(tmp_path: Path) -> None:
    assert ensure_gitignored(tmp_path, tmp_path / "signatures") is True
    assert ensure_gitignored(tmp_path, tmp_path / "signatures") is False

    content = (tmp_path / ".gitignore").read_text(encoding="utf-8")
    assert content == "# sigscan output\nsignatures/\n"


def test_existing_entries_are_preserved(tmp_path: Path) -> None:
    gitignore = tmp_path / ".gitignore"
    gitignore.write_text("out/\ncache", encoding="utf-8")

    assert ensure_gitignored(tmp_path, tmp_path / "build" / "selectors") is True

    assert gitignore.read_text(encoding="utf-8") == (
        "out/\ncache\n# sigscan output\nbuild/selectors/\n"
    )


def test_entry_without_trailing_slash_counts_as_present(tmp_path: Path) -> None:
    gitignore = tmp_path / ".gitignore"
    gitignore.write_text("/signatures\n", encoding="utf-8")

    assert ensure_gitignored(tmp_path, tmp_path / "signatures") is False
    assert gitignore.read_text(encoding="utf-8") == "/signatures\n"


def test_output_outside_root_is_left_alone(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()

    assert ensure_gitignored(project, tmp_path / "shared") is False
    assert ensure_gitignored(project, project) is False
    assert not (project / ".gitignore").exists()


def test_write_failure_is_reported(tmp_path: Path) -> None:
    (tmp_path / ".gitignore").mkdir()

    assert ensure_gitignored(tmp_path, tmp_path / "signatures") is False
