"""Tests for autorel.platform.files module."""

from __future__ import annotations

from pathlib import Path

from autorel.core.result import Err, Ok
from autorel.platform.files import atomic_write_text, read_text


def test_read_text_ok(tmp_path: Path) -> None:
    path = tmp_path / "VERSION"
    path.write_text("1.2.3\n", encoding="utf-8")
    assert read_text(path) == Ok("1.2.3\n")


def test_read_text_missing(tmp_path: Path) -> None:
    result = read_text(tmp_path / "missing.txt")
    assert isinstance(result, Err)
    assert "file not found" in result.error


def test_atomic_write_creates_parents(tmp_path: Path) -> None:
    path = tmp_path / "a" / "b" / "notes.md"
    atomic_write_text(path, "# notes\n")
    assert path.read_text(encoding="utf-8") == "# notes\n"


def test_atomic_write_replaces_and_leaves_no_temp(tmp_path: Path) -> None:
    path = tmp_path / "README.md"
    path.write_text("old", encoding="utf-8")
    atomic_write_text(path, "new")
    assert path.read_text(encoding="utf-8") == "new"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["README.md"]
