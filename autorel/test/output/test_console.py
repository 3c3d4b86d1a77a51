"""Tests for autorel.output.console module."""

from __future__ import annotations

import pytest

from autorel.output.console import ConsoleProtocol, MockConsole, RichConsole, Style


class TestMockConsole:
    def test_captures_styles(self) -> None:
        console = MockConsole()
        console.print("plain")
        console.success("tagged 1.2.4")
        console.warning("reasoning service timeout")
        console.error("push failed")
        console.info("dry run")
        console.header("Release")

        assert console.messages == [
            "plain",
            "OK tagged 1.2.4",
            "warning: reasoning service timeout",
            "error: push failed",
            "info: dry run",
            "Release",
        ]
        assert [o.style for o in console.outputs] == [
            Style.DEFAULT,
            Style.SUCCESS,
            Style.WARNING,
            Style.ERROR,
            Style.INFO,
            Style.HEADER,
        ]
        assert console.has_error()
        assert console.has_warning()

    def test_find(self) -> None:
        console = MockConsole()
        console.print("tag 1.2.4 already on origin", Style.DIM)
        console.print("release 1.2.4 already exists", Style.DIM)

        assert len(console.find("already")) == 2
        assert console.find("origin")[0].style == Style.DIM

    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.print("x")


class TestRichConsole:
    def test_does_not_interpret_markup(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.print("[bold]literal[/bold]")
        console.error("bad [tag]")

        out = capsys.readouterr().out
        assert "[bold]literal[/bold]" in out
        assert "bad [tag]" in out

    def test_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole(stderr=True).warning("careful")

        captured = capsys.readouterr()
        assert "careful" in captured.err
        assert captured.out == ""
