"""Console output abstraction.

Release components report progress, skipped idempotent steps and soft
failures through :class:`ConsoleProtocol` instead of a global logger. The CLI
injects :class:`RichConsole`; tests inject :class:`MockConsole` and assert on
the captured records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "OutputRecord",
    "RichConsole",
    "Style",
]


class Style(Enum):
    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()  # commands, skipped steps, dry-run echoes
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


# Leading label for the status methods; print() and header() have none.
_LABELS: dict[Style, str] = {
    Style.SUCCESS: "OK",
    Style.ERROR: "error:",
    Style.WARNING: "warning:",
    Style.INFO: "info:",
}


def _labelled(style: Style, message: str) -> str:
    label = _LABELS.get(style)
    return f"{label} {message}" if label else message


class ConsoleProtocol(Protocol):
    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None:
        """Report a soft failure that was absorbed."""
        ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None:
        """Start a new pipeline section (Gates, Release, Summary)."""
        ...


class _StatusMethods:
    """success/error/warning/info/header expressed through ``_emit``."""

    def _emit(self, message: str, style: Style) -> None:
        raise NotImplementedError

    def success(self, message: str) -> None:
        self._emit(message, Style.SUCCESS)

    def error(self, message: str) -> None:
        self._emit(message, Style.ERROR)

    def warning(self, message: str) -> None:
        self._emit(message, Style.WARNING)

    def info(self, message: str) -> None:
        self._emit(message, Style.INFO)

    def header(self, message: str) -> None:
        self._emit(message, Style.HEADER)


class RichConsole(_StatusMethods):
    """Terminal output through rich; messages are never parsed as markup."""

    _RICH_STYLES: dict[Style, str] = {
        Style.SUCCESS: "green",
        Style.ERROR: "red bold",
        Style.WARNING: "yellow",
        Style.INFO: "cyan",
        Style.DIM: "dim",
        Style.HEADER: "blue bold",
    }

    def __init__(self, *, stderr: bool = False) -> None:
        from rich.console import Console

        self._console = Console(stderr=stderr, highlight=False)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._console.print(message, style=self._RICH_STYLES.get(style, ""), markup=False)

    def _emit(self, message: str, style: Style) -> None:
        if style is Style.HEADER:
            self._console.print()
        self._console.print(_labelled(style, message), style=self._RICH_STYLES[style], markup=False)


@dataclass(frozen=True, slots=True)
class OutputRecord:
    message: str
    style: Style


@dataclass
class MockConsole(_StatusMethods):
    """Captures every record; status labels are kept in the message text."""

    outputs: list[OutputRecord] = field(default_factory=list)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def _emit(self, message: str, style: Style) -> None:
        self.outputs.append(OutputRecord(_labelled(style, message), style))

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style is Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style is Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]
