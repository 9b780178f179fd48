"""Console output for lanes.

Lanes and services print through ``ConsoleProtocol`` only. Production uses
``RichConsole``; tests inject ``MockConsole`` and assert on what would have
been printed. Raw tool output never goes here, it goes to the build log.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = ["ConsoleProtocol", "MockConsole", "RichConsole", "Style"]


class Style(Enum):
    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()
    BOLD = auto()
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


# Prefix printed before status messages, and the Rich style of each Style.
_PREFIXES: dict[Style, str] = {
    Style.SUCCESS: "OK",
    Style.ERROR: "error:",
    Style.WARNING: "warning:",
    Style.INFO: "info:",
}

_RICH_STYLES: dict[Style, str] = {
    Style.DEFAULT: "",
    Style.SUCCESS: "green",
    Style.ERROR: "red bold",
    Style.WARNING: "yellow",
    Style.INFO: "cyan",
    Style.DIM: "dim",
    Style.BOLD: "bold",
    Style.HEADER: "blue bold",
}


class ConsoleProtocol(Protocol):
    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None:
        """Print a section (lane stage) header."""
        ...

    def table(self, title: str, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        """Print a simple table, used for lane summaries."""
        ...

    def newline(self) -> None: ...


class RichConsole:
    """Rich-backed console. Messages are never parsed as Rich markup."""

    def __init__(self) -> None:
        from rich.console import Console

        self._console = Console()

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        # Tool output and changelogs contain brackets.
        self._console.print(
            message, style=_RICH_STYLES[style] or None, markup=False, highlight=False
        )

    def _status(self, style: Style, message: str) -> None:
        self._console.print(_PREFIXES[style], style=_RICH_STYLES[style], markup=False, end=" ")
        self._console.print(message, markup=False, highlight=False)

    def success(self, message: str) -> None:
        self._status(Style.SUCCESS, message)

    def error(self, message: str) -> None:
        self._status(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._status(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._status(Style.INFO, message)

    def header(self, message: str) -> None:
        self._console.print()
        self.print(message, Style.HEADER)

    def table(self, title: str, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        from rich.table import Table

        tbl = Table(title=title, title_justify="left")
        for col in columns:
            tbl.add_column(col)
        for row in rows:
            tbl.add_row(*row)
        self._console.print(tbl)

    def newline(self) -> None:
        self._console.print()


@dataclass
class OutputRecord:
    message: str
    style: Style


def _no_records() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Captures output as ``OutputRecord`` entries for assertions."""

    outputs: list[OutputRecord] = field(default_factory=_no_records)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def _status(self, style: Style, message: str) -> None:
        self.print(f"{_PREFIXES[style]} {message}", style)

    def success(self, message: str) -> None:
        self._status(Style.SUCCESS, message)

    def error(self, message: str) -> None:
        self._status(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._status(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._status(Style.INFO, message)

    def header(self, message: str) -> None:
        self.print(message, Style.HEADER)

    def table(self, title: str, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        self.print(title, Style.HEADER)
        self.print(" | ".join(columns), Style.BOLD)
        for row in rows:
            self.print(" | ".join(row))

    def newline(self) -> None:
        self.print("")

    @property
    def messages(self) -> list[str]:
        return [record.message for record in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return self._has(Style.ERROR)

    def has_warning(self) -> bool:
        return self._has(Style.WARNING)

    def _has(self, style: Style) -> bool:
        return any(record.style == style for record in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        return [record for record in self.outputs if substring in record.message]
