"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn, TypeVar

import typer

from shiplane.core.result import Ok, Result
from shiplane.lanes.errors import LaneError, lane_error_code
from shiplane.output.console import ConsoleProtocol, Style

T = TypeVar("T")


def exit_on_lane_error(result: Result[T, LaneError], console: ConsoleProtocol) -> T:
    """Return the value of ``result`` or print the error and exit.

    The exit code is derived from the error kind; the message is the failing
    stage's own text.
    """
    if isinstance(result, Ok):
        return result.value

    error = result.error
    prefix = f"[{error.stage}] " if error.stage else ""
    console.error(f"{prefix}{error.message}")
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)
    exit_with_code(int(lane_error_code(error.kind)))


def exit_with_code(code: int) -> NoReturn:
    raise typer.Exit(code=code)
