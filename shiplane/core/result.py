"""Result type used by every fallible operation in shiplane.

Lanes never raise to signal an external failure: each stage returns either
``Ok(value)`` or ``Err(error)`` and the orchestrator stops at the first
``Err``.

Usage:
    def read_notes(path: Path) -> Result[str, LaneError]:
        if not path.exists():
            return Err(LaneError(kind="io_failed", message=f"missing: {path}"))
        return Ok(path.read_text())

    match read_notes(path):
        case Ok(text):
            console.print(text)
        case Err(error):
            console.error(error.message)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome carrying ``value``."""

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed outcome carrying ``error``."""

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result: TypeAlias = Union[Ok[T], Err[E]]
