# SPDX-License-Identifier: MIT
"""Check result types and the command-runner seam shared by checkers."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Protocol


class CheckStatus(Enum):
    """Status of a check result."""

    OK = auto()
    """Check passed successfully."""

    WARNING = auto()
    """Check passed but with warnings (optional value or tool missing)."""

    ERROR = auto()
    """Check failed (required value or tool missing)."""


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Result of a single check.

    Attributes:
        name: What was checked (e.g., "SLACK_URL", "fastlane")
        status: Whether the check passed, warned, or failed
        message: Human-readable result message
        hint: Optional fix (command, variable to export, URL)
    """

    name: str
    status: CheckStatus
    message: str
    hint: str | None = None

    @property
    def is_error(self) -> bool:
        return self.status == CheckStatus.ERROR

    @property
    def is_warning(self) -> bool:
        return self.status == CheckStatus.WARNING

    @classmethod
    def success(cls, name: str, message: str) -> "CheckResult":
        return cls(name=name, status=CheckStatus.OK, message=message)

    @classmethod
    def warning(cls, name: str, message: str, hint: str | None = None) -> "CheckResult":
        return cls(name=name, status=CheckStatus.WARNING, message=message, hint=hint)

    @classmethod
    def error(cls, name: str, message: str, hint: str | None = None) -> "CheckResult":
        return cls(name=name, status=CheckStatus.ERROR, message=message, hint=hint)


class CommandRunner(Protocol):
    """Protocol for running commands; tests substitute a fake."""

    def run(
        self, args: list[str], *, capture: bool = True, cwd: Path | None = None
    ) -> subprocess.CompletedProcess[str]: ...


class DefaultCommandRunner:
    def run(
        self, args: list[str], *, capture: bool = True, cwd: Path | None = None
    ) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                args,
                capture_output=capture,
                text=True,
                check=False,
                cwd=cwd,
            )
        except OSError as e:
            return subprocess.CompletedProcess(args, returncode=127, stdout="", stderr=str(e))
