"""Subprocess execution returning ``Result`` values.

Every external action of a lane goes through this module, so a stage's
failure is always a ``ProcessError`` value and never an exception::

    match run(["gh", "auth", "status"], cwd=root, timeout=60):
        case Ok(_):
            ...
        case Err(error):
            console.error(error.detail)
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from shiplane.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "run_logged"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that exited non-zero, timed out or could not be started.

    ``returncode`` is -1 when the process never produced an exit status.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        shown = " ".join(self.command[:3]) + (" ..." if len(self.command) > 3 else "")
        return f"{shown} failed (exit {self.returncode})"

    @property
    def detail(self) -> str:
        """Last non-empty line of the tool's output, the usual error summary."""
        for text in (self.stderr, self.stdout):
            lines = [line.strip() for line in text.splitlines() if line.strip()]
            if lines:
                return lines[-1]
        return str(self)


def _failed(cmd: list[str], returncode: int, stdout: str, stderr: str) -> Err[ProcessError]:
    return Err(ProcessError(command=tuple(cmd), returncode=returncode, stdout=stdout, stderr=stderr))


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run ``cmd`` in ``cwd`` with output captured; ``Ok`` holds stdout.

    ``env`` replaces the inherited environment when given.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return _failed(cmd, -1, partial, f"timed out after {timeout}s")
    except OSError as e:
        return _failed(cmd, -1, "", str(e))

    if proc.returncode != 0:
        return _failed(cmd, proc.returncode, proc.stdout, proc.stderr)
    return Ok(proc.stdout)


def run_logged(
    cmd: list[str],
    cwd: Path,
    log_path: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Like ``run`` but append the command and its output to ``log_path``.

    The log is written whether the command succeeds or not. A log that
    cannot be written is reported as a failure of the command.
    """
    result = run(cmd, cwd=cwd, env=env, timeout=timeout)
    match result:
        case Ok(stdout):
            stderr = ""
            status = "ok"
        case Err(error):
            stdout, stderr = error.stdout, error.stderr
            status = f"exit {error.returncode}"

    stamp = datetime.now().isoformat(timespec="seconds")
    chunk = [f"==> [{stamp}] {' '.join(cmd)}", stdout.rstrip(), stderr.rstrip(), f"<== {status}"]
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as fh:
            fh.write("\n".join(line for line in chunk if line) + "\n\n")
    except OSError as e:
        return _failed(cmd, -1, stdout, f"failed to write build log {log_path}: {e}")
    return result
