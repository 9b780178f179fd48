"""External release actions.

Every build, test and upload step is a built-in fastlane action invoked as
``fastlane run <action> key:value ...``. shiplane only decides the order and
the arguments; the action's exit status is the stage's result.
"""

from __future__ import annotations

import os
import shlex
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from shiplane.core.result import Err, Ok, Result
from shiplane.lanes.errors import LaneError
from shiplane.output.console import ConsoleProtocol, Style
from shiplane.platform.process import run_logged

__all__ = [
    "ActionParam",
    "ActionRunner",
    "ActionCall",
    "FastlaneRunner",
    "RecordingActionRunner",
    "action_argv",
    "ensure_fastlane_available",
]

ActionParam = str | int | float | bool | Path | Sequence[str] | None


class ActionRunner(Protocol):
    def run(self, action: str, params: Mapping[str, ActionParam]) -> Result[str, LaneError]:
        """Run one external action and return its captured output."""
        ...


def _format_value(value: ActionParam) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str | int | float | Path):
        return str(value)
    return ",".join(str(v) for v in value)


def action_argv(action: str, params: Mapping[str, ActionParam]) -> list[str]:
    """Build the ``key:value`` arguments of ``fastlane run``.

    ``None`` values are dropped, booleans become ``true``/``false`` and
    lists are joined with commas.
    """
    argv = [action]
    for key, value in params.items():
        formatted = _format_value(value)
        if formatted is None:
            continue
        argv.append(f"{key}:{formatted}")
    return argv


def ensure_fastlane_available(root: Path) -> Result[list[str], LaneError]:
    """Return the command prefix that runs fastlane for this project.

    A project with a Gemfile runs fastlane through bundler so the pinned
    version is used.
    """
    if (root / "Gemfile").is_file():
        if shutil.which("bundle") is None:
            return Err(
                LaneError(
                    kind="tool_missing",
                    message="bundle: missing",
                    hint="gem install bundler && bundle install",
                )
            )
        return Ok(["bundle", "exec", "fastlane", "run"])

    if shutil.which("fastlane") is None:
        return Err(
            LaneError(
                kind="tool_missing",
                message="fastlane: missing",
                hint="brew install fastlane",
            )
        )
    return Ok(["fastlane", "run"])


class FastlaneRunner:
    """Runs actions through the fastlane CLI, appending output to a build log.

    The fastlane command prefix is resolved on the first call, so building a
    runner never touches the host.
    """

    def __init__(
        self,
        *,
        root: Path,
        log_path: Path,
        console: ConsoleProtocol,
        prefix: list[str] | None = None,
        timeout: float | None = None,
        dry_run: bool = False,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._root = root
        self._secret_env = dict(env or {})
        self._prefix = prefix
        self._log_path = log_path
        self._console = console
        self._timeout = timeout
        self._dry_run = dry_run

    def _resolve_prefix(self) -> Result[list[str], LaneError]:
        if self._prefix is not None:
            return Ok(self._prefix)
        resolved = ensure_fastlane_available(self._root)
        if isinstance(resolved, Err):
            if not self._dry_run:
                return resolved
            resolved = Ok(["fastlane", "run"])
        self._prefix = resolved.value
        return resolved

    def _child_env(self) -> dict[str, str] | None:
        # Secrets reach the action through its environment, never through argv.
        if not self._secret_env:
            return None
        return {**os.environ, **self._secret_env}

    def run(self, action: str, params: Mapping[str, ActionParam]) -> Result[str, LaneError]:
        prefix = self._resolve_prefix()
        if isinstance(prefix, Err):
            return prefix

        cmd = [*prefix.value, *action_argv(action, params)]
        self._console.print(shlex.join(cmd), Style.DIM)
        if self._dry_run:
            return Ok("")

        result = run_logged(
            cmd,
            cwd=self._root,
            log_path=self._log_path,
            env=self._child_env(),
            timeout=self._timeout,
        )
        if isinstance(result, Err):
            error = result.error
            return Err(
                LaneError(
                    kind="stage_failed",
                    message=f"{action}: {error.detail}",
                    hint=f"full output: {self._log_path}",
                )
            )
        return result


@dataclass(frozen=True, slots=True)
class ActionCall:
    action: str
    params: dict[str, ActionParam]


def _empty_calls() -> list[ActionCall]:
    return []


@dataclass
class RecordingActionRunner:
    """Runner that records calls instead of executing them.

    ``failures`` maps an action name to the message its call should fail with.
    """

    failures: dict[str, str] = field(default_factory=dict)
    outputs: dict[str, str] = field(default_factory=dict)
    calls: list[ActionCall] = field(default_factory=_empty_calls)

    def run(self, action: str, params: Mapping[str, ActionParam]) -> Result[str, LaneError]:
        self.calls.append(ActionCall(action=action, params=dict(params)))
        if action in self.failures:
            return Err(LaneError(kind="stage_failed", message=self.failures[action]))
        return Ok(self.outputs.get(action, ""))

    @property
    def actions(self) -> list[str]:
        return [c.action for c in self.calls]

    def params_for(self, action: str) -> dict[str, ActionParam]:
        for call in self.calls:
            if call.action == action:
                return call.params
        raise KeyError(action)
