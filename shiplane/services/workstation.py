# SPDX-License-Identifier: MIT
"""Workstation package manifest.

The manifest is a TOML file listing what a release machine needs::

    taps = ["homebrew/cask-fonts"]
    brews = ["git", "gh", "fastlane", "swiftlint"]
    casks = ["xcodes"]

    [mas]
    Xcode = 497799835

Only missing entries are installed. Installer commands are built from the
manifest, never from free-form shell text.
"""

from __future__ import annotations

import shlex
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from shiplane.core.result import Err, Ok, Result
from shiplane.core.structured import StrDict, as_str_dict, get_str_list, get_table
from shiplane.lanes.errors import LaneError
from shiplane.output.console import ConsoleProtocol, Style
from shiplane.services.checks import CommandRunner, DefaultCommandRunner

__all__ = [
    "InstallPlan",
    "InstallStep",
    "MasApp",
    "WorkstationManifest",
    "WorkstationInstaller",
    "load_manifest",
]

DEFAULT_MANIFEST = "Workstation.toml"


@dataclass(frozen=True, slots=True)
class MasApp:
    name: str
    app_id: int


@dataclass(frozen=True, slots=True)
class WorkstationManifest:
    taps: tuple[str, ...] = ()
    brews: tuple[str, ...] = ()
    casks: tuple[str, ...] = ()
    mas: tuple[MasApp, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.taps or self.brews or self.casks or self.mas)


@dataclass(frozen=True, slots=True)
class InstallStep:
    name: str
    argv: list[str]

    @property
    def display(self) -> str:
        return shlex.join(self.argv)


@dataclass(frozen=True, slots=True)
class InstallPlan:
    steps: list[InstallStep]

    @property
    def is_empty(self) -> bool:
        return not self.steps


def _manifest_error(path: Path, message: str) -> Err[LaneError]:
    return Err(LaneError(kind="invalid_input", message=message, hint=str(path)))


def _parse_mas(path: Path, table: StrDict) -> Result[tuple[MasApp, ...], LaneError]:
    apps: list[MasApp] = []
    for name, value in table.items():
        if isinstance(value, bool) or not isinstance(value, int):
            return _manifest_error(path, f"mas.{name}: expected an App Store id (integer)")
        apps.append(MasApp(name=name, app_id=value))
    return Ok(tuple(apps))


def load_manifest(path: Path) -> Result[WorkstationManifest, LaneError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Err(
            LaneError(
                kind="io_failed",
                message=f"manifest not found: {path}",
                hint=f"create {DEFAULT_MANIFEST} or pass --manifest",
            )
        )
    except OSError as e:
        return Err(LaneError(kind="io_failed", message=f"failed to read manifest: {e}"))
    except tomllib.TOMLDecodeError as e:
        return _manifest_error(path, f"invalid TOML syntax: {e}")

    data = as_str_dict(data_obj)
    if data is None:
        return _manifest_error(path, "manifest root must be a TOML table")

    for key in ("taps", "brews", "casks"):
        if key in data and get_str_list(data, key) is None:
            return _manifest_error(path, f"{key}: expected a list of names")

    mas: tuple[MasApp, ...] = ()
    if "mas" in data:
        mas_table = get_table(data, "mas")
        if mas_table is None:
            return _manifest_error(path, "mas: expected a table of name = id")
        parsed = _parse_mas(path, mas_table)
        if isinstance(parsed, Err):
            return parsed
        mas = parsed.value

    return Ok(
        WorkstationManifest(
            taps=tuple(get_str_list(data, "taps") or ()),
            brews=tuple(get_str_list(data, "brews") or ()),
            casks=tuple(get_str_list(data, "casks") or ()),
            mas=mas,
        )
    )


def _short_name(formula: str) -> str:
    # `owner/tap/formula` is listed by brew as `formula`.
    return formula.rsplit("/", 1)[-1]


class WorkstationInstaller:
    """Compute and apply the install plan for a manifest."""

    def __init__(
        self,
        *,
        console: ConsoleProtocol,
        runner: CommandRunner | None = None,
        confirm: Callable[[str], bool] | None = None,
    ) -> None:
        self._console = console
        self._runner = runner or DefaultCommandRunner()
        self._confirm = confirm

    def _list(self, argv: list[str]) -> set[str]:
        result = self._runner.run(argv)
        if result.returncode != 0:
            # Unknown state: treat everything as missing, the installer is idempotent.
            return set()
        return {line.strip() for line in result.stdout.splitlines() if line.strip()}

    def _installed_mas_ids(self) -> set[int]:
        ids: set[int] = set()
        for line in self._list(["mas", "list"]):
            head = line.split(maxsplit=1)[0]
            if head.isdigit():
                ids.add(int(head))
        return ids

    def plan(self, manifest: WorkstationManifest) -> InstallPlan:
        steps: list[InstallStep] = []

        if manifest.taps:
            tapped = self._list(["brew", "tap"])
            for tap in manifest.taps:
                if tap not in tapped:
                    steps.append(InstallStep(name=f"tap {tap}", argv=["brew", "tap", tap]))

        if manifest.brews:
            have = self._list(["brew", "list", "--formula", "-1"])
            missing = [b for b in manifest.brews if _short_name(b) not in have]
            if missing:
                steps.append(
                    InstallStep(
                        name=f"brew: {', '.join(missing)}", argv=["brew", "install", *missing]
                    )
                )

        if manifest.casks:
            have = self._list(["brew", "list", "--cask", "-1"])
            missing = [c for c in manifest.casks if _short_name(c) not in have]
            if missing:
                steps.append(
                    InstallStep(
                        name=f"cask: {', '.join(missing)}",
                        argv=["brew", "install", "--cask", *missing],
                    )
                )

        if manifest.mas:
            have_ids = self._installed_mas_ids()
            missing_apps = [a for a in manifest.mas if a.app_id not in have_ids]
            if missing_apps:
                steps.append(
                    InstallStep(
                        name=f"mas: {', '.join(a.name for a in missing_apps)}",
                        argv=["mas", "install", *(str(a.app_id) for a in missing_apps)],
                    )
                )

        return InstallPlan(steps=steps)

    def apply(
        self, plan: InstallPlan, *, dry_run: bool, assume_yes: bool
    ) -> Result[None, LaneError]:
        if plan.is_empty:
            self._console.success("workstation: everything installed")
            return Ok(None)

        self._console.header("Install")
        for step in plan.steps:
            self._console.print(f"  {step.display}", Style.DIM)
        self._console.newline()

        if dry_run:
            self._console.print("Dry-run: not executing install commands", Style.DIM)
            return Ok(None)

        if not assume_yes:
            if self._confirm is None:
                return Err(
                    LaneError(
                        kind="invalid_input",
                        message="cannot prompt for confirmation",
                        hint="pass --yes",
                    )
                )
            if not self._confirm("Run the install commands above?"):
                self._console.warning("Skipped install commands")
                return Ok(None)

        for step in plan.steps:
            self._console.print(f"Running: {step.display}", Style.DIM)
            result = self._runner.run(step.argv, capture=False)
            if result.returncode != 0:
                return Err(
                    LaneError(
                        kind="stage_failed",
                        message=f"install failed: {step.name} (exit {result.returncode})",
                        hint=step.display,
                    )
                )
            self._console.success(f"Installed: {step.name}")
        return Ok(None)
