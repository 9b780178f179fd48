from __future__ import annotations

from pathlib import Path

import typer

from shiplane.cli.commands._helpers import exit_on_lane_error
from shiplane.cli.context import build_context
from shiplane.services.workstation import DEFAULT_MANIFEST, WorkstationInstaller, load_manifest


def workstation(
    manifest: Path | None = typer.Option(
        None, "--manifest", help=f"Manifest file (default: {DEFAULT_MANIFEST})"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the install plan only"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Install the developer tools listed in the workstation manifest."""
    ctx = build_context()
    path = manifest if manifest is not None else ctx.root / DEFAULT_MANIFEST

    loaded = exit_on_lane_error(load_manifest(path), ctx.console)
    if loaded.is_empty:
        ctx.console.warning(f"{path.name}: nothing listed")
        return

    installer = WorkstationInstaller(
        console=ctx.console,
        confirm=lambda prompt: typer.confirm(prompt, default=False),
    )
    plan = installer.plan(loaded)
    exit_on_lane_error(installer.apply(plan, dry_run=dry_run, assume_yes=yes), ctx.console)
